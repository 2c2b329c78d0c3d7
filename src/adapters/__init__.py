"""Integration adapters: Telegram transport and the Google Sheets keyword source."""
