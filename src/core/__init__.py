"""Core domain package for sheetreply.

Core contains the keyword table, reply resolution, group gating, template
expansion and refresh scheduling without any Telegram or Google-specific
code, keeping the decision logic portable.
"""
