"""Exceptions shared by the core and its adapters."""

from __future__ import annotations


class SheetReplyError(Exception):
    """Base class for sheetreply errors."""


class ConfigError(SheetReplyError):
    """Startup configuration is unusable; raised before any scheduling begins."""


class FetchError(SheetReplyError):
    """The keyword source could not be reached or returned an unusable payload."""


class TransportSendError(SheetReplyError):
    """Delivering a reply through the chat transport failed."""
