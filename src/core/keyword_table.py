"""Keyword table construction and snapshot publishing (core domain)."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

LOGGER = logging.getLogger(__name__)


def normalize_keyword(text: str, case_sensitive: bool = False) -> str:
    """Normalize a keyword or message body for lookups."""

    text = text.strip()
    if case_sensitive:
        return text
    return text.lower()


def _cell(row: Sequence[Any], index: int) -> Optional[str]:
    if index >= len(row) or row[index] is None:
        return None
    value = str(row[index]).strip()
    return value or None


class KeywordTable:
    """Immutable keyword -> reply mapping.

    A table is never changed once built. Refreshes and manual edits produce a
    new table which is then published as a whole, so a reader holding a
    reference always sees one complete table.
    """

    __slots__ = ("_entries", "_case_sensitive")

    def __init__(self, entries: Optional[Mapping[str, str]] = None, case_sensitive: bool = False) -> None:
        self._entries: Mapping[str, str] = MappingProxyType(dict(entries or {}))
        self._case_sensitive = case_sensitive

    @classmethod
    def rebuild(
        cls,
        rows: Iterable[Sequence[Any]],
        has_header: bool,
        case_sensitive: bool = False,
    ) -> "KeywordTable":
        """Build a fresh table from ``[keyword, reply]`` rows.

        - The first row is skipped when ``has_header`` is set, even if it
          looks like data.
        - Rows missing either cell are skipped.
        - Later rows win over earlier ones with the same normalized keyword.
        """

        entries: dict[str, str] = {}
        skipped = 0
        for index, row in enumerate(rows):
            if has_header and index == 0:
                continue
            keyword = _cell(row, 0)
            reply = _cell(row, 1)
            if keyword is None or reply is None:
                skipped += 1
                continue
            entries[normalize_keyword(keyword, case_sensitive)] = reply
        if skipped:
            LOGGER.debug("Skipped %s incomplete keyword rows", skipped)
        return cls(entries, case_sensitive=case_sensitive)

    @property
    def case_sensitive(self) -> bool:
        return self._case_sensitive

    def lookup(self, key: str) -> Optional[str]:
        """Exact-match read; ``key`` is normalized with the table's case mode."""

        return self._entries.get(normalize_keyword(key, self._case_sensitive))

    def entries(self) -> List[Tuple[str, str]]:
        """Return ``(keyword, reply)`` pairs in insertion order."""

        return list(self._entries.items())

    def with_entry(self, keyword: str, reply: str) -> "KeywordTable":
        """Return a copy of this table with one entry upserted."""

        normalized = normalize_keyword(keyword, self._case_sensitive)
        if not normalized or not reply.strip():
            raise ValueError("keyword and reply must be non-empty")
        entries = dict(self._entries)
        entries[normalized] = reply.strip()
        return KeywordTable(entries, case_sensitive=self._case_sensitive)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __repr__(self) -> str:
        return f"KeywordTable(entries={len(self._entries)}, case_sensitive={self._case_sensitive})"


class KeywordTableHolder:
    """Owns the reference to the table currently served to readers.

    Publishing is a single reference assignment; readers take ``current``
    once per message and keep using that snapshot.
    """

    def __init__(self, table: Optional[KeywordTable] = None) -> None:
        self._table = table if table is not None else KeywordTable()
        self._last_refresh_at: Optional[datetime] = None

    @property
    def current(self) -> KeywordTable:
        return self._table

    @property
    def last_refresh_at(self) -> Optional[datetime]:
        return self._last_refresh_at

    def publish(self, table: KeywordTable, refreshed: bool = True) -> None:
        """Install ``table`` as the current table.

        ``refreshed`` marks a rebuild from the keyword source, as opposed to a
        manual single-entry edit.
        """

        self._table = table
        if refreshed:
            self._last_refresh_at = datetime.now(timezone.utc)
