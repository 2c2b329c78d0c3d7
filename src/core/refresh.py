"""Periodic keyword table refresh (core domain)."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from core.errors import ConfigError, FetchError
from core.keyword_table import KeywordTable, KeywordTableHolder
from core.ports import KeywordSourcePort

LOGGER = logging.getLogger(__name__)


class RefreshScheduler:
    """Rebuild the keyword table from the source on a fixed interval.

    Each cycle fetches rows, builds a complete new table, then publishes it
    with one assignment. A failed fetch keeps the previous table.
    """

    def __init__(
        self,
        source: KeywordSourcePort,
        holder: KeywordTableHolder,
        interval_seconds: float,
        has_header: bool,
        case_sensitive: bool = False,
    ) -> None:
        if interval_seconds <= 0:
            raise ConfigError(f"Refresh interval must be positive, got {interval_seconds}")
        self._source = source
        self._holder = holder
        self._interval = interval_seconds
        self._has_header = has_header
        self._case_sensitive = case_sensitive
        self._task: Optional[asyncio.Task] = None
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def refresh_once(self) -> bool:
        """Run one fetch-and-rebuild cycle; return True when a table was installed."""

        try:
            rows = await self._source.fetch_rows()
        except FetchError as e:
            self.failures += 1
            LOGGER.warning("Keyword refresh failed, keeping %s entries: %s", len(self._holder.current), e)
            return False

        if not rows:
            LOGGER.warning("Keyword source returned no rows, keeping %s entries", len(self._holder.current))
            return False

        table = KeywordTable.rebuild(rows, has_header=self._has_header, case_sensitive=self._case_sensitive)
        self._holder.publish(table)
        LOGGER.info("Loaded %s auto-reply responses", len(table))
        return True

    async def _run(self, immediate: bool) -> None:
        if not immediate:
            await asyncio.sleep(self._interval)
        while True:
            try:
                await self.refresh_once()
            except Exception:
                self.failures += 1
                LOGGER.exception("Unexpected error during keyword refresh")
            await asyncio.sleep(self._interval)

    def start(self, immediate: bool = True) -> asyncio.Task:
        """Start the refresh loop.

        With ``immediate`` the first cycle runs right away; otherwise it waits
        one interval (used when the caller already ran ``refresh_once``).
        """

        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run(immediate), name="keyword-refresh")
        return self._task

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""

        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        LOGGER.info("Keyword refresh stopped")
