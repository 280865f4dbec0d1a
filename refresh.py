"""Refresh orchestration: fetch both sources, reconcile, commit, summarise."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

import structlog

import config
from errors import PersistenceFailure, SourceUnavailable
from reconcile import default_multiplier, reconcile
from service import Source, SourceClient, fetch_countries, fetch_exchange_rates
from store import CountryStore, unique_by_name
from summary import SummaryGenerator

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshState(str, Enum):
    IDLE = "idle"
    FETCHING_SOURCES = "fetching_sources"
    RECONCILING = "reconciling"
    COMMITTING = "committing"
    GENERATING_SUMMARY = "generating_summary"


@dataclass(slots=True)
class RefreshResult:
    processed: int
    total: int
    last_refreshed_at: datetime
    summary_path: Optional[Path] = None


class Refresher:
    """Run one full refresh at a time; callers serialise triggers."""

    def __init__(
        self,
        client: SourceClient,
        store: CountryStore,
        summary: SummaryGenerator,
        multiplier: Callable[[], float] = default_multiplier,
        clock: Callable[[], datetime] = utcnow,
        fetch_timeout: float = config.FETCH_TIMEOUT,
    ) -> None:
        self.client = client
        self.store = store
        self.summary = summary
        self.multiplier = multiplier
        self.clock = clock
        self.fetch_timeout = fetch_timeout
        self.state = RefreshState.IDLE

    def _enter(self, state: RefreshState, **kw) -> None:
        logger.info("refresh.state", previous=self.state.value, state=state.value, **kw)
        self.state = state

    async def _fetch(self, source: Source, fetch: Callable):
        """Run one blocking fetch under a total deadline."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(fetch, self.client), self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning("source.fetch.deadline", source=source.value, timeout=self.fetch_timeout)
            raise SourceUnavailable(source, "request timed out") from None

    async def refresh(self) -> RefreshResult:
        refreshed_at = self.clock()
        log = logger.bind(refreshed_at=refreshed_at.isoformat())
        try:
            return await self._run(refreshed_at, log)
        finally:
            if self.state is not RefreshState.IDLE:
                self._enter(RefreshState.IDLE, outcome="failed")

    async def _run(self, refreshed_at: datetime, log) -> RefreshResult:
        self._enter(RefreshState.FETCHING_SOURCES)
        try:
            facts, rates = await asyncio.gather(
                self._fetch(Source.COUNTRIES, fetch_countries),
                self._fetch(Source.EXCHANGE_RATES, fetch_exchange_rates),
            )
        except SourceUnavailable as exc:
            log.error("refresh.failed", stage="fetch", source=exc.source.value, error=str(exc))
            raise

        self._enter(RefreshState.RECONCILING, countries=len(facts), rates=len(rates))
        # one record per stored row, for both the commit and the summary
        records = unique_by_name(reconcile(facts, rates, refreshed_at, self.multiplier))

        self._enter(RefreshState.COMMITTING, records=len(records))
        try:
            processed = await asyncio.to_thread(self.store.upsert_all, records)
        except PersistenceFailure as exc:
            log.error("refresh.failed", stage="commit", error=str(exc))
            raise

        self._enter(RefreshState.GENERATING_SUMMARY)
        summary_path = None
        total = processed
        try:
            total = await asyncio.to_thread(self.store.count)
            summary_path = await asyncio.to_thread(self.summary.generate, records, total, refreshed_at)
        except Exception:
            # summary failures never fail a committed refresh
            log.exception("refresh.summary_failed")

        self._enter(RefreshState.IDLE, outcome="success", processed=processed)
        return RefreshResult(
            processed=processed,
            total=total,
            last_refreshed_at=refreshed_at,
            summary_path=summary_path,
        )

    def status(self) -> dict:
        return self.store.status()
