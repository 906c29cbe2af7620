"""Per-session star history pipeline: fetch missing histories, then compose the chart."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Iterable, Optional

from starhistory.config.settings import settings
from starhistory.crawlers.github.client import sanitize_log_extra
from starhistory.crawlers.github.history_source import GitHubHistorySource
from starhistory.models.chart import AlignmentMode, ChartData
from starhistory.services.history.cache import RepoRecordCache
from starhistory.services.history.composer import compose as compose_chart
from starhistory.services.history.failure_classifier import RecoveryAction, classify_failure
from starhistory.services.history.fetcher import HistorySource, RemoteHistoryFetcher
from starhistory.services.history.repo_ids import encode_share_hash, normalize_repo_id, normalize_tracked_ids

logger = logging.getLogger(__name__)


class CycleState(str, enum.Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    COMPOSING = "composing"
    AWAITING_CREDENTIAL = "awaiting_credential"


@dataclass(slots=True)
class CycleReport:
    """Summary of one or more coalesced fetch-then-compose passes."""

    cycles: int = 0
    requested: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    resolved: list[str] = field(default_factory=list)
    dropped: list[str] = field(default_factory=list)
    credential_failures: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    credential_required: bool = False
    has_chart: bool = False

    def merge(self, other: "CycleReport") -> "CycleReport":
        return CycleReport(
            cycles=self.cycles + other.cycles,
            requested=self.requested + other.requested,
            skipped=other.skipped,
            resolved=self.resolved + other.resolved,
            dropped=self.dropped + other.dropped,
            credential_failures=self.credential_failures + other.credential_failures,
            warnings=self.warnings + other.warnings,
            credential_required=self.credential_required or other.credential_required,
            has_chart=other.has_chart,
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


class StarHistorySession:
    """Context object owning the tracked set, credential, mode, cache and cycle state.

    Cycles run only on explicit triggers: tracked-set changes, a new credential,
    or `refresh()`. Changing the alignment mode recomposes from the cache without
    fetching. At most one fetch cycle is outstanding; triggers that arrive while
    one is in flight join it and schedule a single follow-up pass.
    """

    def __init__(
        self,
        *,
        tracked: Iterable[str] = (),
        credential: Optional[str] = None,
        mode: AlignmentMode | str | None = None,
        fetcher: Optional[RemoteHistoryFetcher] = None,
        source: Optional[HistorySource] = None,
        cache: Optional[RepoRecordCache] = None,
        on_chart: Optional[Callable[[Optional[ChartData]], Any]] = None,
        on_credential_required: Optional[Callable[[], Any]] = None,
        on_repo_removed: Optional[Callable[[str], Any]] = None,
        on_warning: Optional[Callable[[str], Any]] = None,
        on_fetching: Optional[Callable[[bool], Any]] = None,
    ) -> None:
        self._fetcher = fetcher or RemoteHistoryFetcher(source or GitHubHistorySource())
        self._cache = cache if cache is not None else RepoRecordCache()
        self._tracked: list[str] = normalize_tracked_ids(tracked)
        self._credential = credential
        self._mode = AlignmentMode.parse(mode, default=AlignmentMode.parse(settings.STAR_HISTORY_DEFAULT_MODE))
        self._chart_data: Optional[ChartData] = None
        self._state = CycleState.IDLE
        self._is_fetching = False
        self._credential_required = False
        self._inflight: Optional[asyncio.Future[CycleReport]] = None
        self._follow_up = False

        self._on_chart = on_chart
        self._on_credential_required = on_credential_required
        self._on_repo_removed = on_repo_removed
        self._on_warning = on_warning
        self._on_fetching = on_fetching

    @property
    def tracked_ids(self) -> tuple[str, ...]:
        return tuple(self._tracked)

    @property
    def mode(self) -> AlignmentMode:
        return self._mode

    @property
    def credential(self) -> Optional[str]:
        return self._credential

    @property
    def cache(self) -> RepoRecordCache:
        return self._cache

    @property
    def chart_data(self) -> Optional[ChartData]:
        return self._chart_data

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def is_fetching(self) -> bool:
        return self._is_fetching

    @property
    def credential_required(self) -> bool:
        return self._credential_required

    @property
    def share_hash(self) -> str:
        return encode_share_hash(self._tracked, self._mode)

    async def set_tracked(self, raw_ids: Iterable[str]) -> CycleReport:
        self._tracked = normalize_tracked_ids(raw_ids)
        return await self.refresh()

    async def add_repo(self, raw_id: str) -> CycleReport:
        repo_id = normalize_repo_id(raw_id)
        if repo_id.lower() not in {tracked.lower() for tracked in self._tracked}:
            self._tracked.append(repo_id)
        return await self.refresh()

    async def remove_repo(self, raw_id: str) -> CycleReport:
        key = normalize_repo_id(raw_id).lower()
        self._tracked = [tracked for tracked in self._tracked if tracked.lower() != key]
        return await self.refresh()

    def set_mode(self, mode: AlignmentMode | str) -> Optional[ChartData]:
        self._mode = AlignmentMode.parse(mode, default=self._mode)
        return self.compose()

    def toggle_mode(self) -> Optional[ChartData]:
        return self.set_mode(self._mode.toggled())

    async def set_credential(self, credential: Optional[str]) -> CycleReport:
        self._credential = credential or None
        self.dismiss_credential_prompt()
        return await self.refresh()

    def dismiss_credential_prompt(self) -> None:
        self._credential_required = False
        if self._state is CycleState.AWAITING_CREDENTIAL:
            self._state = CycleState.IDLE

    async def stargazer_count(self, raw_id: str) -> int:
        """Live star total; bypasses the cache."""
        return await self._fetcher.source.get_stargazer_count(normalize_repo_id(raw_id), self._credential)

    def compose(self) -> Optional[ChartData]:
        self._chart_data = compose_chart(self._cache, self._tracked, self._mode)
        if self._on_chart is not None:
            self._on_chart(self._chart_data)
        return self._chart_data

    async def refresh(self) -> CycleReport:
        if self._inflight is not None:
            self._follow_up = True
            return await asyncio.shield(self._inflight)

        self._inflight = asyncio.ensure_future(self._drive())
        return await asyncio.shield(self._inflight)

    async def _drive(self) -> CycleReport:
        try:
            report = await self._run_cycle()
            while self._follow_up:
                self._follow_up = False
                report = report.merge(await self._run_cycle())
            return report
        finally:
            self._inflight = None

    async def _run_cycle(self) -> CycleReport:
        report = CycleReport(cycles=1)
        self._state = CycleState.FETCHING
        self._set_fetching(True)
        try:
            outcome = await self._fetcher.fetch_missing(tuple(self._tracked), self._credential, self._cache)
        finally:
            self._set_fetching(False)

        report.requested = list(outcome.requested)
        report.skipped = list(outcome.skipped)
        self._cache.put_many({record.repo_id: record.to_cache_entry() for record in outcome.resolved})
        report.resolved = [record.repo_id for record in outcome.resolved]

        for failure in outcome.failures:
            classified = classify_failure(failure)
            repo_id = classified.repo_id
            if classified.action is RecoveryAction.REQUEST_CREDENTIAL:
                report.credential_required = True
                if repo_id:
                    report.credential_failures.append(repo_id)
            elif classified.action is RecoveryAction.DROP_REPOSITORY and repo_id:
                self._drop(repo_id)
                report.dropped.append(repo_id)
            else:
                message = str(classified.error)
                report.warnings.append(message)
                logger.warning(
                    "Star history fetch failed",
                    extra=sanitize_log_extra(repo=repo_id, status=classified.error.status, error=message),
                )
                if self._on_warning is not None:
                    self._on_warning(message)

        self._state = CycleState.COMPOSING
        report.has_chart = self.compose() is not None

        if report.credential_required:
            logger.info(
                "Credential required for star history",
                extra=sanitize_log_extra(repos=report.credential_failures),
            )
            if not self._credential_required:
                self._credential_required = True
                if self._on_credential_required is not None:
                    self._on_credential_required()
        self._state = CycleState.AWAITING_CREDENTIAL if self._credential_required else CycleState.IDLE
        return report

    def _drop(self, repo_id: str) -> None:
        if repo_id not in self._tracked:
            return
        self._tracked = [tracked for tracked in self._tracked if tracked != repo_id]
        logger.info("Dropped unavailable repository", extra=sanitize_log_extra(repo=repo_id))
        if self._on_repo_removed is not None:
            self._on_repo_removed(repo_id)

    def _set_fetching(self, value: bool) -> None:
        self._is_fetching = value
        if self._on_fetching is not None:
            self._on_fetching(value)
