"""Resolve star histories for repositories missing from the session cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from starhistory.crawlers.github.client import sanitize_log_extra
from starhistory.models.chart import RepoHistory
from starhistory.services.history.cache import RepoRecordCache
from starhistory.services.history.errors import HistoryFetchError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class HistoryBatch:
    """Partial result of one batched history request."""

    records: list[RepoHistory] = field(default_factory=list)
    failures: list[HistoryFetchError] = field(default_factory=list)


class HistorySource(Protocol):
    async def get_history(self, repo_ids: Sequence[str], credential: Optional[str]) -> HistoryBatch:
        ...

    async def get_stargazer_count(self, repo_id: str, credential: Optional[str]) -> int:
        ...


@dataclass(slots=True)
class FetchOutcome:
    """What one `fetch_missing` call requested, resolved and failed."""

    requested: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    resolved: list[RepoHistory] = field(default_factory=list)
    failures: list[HistoryFetchError] = field(default_factory=list)

    @property
    def request_issued(self) -> bool:
        return bool(self.requested)


class RemoteHistoryFetcher:
    """Fetches only uncached repositories; the caller owns cache writes and retries."""

    def __init__(self, source: HistorySource) -> None:
        self._source = source

    @property
    def source(self) -> HistorySource:
        return self._source

    async def fetch_missing(
        self,
        candidate_ids: Sequence[str],
        credential: Optional[str],
        cache: RepoRecordCache,
    ) -> FetchOutcome:
        outcome = FetchOutcome()
        for repo_id in candidate_ids:
            if cache.has(repo_id):
                outcome.skipped.append(repo_id)
            elif repo_id not in outcome.requested:
                outcome.requested.append(repo_id)

        if not outcome.requested:
            return outcome

        logger.info(
            "Fetching star history",
            extra=sanitize_log_extra(requested=outcome.requested, skipped=outcome.skipped),
        )
        try:
            batch = await self._source.get_history(list(outcome.requested), credential)
        except HistoryFetchError as exc:
            logger.warning(
                "Star history batch request failed",
                extra=sanitize_log_extra(status=exc.status, repo=exc.repo_id, error=str(exc)),
            )
            outcome.failures.append(exc)
            return outcome
        except Exception as exc:
            logger.exception(
                "Star history source raised unexpectedly",
                extra=sanitize_log_extra(requested=outcome.requested, error=str(exc)),
            )
            outcome.failures.append(HistoryFetchError(str(exc) or type(exc).__name__))
            return outcome

        requested = set(outcome.requested)
        for record in batch.records:
            if record.repo_id in requested:
                outcome.resolved.append(record)
            else:
                logger.warning("Ignoring unrequested star history record", extra=sanitize_log_extra(repo=record.repo_id))
        outcome.failures.extend(batch.failures)
        return outcome
