"""GitHub-backed star history source with sampled stargazer pages."""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import date
from typing import Any, Callable, Optional, Sequence

from dateutil import parser as date_parser

from starhistory.config.settings import settings
from starhistory.crawlers.github.client import GitHubStarClient, sanitize_log_extra
from starhistory.crawlers.github.contracts import FetchResult, FetchState
from starhistory.models.chart import RepoHistory, StarEvent
from starhistory.services.history.errors import HistoryFetchError
from starhistory.services.history.fetcher import HistoryBatch

logger = logging.getLogger(__name__)

NO_STAR_HISTORY_STATUS = 501


def sample_pages(page_count: int, max_request_pages: int) -> list[int]:
    """Pick stargazer pages to request: all of them, or an evenly spread sample that starts at page 1."""

    if page_count < max_request_pages:
        return list(range(1, page_count + 1))

    pages: list[int] = []
    for index in range(1, max_request_pages + 1):
        page = max(math.floor(index * page_count / max_request_pages + 0.5) - 1, 1)
        if page not in pages:
            pages.append(page)
    if 1 not in pages:
        pages.insert(0, 1)
    return pages


class GitHubHistorySource:
    """Builds approximate cumulative star histories from the stargazers API."""

    def __init__(
        self,
        *,
        client_factory: Callable[..., Any] = GitHubStarClient,
        per_page: Optional[int] = None,
        max_request_pages: Optional[int] = None,
        concurrency: Optional[int] = None,
        today_provider: Callable[[], date] = date.today,
    ) -> None:
        self._client_factory = client_factory
        self._per_page = per_page or settings.STAR_HISTORY_PER_PAGE
        self._max_request_pages = max_request_pages or settings.STAR_HISTORY_MAX_REQUEST_PAGES
        self._concurrency = max(concurrency or settings.GITHUB_CONCURRENCY, 1)
        self._today_provider = today_provider

    async def get_history(self, repo_ids: Sequence[str], credential: Optional[str]) -> HistoryBatch:
        batch = HistoryBatch()
        if not repo_ids:
            return batch

        semaphore = asyncio.Semaphore(self._concurrency)

        async with self._client_factory(token=credential) as client:

            async def resolve(repo_id: str) -> RepoHistory | HistoryFetchError:
                try:
                    return await self._fetch_repo(client, repo_id, semaphore)
                except HistoryFetchError as exc:
                    return exc

            results = await asyncio.gather(*(resolve(repo_id) for repo_id in repo_ids))

        for result in results:
            if isinstance(result, HistoryFetchError):
                batch.failures.append(result)
            else:
                batch.records.append(result)
        return batch

    async def get_stargazer_count(self, repo_id: str, credential: Optional[str]) -> int:
        owner, name = self._split_repo(repo_id)
        async with self._client_factory(token=credential) as client:
            response = await client.get_repo(owner, name)
        return self._stargazer_count(repo_id, response)

    async def _fetch_repo(self, client: Any, repo_id: str, semaphore: asyncio.Semaphore) -> RepoHistory:
        owner, name = self._split_repo(repo_id)

        async def list_page(page: int) -> FetchResult[Any]:
            async with semaphore:
                return await client.list_stargazers(owner, name, page=page, per_page=self._per_page)

        first = await list_page(1)
        self._raise_for_failure(repo_id, first)

        page_count = first.last_page or 1
        if page_count == 1 and not first.data:
            raise HistoryFetchError(
                f"Repository {repo_id} has no star history",
                status=NO_STAR_HISTORY_STATUS,
                repo_id=repo_id,
            )

        pages = sample_pages(page_count, self._max_request_pages)
        responses = {1: first}
        remaining = [page for page in pages if page != 1]
        fetched = await asyncio.gather(*(list_page(page) for page in remaining))
        for page, response in zip(remaining, fetched):
            self._raise_for_failure(repo_id, response)
            responses[page] = response

        counts: dict[date, int] = {}
        if len(pages) == page_count:
            stargazers: list[dict[str, Any]] = []
            for page in pages:
                stargazers.extend(responses[page].data or [])
            step = max(len(stargazers) // self._max_request_pages, 1)
            for index in range(0, len(stargazers), step):
                day = self._starred_on(stargazers[index])
                if day is not None:
                    counts[day] = index + 1
        else:
            for page in pages:
                data = responses[page].data or []
                if not data:
                    continue
                day = self._starred_on(data[0])
                if day is not None:
                    counts[day] = self._per_page * (page - 1)

        async with semaphore:
            repo_response = await client.get_repo(owner, name)
        counts[self._today_provider()] = self._stargazer_count(repo_id, repo_response)
        logo_url = self._logo_url(repo_response.data or {})

        history = tuple(StarEvent(date=day, count=counts[day]) for day in sorted(counts))
        logger.debug(
            "Resolved star history",
            extra=sanitize_log_extra(repo=repo_id, pages=pages, points=len(history)),
        )
        return RepoHistory(repo_id=repo_id, history=history, logo_url=logo_url)

    def _stargazer_count(self, repo_id: str, response: FetchResult[Any]) -> int:
        self._raise_for_failure(repo_id, response)
        payload = response.data if isinstance(response.data, dict) else {}
        count = payload.get("stargazers_count")
        if not isinstance(count, int):
            raise HistoryFetchError(f"Missing stargazers_count for {repo_id}", repo_id=repo_id)
        return count

    @staticmethod
    def _raise_for_failure(repo_id: str, response: FetchResult[Any]) -> None:
        if response.state == FetchState.FAILED:
            raise HistoryFetchError(
                response.error or f"Failed to fetch {repo_id}",
                status=response.status_code,
                repo_id=repo_id,
            )

    @staticmethod
    def _split_repo(repo_id: str) -> tuple[str, str]:
        owner, _, name = repo_id.partition("/")
        if not owner.strip() or not name.strip():
            raise HistoryFetchError(f"Invalid repository id: {repo_id}", status=404, repo_id=repo_id)
        return owner.strip(), name.strip()

    @staticmethod
    def _starred_on(item: Any) -> Optional[date]:
        raw = item.get("starred_at") if isinstance(item, dict) else None
        if not isinstance(raw, str):
            return None
        try:
            return date_parser.isoparse(raw).date()
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _logo_url(payload: dict[str, Any]) -> str:
        owner = payload.get("owner")
        if isinstance(owner, dict) and isinstance(owner.get("avatar_url"), str):
            return owner["avatar_url"]
        return ""
