"""Async GitHub REST client for stargazer history lookups."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from starhistory.config.settings import settings
from starhistory.crawlers.github.contracts import (
    FetchResult,
    FetchState,
    RepoContract,
    StargazerContract,
)

logger = logging.getLogger(__name__)

_REDACTED_VALUE = "***REDACTED***"
_SENSITIVE_KEYS = (
    "authorization",
    "token",
    "credential",
    "api_key",
    "apikey",
    "secret",
    "password",
    "cookie",
)
_TOKEN_PATTERNS = (
    re.compile(r"(?i)(bearer\s+)[^\s,;]+"),
    re.compile(r"(?i)(token\s*[=:]\s*)[^\s,;]+"),
    re.compile(r"(?i)(access_token=)[^&\s]+"),
    re.compile(r"\b(gh[pousr]_)[A-Za-z0-9]{8,}"),
)


def sanitize_for_log(value: Any, *, key: Optional[str] = None) -> Any:
    """Return a recursively sanitized copy of log payloads."""

    if key and _contains_keyword(key, _SENSITIVE_KEYS) and value is not None:
        return _REDACTED_VALUE

    if isinstance(value, dict):
        return {str(field): sanitize_for_log(item, key=str(field)) for field, item in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [sanitize_for_log(item) for item in value]

    if isinstance(value, str):
        return _redact_text(value)

    return value


def sanitize_log_extra(**kwargs: Any) -> dict[str, Any]:
    """Helper for `extra=` payloads in structured logging."""

    return {key: sanitize_for_log(value, key=key) for key, value in kwargs.items()}


def _contains_keyword(field_name: str, keywords: tuple[str, ...]) -> bool:
    lowered = field_name.lower()
    return any(keyword in lowered for keyword in keywords)


def _redact_text(raw: str) -> str:
    redacted = raw
    for pattern in _TOKEN_PATTERNS:
        redacted = pattern.sub(rf"\1{_REDACTED_VALUE}", redacted)
    return redacted


class GitHubStarClient:
    """Typed GitHub API client; failures come back as FAILED contracts with the HTTP status."""

    API_VERSION = "2022-11-28"
    ACCEPT_JSON = "application/vnd.github+json"
    ACCEPT_STARGAZERS = "application/vnd.github.star+json"

    def __init__(
        self,
        *,
        token: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        base_url: Optional[str] = None,
        transport: Optional[Any] = None,
    ) -> None:
        self._token = token or settings.GITHUB_TOKEN
        self._timeout_seconds = timeout_seconds or settings.GITHUB_TIMEOUT_SECONDS
        self._base_url = base_url or settings.GITHUB_API_BASE_URL
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "GitHubStarClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_repo(self, owner: str, repo: str) -> RepoContract:
        return await self._request(f"/repos/{owner}/{repo}", accept=self.ACCEPT_JSON)

    async def list_stargazers(
        self,
        owner: str,
        repo: str,
        *,
        page: int = 1,
        per_page: int = 30,
    ) -> StargazerContract:
        response = await self._request(
            f"/repos/{owner}/{repo}/stargazers",
            params={"page": page, "per_page": per_page},
            accept=self.ACCEPT_STARGAZERS,
        )
        if response.state == FetchState.OK and not response.data:
            response.state = FetchState.EMPTY
            response.data = []
        return response

    async def _request(
        self,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> FetchResult[Any]:
        client = await self._ensure_client()
        headers = {"Accept": accept} if accept else {}

        try:
            response = await client.get(path, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning(
                "GitHub request failed",
                extra=sanitize_log_extra(path=path, params=params, error=str(exc)),
            )
            return FetchResult(state=FetchState.FAILED, error=str(exc))

        if response.is_error:
            message = self._error_message(response)
            log_extra = sanitize_log_extra(path=path, params=params, status_code=response.status_code, error=message)
            if response.status_code in (403, 429) and response.headers.get("x-ratelimit-remaining") == "0":
                log_extra["ratelimit_reset"] = response.headers.get("x-ratelimit-reset")
                logger.warning("GitHub API rate limit encountered", extra=log_extra)
            else:
                logger.warning("GitHub request returned error status", extra=log_extra)
            return FetchResult(state=FetchState.FAILED, status_code=response.status_code, error=message)

        try:
            payload = response.json()
        except ValueError as exc:
            return FetchResult(
                state=FetchState.FAILED,
                status_code=response.status_code,
                error=f"Invalid JSON from GitHub: {exc}",
            )

        return FetchResult(
            state=FetchState.OK,
            data=payload,
            status_code=response.status_code,
            last_page=self._last_page(response),
        )

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client:
            return self._client

        headers = {
            "Accept": self.ACCEPT_JSON,
            "User-Agent": settings.USER_AGENT,
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=self._timeout_seconds,
            transport=self._transport,
        )
        return self._client

    @staticmethod
    def _last_page(response: httpx.Response) -> Optional[int]:
        last = response.links.get("last", {}).get("url")
        if not last:
            return None
        try:
            return int(httpx.URL(last).params.get("page", ""))
        except ValueError:
            return None

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("message"), str):
            return payload["message"]
        return f"GitHub returned HTTP {response.status_code}"
