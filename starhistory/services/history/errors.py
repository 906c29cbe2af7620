"""Error taxonomy for the star-history pipeline."""

from __future__ import annotations

from typing import Optional


class StarHistoryError(Exception):
    """Base class for pipeline errors."""


class HistoryFetchError(StarHistoryError):
    """Remote failure for one repository, or for a whole batch when `repo_id` is None."""

    def __init__(self, message: str, *, status: Optional[int] = None, repo_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.repo_id = repo_id

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, status={self.status!r}, repo_id={self.repo_id!r})"


class CredentialError(HistoryFetchError):
    """Credential missing, invalid or insufficiently scoped (401/403)."""


class UnavailableRepoError(HistoryFetchError):
    """Repository does not exist or has no star history (404/501)."""


class TransientError(HistoryFetchError):
    """Any other status, or a network failure."""


class LocalPreconditionError(StarHistoryError, ValueError):
    """Caller input rejected before any remote call."""
