"""Failure classification for star-history fetch cycles."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from starhistory.services.history.errors import (
    CredentialError,
    HistoryFetchError,
    TransientError,
    UnavailableRepoError,
)

CREDENTIAL_STATUSES = frozenset({401, 403})
UNAVAILABLE_STATUSES = frozenset({404, 501})


class RecoveryAction(str, enum.Enum):
    REQUEST_CREDENTIAL = "request_credential"
    DROP_REPOSITORY = "drop_repository"
    WARN = "warn"


@dataclass(frozen=True, slots=True)
class ClassifiedFailure:
    """One failing repository paired with the action the cycle must take."""

    action: RecoveryAction
    error: HistoryFetchError

    @property
    def repo_id(self) -> Optional[str]:
        return self.error.repo_id


def classify_status(status: Optional[int]) -> RecoveryAction:
    """Map an HTTP-like status to a recovery action. Unknown or missing statuses only warn."""

    if status in CREDENTIAL_STATUSES:
        return RecoveryAction.REQUEST_CREDENTIAL
    if status in UNAVAILABLE_STATUSES:
        return RecoveryAction.DROP_REPOSITORY
    return RecoveryAction.WARN


_ERROR_TYPES: dict[RecoveryAction, type[HistoryFetchError]] = {
    RecoveryAction.REQUEST_CREDENTIAL: CredentialError,
    RecoveryAction.DROP_REPOSITORY: UnavailableRepoError,
    RecoveryAction.WARN: TransientError,
}


def classify_failure(error: BaseException) -> ClassifiedFailure:
    """Classify any fetch failure into exactly one action and a taxonomy error."""

    status = getattr(error, "status", None)
    if not isinstance(status, int) or isinstance(status, bool):
        status = None
    repo_id = getattr(error, "repo_id", None)
    if not isinstance(repo_id, str):
        repo_id = None

    action = classify_status(status)
    error_type = _ERROR_TYPES[action]
    if type(error) is error_type:
        classified = error
    else:
        classified = error_type(str(error) or type(error).__name__, status=status, repo_id=repo_id)
    return ClassifiedFailure(action=action, error=classified)
