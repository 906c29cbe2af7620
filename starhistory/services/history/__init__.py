"""Star-history aggregation services."""

from starhistory.services.history.cache import RepoRecordCache
from starhistory.services.history.composer import compose, normalize_history
from starhistory.services.history.errors import (
    CredentialError,
    HistoryFetchError,
    LocalPreconditionError,
    StarHistoryError,
    TransientError,
    UnavailableRepoError,
)
from starhistory.services.history.failure_classifier import (
    ClassifiedFailure,
    RecoveryAction,
    classify_failure,
    classify_status,
)
from starhistory.services.history.fetcher import FetchOutcome, HistoryBatch, RemoteHistoryFetcher

__all__ = [
    "RepoRecordCache",
    "compose",
    "normalize_history",
    "StarHistoryError",
    "HistoryFetchError",
    "CredentialError",
    "UnavailableRepoError",
    "TransientError",
    "LocalPreconditionError",
    "RecoveryAction",
    "ClassifiedFailure",
    "classify_status",
    "classify_failure",
    "HistoryBatch",
    "FetchOutcome",
    "RemoteHistoryFetcher",
]
