from __future__ import annotations

from datetime import date

import httpx
import pytest

from starhistory.models.chart import RepoCacheEntry, StarEvent
from starhistory.services.history.cache import RepoRecordCache
from starhistory.services.history.errors import (
    CredentialError,
    HistoryFetchError,
    TransientError,
    UnavailableRepoError,
)
from starhistory.services.history.failure_classifier import (
    RecoveryAction,
    classify_failure,
    classify_status,
)


def _entry(count: int) -> RepoCacheEntry:
    return RepoCacheEntry(history=(StarEvent(date(2024, 1, 1), count),), logo_url="logo")


def test_cache_put_get_has() -> None:
    cache = RepoRecordCache()

    assert cache.get("a/a") is None
    assert cache.has("a/a") is False

    cache.put("a/a", _entry(1))

    assert cache.has("a/a") is True
    assert "a/a" in cache
    assert cache.get("a/a") == _entry(1)
    assert len(cache) == 1


def test_cache_snapshot_is_stable_across_writes() -> None:
    cache = RepoRecordCache()
    cache.put("a/a", _entry(1))
    snapshot = cache.snapshot()
    version = cache.version

    cache.put("b/b", _entry(2))
    cache.put("a/a", _entry(3))

    assert dict(snapshot) == {"a/a": _entry(1)}
    assert cache.get("a/a") == _entry(3)
    assert cache.version == version + 2
    with pytest.raises(TypeError):
        snapshot["c/c"] = _entry(4)  # type: ignore[index]


def test_cache_put_many_is_one_transition_and_skips_empty() -> None:
    cache = RepoRecordCache()

    cache.put_many({})
    assert cache.version == 0

    cache.put_many({"a/a": _entry(1), "b/b": _entry(2)})
    assert cache.version == 1
    assert sorted(cache) == ["a/a", "b/b"]


@pytest.mark.parametrize(
    ("status", "action"),
    [
        (401, RecoveryAction.REQUEST_CREDENTIAL),
        (403, RecoveryAction.REQUEST_CREDENTIAL),
        (404, RecoveryAction.DROP_REPOSITORY),
        (501, RecoveryAction.DROP_REPOSITORY),
        (500, RecoveryAction.WARN),
        (429, RecoveryAction.WARN),
        (None, RecoveryAction.WARN),
    ],
)
def test_classify_status_table(status: int | None, action: RecoveryAction) -> None:
    assert classify_status(status) is action


def test_classify_failure_maps_to_taxonomy_and_keeps_repo_id() -> None:
    credential = classify_failure(HistoryFetchError("Bad credentials", status=401, repo_id="x/x"))
    missing = classify_failure(HistoryFetchError("Not Found", status=404, repo_id="b/b"))
    transient = classify_failure(HistoryFetchError("Server Error", status=502, repo_id="c/c"))

    assert isinstance(credential.error, CredentialError)
    assert credential.repo_id == "x/x"
    assert isinstance(missing.error, UnavailableRepoError)
    assert missing.error.status == 404
    assert isinstance(transient.error, TransientError)
    assert str(transient.error) == "Server Error"


def test_classify_failure_never_raises_on_foreign_errors() -> None:
    network = classify_failure(httpx.ConnectError("connection refused"))
    odd = classify_failure(RuntimeError())

    assert network.action is RecoveryAction.WARN
    assert network.repo_id is None
    assert odd.action is RecoveryAction.WARN
    assert str(odd.error) == "RuntimeError"
