from __future__ import annotations

import pytest

from starhistory.models.chart import AlignmentMode
from starhistory.services.history.errors import LocalPreconditionError
from starhistory.services.history.repo_ids import (
    encode_share_hash,
    normalize_repo_id,
    normalize_tracked_ids,
    parse_share_hash,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("octo/repo", "octo/repo"),
        ("  octo/repo  ", "octo/repo"),
        ("github.com/octo/repo", "octo/repo"),
        ("https://github.com/octo/repo.git", "octo/repo"),
        ("https://www.github.com/octo/repo/tree/main?tab=readme", "octo/repo"),
        ("octo/my.repo-name_2", "octo/my.repo-name_2"),
    ],
)
def test_normalize_repo_id_accepts_ids_and_urls(raw: str, expected: str) -> None:
    assert normalize_repo_id(raw) == expected


@pytest.mark.parametrize("raw", ["", "octo", "octo/repo/extra", "octo/re po", "https://gitlab.com/octo/repo"])
def test_normalize_repo_id_rejects_malformed_input(raw: str) -> None:
    with pytest.raises(LocalPreconditionError):
        normalize_repo_id(raw)


def test_normalize_tracked_ids_dedupes_case_insensitively_in_order() -> None:
    assert normalize_tracked_ids(["b/b", "a/a", "B/B", "github.com/a/a", "c/c"]) == ["b/b", "a/a", "c/c"]


def test_share_hash_encoding() -> None:
    assert encode_share_hash(["a/a", "b/b"], AlignmentMode.ELAPSED) == "a/a&b/b&Timeline"
    assert encode_share_hash([], AlignmentMode.CALENDAR) == ""


def test_parse_share_hash_ignores_invalid_segments() -> None:
    repos, mode = parse_share_hash("#a/a&&bogus&b/b&A/A&Timeline")

    assert repos == ["a/a", "b/b"]
    assert mode is AlignmentMode.ELAPSED
    assert parse_share_hash("c/c") == (["c/c"], AlignmentMode.CALENDAR)


def test_alignment_mode_parse_accepts_wire_and_member_names() -> None:
    assert AlignmentMode.parse("timeline") is AlignmentMode.ELAPSED
    assert AlignmentMode.parse("ELAPSED") is AlignmentMode.ELAPSED
    assert AlignmentMode.parse("Date") is AlignmentMode.CALENDAR
    assert AlignmentMode.parse("unknown", default=AlignmentMode.ELAPSED) is AlignmentMode.ELAPSED
    assert AlignmentMode.parse(None) is AlignmentMode.CALENDAR


def test_alignment_mode_lookup_reports_unknown_values() -> None:
    assert AlignmentMode.lookup(" date ") is AlignmentMode.CALENDAR
    assert AlignmentMode.lookup("Timelnie") is None
    assert AlignmentMode.lookup(None) is None
