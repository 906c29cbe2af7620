"""Repository identifier normalization and share-hash encoding."""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from starhistory.models.chart import AlignmentMode
from starhistory.services.history.errors import LocalPreconditionError

_SEGMENT = r"[A-Za-z0-9._-]+"
_REPO_ID_PATTERN = re.compile(rf"^(?P<owner>{_SEGMENT})/(?P<name>{_SEGMENT})$")
_URL_PREFIX = re.compile(r"^(?:https?://)?(?:www\.)?github\.com/", re.IGNORECASE)


def normalize_repo_id(raw: str) -> str:
    """Return canonical `owner/name` for an id or GitHub URL."""

    if not isinstance(raw, str):
        raise LocalPreconditionError(f"Repository id must be a string, got {type(raw).__name__}")

    text = _URL_PREFIX.sub("", raw.strip())
    text = text.split("?", 1)[0].split("#", 1)[0].strip("/")
    parts = [part for part in text.split("/") if part]
    if len(parts) < 2:
        raise LocalPreconditionError(f"Invalid repository id: {raw!r}")

    owner, name = parts[0], parts[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    candidate = f"{owner}/{name}"
    if len(parts) > 2 and not _URL_PREFIX.match(raw.strip()):
        raise LocalPreconditionError(f"Invalid repository id: {raw!r}")
    if not _REPO_ID_PATTERN.match(candidate) or name in (".", ".."):
        raise LocalPreconditionError(f"Invalid repository id: {raw!r}")
    return candidate


def normalize_tracked_ids(raw_ids: Iterable[str]) -> list[str]:
    """Canonicalize ids and drop case-insensitive duplicates, keeping first occurrence order."""

    tracked: list[str] = []
    seen: set[str] = set()
    for raw in raw_ids:
        repo_id = normalize_repo_id(raw)
        key = repo_id.lower()
        if key in seen:
            continue
        seen.add(key)
        tracked.append(repo_id)
    return tracked


def encode_share_hash(repo_ids: Sequence[str], mode: AlignmentMode) -> str:
    """Encode the tracked set as `owner/a&owner/b&Date`."""

    if not repo_ids:
        return ""
    return "&".join([*repo_ids, mode.value])


def parse_share_hash(text: str) -> tuple[list[str], AlignmentMode]:
    """Parse a share hash; invalid segments are ignored and the mode defaults to Calendar."""

    mode = AlignmentMode.CALENDAR
    repo_ids: list[str] = []
    seen: set[str] = set()
    for segment in (text or "").lstrip("#").split("&"):
        segment = segment.strip()
        if not segment:
            continue
        if segment in (AlignmentMode.CALENDAR.value, AlignmentMode.ELAPSED.value):
            mode = AlignmentMode(segment)
            continue
        try:
            repo_id = normalize_repo_id(segment)
        except LocalPreconditionError:
            continue
        if repo_id.lower() not in seen:
            seen.add(repo_id.lower())
            repo_ids.append(repo_id)
    return repo_ids, mode
