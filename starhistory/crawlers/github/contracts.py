"""Typed fetch contracts returned by the GitHub client."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class FetchState(str, enum.Enum):
    OK = "ok"
    EMPTY = "empty"
    FAILED = "failed"


@dataclass(slots=True)
class FetchResult(Generic[T]):
    """Outcome of one GitHub request, never raised."""

    state: FetchState
    data: Optional[T] = None
    status_code: Optional[int] = None
    error: Optional[str] = None
    last_page: Optional[int] = None


RepoContract = FetchResult[dict[str, Any]]
StargazerContract = FetchResult[list[dict[str, Any]]]
