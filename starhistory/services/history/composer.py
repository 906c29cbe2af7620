"""Merge cached repository histories into one chart-ready series set."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Mapping, Optional, Sequence, Union

from starhistory.models.chart import (
    AlignmentMode,
    ChartData,
    ChartPoint,
    ChartSeries,
    RepoCacheEntry,
    StarEvent,
)
from starhistory.services.history.cache import RepoRecordCache

CacheView = Union[RepoRecordCache, Mapping[str, RepoCacheEntry]]


def normalize_history(events: Iterable[StarEvent]) -> list[StarEvent]:
    """Sort by date ascending; for repeated dates the last event wins."""

    by_date: dict[date, StarEvent] = {}
    for event in sorted(events, key=lambda item: item.date):
        by_date[event.date] = event
    return list(by_date.values())


def align_history(events: Sequence[StarEvent], mode: AlignmentMode) -> tuple[ChartPoint, ...]:
    if not events:
        return ()
    if mode is AlignmentMode.ELAPSED:
        origin = events[0].date
        return tuple(ChartPoint(x=(event.date - origin).days, y=event.count) for event in events)
    return tuple(ChartPoint(x=event.date, y=event.count) for event in events)


def compose(cache: CacheView, tracked_ids: Sequence[str], mode: AlignmentMode) -> Optional[ChartData]:
    """Build chart data for tracked ids that have a cache entry.

    Returns None when no tracked repository is cached yet. Cached repositories
    with an empty history are left out, which can yield empty `datasets`.
    """

    entries = cache.snapshot() if isinstance(cache, RepoRecordCache) else cache

    repo_data: list[tuple[str, RepoCacheEntry]] = []
    for repo_id in tracked_ids:
        entry = entries.get(repo_id)
        if entry is not None:
            repo_data.append((repo_id, entry))

    if not repo_data:
        return None

    datasets: list[ChartSeries] = []
    for repo_id, entry in repo_data:
        points = align_history(normalize_history(entry.history), mode)
        if not points:
            continue
        datasets.append(ChartSeries(label=repo_id, logo_url=entry.logo_url, points=points))

    return ChartData(datasets=tuple(datasets), mode=mode)
