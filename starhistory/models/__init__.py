"""Value models"""

from starhistory.models.chart import (
    AlignmentMode,
    ChartData,
    ChartPoint,
    ChartSeries,
    RepoCacheEntry,
    RepoHistory,
    StarEvent,
)

__all__ = [
    "AlignmentMode",
    "ChartData",
    "ChartPoint",
    "ChartSeries",
    "RepoCacheEntry",
    "RepoHistory",
    "StarEvent",
]
