"""Star history and chart value types."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from typing import Union


class AlignmentMode(str, enum.Enum):
    """Horizontal axis policy for the composed chart."""

    CALENDAR = "Date"
    ELAPSED = "Timeline"

    @classmethod
    def parse(cls, raw: "str | AlignmentMode | None", *, default: "AlignmentMode | None" = None) -> "AlignmentMode":
        if isinstance(raw, AlignmentMode):
            return raw
        return cls.lookup(raw) or default or cls.CALENDAR

    @classmethod
    def lookup(cls, raw: "str | None") -> "AlignmentMode | None":
        """Match a wire value or member name case-insensitively; None when unknown."""
        if raw is None:
            return None
        text = str(raw).strip().lower()
        for mode in cls:
            if text in (mode.value.lower(), mode.name.lower()):
                return mode
        return None

    def toggled(self) -> "AlignmentMode":
        return AlignmentMode.ELAPSED if self is AlignmentMode.CALENDAR else AlignmentMode.CALENDAR


@dataclass(frozen=True, slots=True)
class StarEvent:
    """A dated cumulative star total."""

    date: date
    count: int


@dataclass(frozen=True, slots=True)
class RepoCacheEntry:
    """Cached history and logo of one repository."""

    history: tuple[StarEvent, ...]
    logo_url: str = ""


@dataclass(frozen=True, slots=True)
class RepoHistory:
    """One repository resolved by the remote history source."""

    repo_id: str
    history: tuple[StarEvent, ...]
    logo_url: str = ""

    def to_cache_entry(self) -> RepoCacheEntry:
        return RepoCacheEntry(history=self.history, logo_url=self.logo_url)


ChartX = Union[date, int]


@dataclass(frozen=True, slots=True)
class ChartPoint:
    x: ChartX
    y: int


@dataclass(frozen=True, slots=True)
class ChartSeries:
    """Points of one repository in tracked order."""

    label: str
    logo_url: str
    points: tuple[ChartPoint, ...]


@dataclass(frozen=True, slots=True)
class ChartData:
    """Multi-series chart; `datasets` follow the tracked repository order."""

    datasets: tuple[ChartSeries, ...]
    mode: AlignmentMode = AlignmentMode.CALENDAR

    def to_payload(self) -> dict[str, object]:
        """JSON-ready representation with ISO dates."""

        return {
            "mode": self.mode.value,
            "datasets": [
                {
                    "label": series.label,
                    "logo": series.logo_url,
                    "data": [
                        {"x": point.x.isoformat() if isinstance(point.x, date) else point.x, "y": point.y}
                        for point in series.points
                    ],
                }
                for series in self.datasets
            ],
        }
