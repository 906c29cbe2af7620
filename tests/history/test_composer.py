from __future__ import annotations

from datetime import date

from starhistory.models.chart import AlignmentMode, ChartPoint, RepoCacheEntry, StarEvent
from starhistory.services.history.cache import RepoRecordCache
from starhistory.services.history.composer import compose, normalize_history


def _cache(**entries: list[tuple[date, int]]) -> RepoRecordCache:
    cache = RepoRecordCache()
    for key, events in entries.items():
        repo_id = key.replace("__", "/")
        cache.put(
            repo_id,
            RepoCacheEntry(
                history=tuple(StarEvent(date=day, count=count) for day, count in events),
                logo_url=f"https://avatars.example/{repo_id.split('/')[0]}",
            ),
        )
    return cache


def test_compose_returns_none_when_no_tracked_repo_is_cached() -> None:
    cache = _cache(a__a=[(date(2024, 1, 1), 1)])

    assert compose(cache, ["x/x"], AlignmentMode.CALENDAR) is None
    assert compose(cache, [], AlignmentMode.ELAPSED) is None


def test_compose_skips_uncached_ids_and_preserves_tracked_order() -> None:
    cache = _cache(
        a__a=[(date(2024, 1, 1), 1)],
        c__c=[(date(2023, 5, 1), 7)],
    )

    chart = compose(cache, ["c/c", "b/b", "a/a"], AlignmentMode.CALENDAR)

    assert chart is not None
    assert [series.label for series in chart.datasets] == ["c/c", "a/a"]
    assert chart.datasets[0].logo_url == "https://avatars.example/c"


def test_calendar_mode_keeps_original_dates() -> None:
    days = [date(2022, 3, 1), date(2022, 3, 9), date(2023, 1, 2)]
    cache = _cache(a__a=[(day, index + 1) for index, day in enumerate(days)])

    chart = compose(cache, ["a/a"], AlignmentMode.CALENDAR)

    assert chart is not None
    assert [point.x for point in chart.datasets[0].points] == days
    assert [point.y for point in chart.datasets[0].points] == [1, 2, 3]


def test_elapsed_mode_rebases_each_repository_independently() -> None:
    cache = _cache(
        a__a=[(date(2020, 1, 1), 5), (date(2020, 1, 11), 9), (date(2020, 3, 1), 20)],
        b__b=[(date(2023, 6, 30), 1), (date(2023, 7, 1), 4)],
    )

    chart = compose(cache, ["a/a", "b/b"], AlignmentMode.ELAPSED)

    assert chart is not None
    assert chart.datasets[0].points == (ChartPoint(0, 5), ChartPoint(10, 9), ChartPoint(60, 20))
    assert chart.datasets[1].points == (ChartPoint(0, 1), ChartPoint(1, 4))
    for series in chart.datasets:
        offsets = [point.x for point in series.points]
        assert offsets[0] == 0
        assert all(later >= earlier >= 0 for earlier, later in zip(offsets, offsets[1:]))


def test_same_day_events_keep_latest_count() -> None:
    cache = _cache(a__a=[(date(2024, 2, 1), 3), (date(2024, 2, 2), 10), (date(2024, 2, 2), 15)])

    chart = compose(cache, ["a/a"], AlignmentMode.CALENDAR)

    assert chart is not None
    assert chart.datasets[0].points == (ChartPoint(date(2024, 2, 1), 3), ChartPoint(date(2024, 2, 2), 15))


def test_unsorted_history_is_sorted_before_alignment() -> None:
    events = [
        StarEvent(date(2024, 1, 3), 30),
        StarEvent(date(2024, 1, 1), 10),
        StarEvent(date(2024, 1, 2), 20),
    ]

    assert [event.count for event in normalize_history(events)] == [10, 20, 30]

    cache = RepoRecordCache({"a/a": RepoCacheEntry(history=tuple(events))})
    chart = compose(cache, ["a/a"], AlignmentMode.ELAPSED)
    assert chart is not None
    assert [point.x for point in chart.datasets[0].points] == [0, 1, 2]


def test_cached_repository_with_empty_history_yields_empty_datasets() -> None:
    cache = RepoRecordCache({"a/a": RepoCacheEntry(history=())})

    chart = compose(cache, ["a/a"], AlignmentMode.CALENDAR)

    assert chart is not None
    assert chart.datasets == ()


def test_compose_is_idempotent_over_unchanged_inputs() -> None:
    cache = _cache(
        a__a=[(date(2021, 1, 1), 1), (date(2021, 2, 1), 2)],
        b__b=[(date(2022, 1, 1), 3)],
    )

    first = compose(cache, ["b/b", "a/a"], AlignmentMode.ELAPSED)
    second = compose(cache, ["b/b", "a/a"], AlignmentMode.ELAPSED)

    assert first == second
    assert first is not None and first.to_payload() == second.to_payload()


def test_payload_serializes_dates_as_iso_strings() -> None:
    cache = _cache(a__a=[(date(2024, 5, 6), 12)])

    payload = compose(cache, ["a/a"], AlignmentMode.CALENDAR).to_payload()

    assert payload == {
        "mode": "Date",
        "datasets": [
            {
                "label": "a/a",
                "logo": "https://avatars.example/a",
                "data": [{"x": "2024-05-06", "y": 12}],
            }
        ],
    }
