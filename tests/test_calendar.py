# tests/test_calendar.py

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from taskflow.core.errors import ValidationError
from taskflow.tasks.models import Task, TaskStatus, Priority
from taskflow.views.calendar import (
    CalendarNavigator,
    Granularity,
    add_months,
    daily_view,
    monthly_view,
    shift_anchor,
    start_of_week,
    tasks_on_date,
    view_title,
    weekly_view,
)

TS = datetime(2024, 6, 1, tzinfo=timezone.utc)


def due(tid: str, due_date: str | None) -> Task:
    return Task(
        id=tid,
        title=f"task {tid}",
        description="",
        priority=Priority.MEDIUM,
        status=TaskStatus.PENDING,
        due_date=due_date,
        project_id=None,
        created_at=TS,
        updated_at=TS,
    )


def test_tasks_on_date_matches_calendar_day_and_skips_bad_dates() -> None:
    tasks = [
        due("1", "2024-06-10"),
        due("2", "2024-06-10T23:59:00"),
        due("3", "2024-06-11"),
        due("4", "not a date"),
        due("5", None),
    ]
    assert [t.id for t in tasks_on_date(tasks, date(2024, 6, 10))] == ["1", "2"]


def test_start_of_week_is_sunday() -> None:
    assert start_of_week(date(2024, 6, 15)) == date(2024, 6, 9)  # Saturday
    assert start_of_week(date(2024, 6, 9)) == date(2024, 6, 9)  # Sunday
    assert start_of_week(date(2024, 6, 10)) == date(2024, 6, 9)  # Monday


def test_daily_view_is_uncapped() -> None:
    tasks = [due(str(i), "2024-06-15") for i in range(5)]
    view = daily_view(tasks, date(2024, 6, 15), today=date(2024, 6, 15))
    cell = view.weeks[0][0]
    assert len(cell.visible) == 5
    assert cell.overflow == 0
    assert cell.is_today
    assert view.title == "June 15, 2024"


def test_weekly_view_has_seven_days_capped_at_three() -> None:
    tasks = [due(str(i), "2024-06-12") for i in range(5)] + [due("x", "2024-06-16")]
    view = weekly_view(tasks, date(2024, 6, 15), today=date(2024, 1, 1))

    days = [c.day for c in view.cells]
    assert days[0] == date(2024, 6, 9)
    assert days[-1] == date(2024, 6, 15)
    assert len(days) == 7

    wed = view.cell(date(2024, 6, 12))
    assert wed is not None
    assert [t.id for t in wed.visible] == ["0", "1", "2"]
    assert wed.overflow == 2
    assert len(wed.tasks) == 5
    # 2024-06-16 belongs to the following week.
    assert all(t.id != "x" for c in view.cells for t in c.tasks)
    assert view.title == "Jun 9 - Jun 15, 2024"


def test_monthly_view_covers_full_weeks_with_adjacent_days() -> None:
    tasks = [
        due("a", "2024-05-26"),
        due("b", "2024-06-15"),
        due("c", "2024-06-15"),
        due("d", "2024-06-15"),
        due("e", "2024-07-06"),
    ]
    view = monthly_view(tasks, date(2024, 6, 15), today=date(2024, 6, 20))

    cells = view.cells
    assert cells[0].day == date(2024, 5, 26)
    assert cells[-1].day == date(2024, 7, 6)
    assert len(cells) % 7 == 0
    assert all(len(week) == 7 for week in view.weeks)

    first = view.cell(date(2024, 5, 26))
    assert first is not None and not first.in_anchor_month
    assert [t.id for t in first.tasks] == ["a"]

    mid = view.cell(date(2024, 6, 15))
    assert mid is not None and mid.in_anchor_month
    assert len(mid.visible) == 2
    assert mid.overflow == 1

    assert view.cell(date(2024, 6, 20)).is_today
    assert view.title == "June 2024"


def test_add_months_clamps_day() -> None:
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 3, 31), -1) == date(2024, 2, 29)
    assert add_months(date(2024, 12, 15), 1) == date(2025, 1, 15)
    assert add_months(date(2024, 1, 15), -1) == date(2023, 12, 15)


@pytest.mark.parametrize(
    "granularity, expected",
    [
        (Granularity.DAILY, date(2024, 6, 16)),
        (Granularity.WEEKLY, date(2024, 6, 22)),
        (Granularity.MONTHLY, date(2024, 7, 15)),
    ],
)
def test_shift_anchor_moves_one_unit(granularity: Granularity, expected: date) -> None:
    assert shift_anchor(date(2024, 6, 15), granularity, 1) == expected
    assert shift_anchor(expected, granularity, -1) == date(2024, 6, 15)


def test_navigator_previous_next_today() -> None:
    nav = CalendarNavigator(Granularity.WEEKLY, date(2024, 6, 15), today_fn=lambda: date(2024, 1, 3))

    assert nav.next() == date(2024, 6, 22)
    assert nav.previous() == date(2024, 6, 15)
    nav.set_granularity(Granularity.DAILY)
    assert nav.previous() == date(2024, 6, 14)
    assert nav.today() == date(2024, 1, 3)

    view = nav.render([due("1", "2024-01-03")])
    assert view.granularity == Granularity.DAILY
    assert view.weeks[0][0].is_today
    assert [t.id for t in view.weeks[0][0].tasks] == ["1"]


def test_view_title_weekly_across_years() -> None:
    assert view_title(Granularity.WEEKLY, date(2024, 12, 31)) == "Dec 29 - Jan 4, 2025"


def test_granularity_parse_accepts_aliases() -> None:
    assert Granularity.parse("week") == Granularity.WEEKLY
    assert Granularity.parse("Monthly") == Granularity.MONTHLY
    with pytest.raises(ValidationError):
        Granularity.parse("yearly")


def test_navigation_stops_at_calendar_limits() -> None:
    with pytest.raises(ValidationError):
        add_months(date(9999, 12, 15), 1)
    with pytest.raises(ValidationError):
        shift_anchor(date(9999, 12, 31), Granularity.DAILY, 1)
    with pytest.raises(ValidationError):
        shift_anchor(date(1, 1, 3), Granularity.WEEKLY, -1)

    nav = CalendarNavigator(Granularity.MONTHLY, date(9999, 11, 15), today_fn=lambda: date(2024, 6, 1))
    with pytest.raises(ValidationError):
        nav.next()
    assert nav.anchor == date(9999, 11, 15)
    assert nav.render([]).title == "November 9999"
