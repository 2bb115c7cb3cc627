# src/taskflow/views/calendar.py

from __future__ import annotations

"""
Calendar projection.

Tasks are placed on the calendar day of their due date (timezone-naive).
Weeks start on Sunday. Weekly cells show at most 3 tasks and monthly cells at
most 2; the rest is reported as an overflow count.
"""

import calendar
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, date, timedelta
from enum import StrEnum

from ..core.errors import ValidationError
from ..tasks.models import Task, parse_due_date
from .labels import long_date, short_date

WEEKLY_CELL_LIMIT = 3
MONTHLY_CELL_LIMIT = 2
WEEKDAY_NAMES: tuple[str, ...] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


class Granularity(StrEnum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, raw: str) -> Granularity:
        aliases = {"day": cls.DAILY, "week": cls.WEEKLY, "month": cls.MONTHLY}
        key = (raw or "").strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown calendar view: {raw}") from None


@dataclass(frozen=True, slots=True)
class CalendarCell:
    day: date
    tasks: tuple[Task, ...]
    visible: tuple[Task, ...]
    overflow: int
    in_anchor_month: bool
    is_today: bool


@dataclass(frozen=True, slots=True)
class CalendarView:
    granularity: Granularity
    anchor: date
    title: str
    weeks: tuple[tuple[CalendarCell, ...], ...]

    @property
    def cells(self) -> list[CalendarCell]:
        return [cell for week in self.weeks for cell in week]

    def cell(self, day: date) -> CalendarCell | None:
        for c in self.cells:
            if c.day == day:
                return c
        return None


def tasks_on_date(tasks: Iterable[Task], day: date) -> list[Task]:
    """Tasks due on `day`. Tasks without a parsable due date are skipped."""
    return [t for t in tasks if parse_due_date(t.due_date) == day]


def _bucket_by_day(tasks: Iterable[Task]) -> dict[date, list[Task]]:
    buckets: dict[date, list[Task]] = {}
    for t in tasks:
        d = parse_due_date(t.due_date)
        if d is not None:
            buckets.setdefault(d, []).append(t)
    return buckets


def start_of_week(d: date) -> date:
    # date.weekday(): Monday=0 ... Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def week_days(anchor: date) -> list[date]:
    first = start_of_week(anchor)
    return [first + timedelta(days=i) for i in range(7)]


def month_grid(anchor: date) -> list[list[date]]:
    """Full Sunday-started weeks covering the anchor's month."""
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    return cal.monthdatescalendar(anchor.year, anchor.month)


# Anchors whose full month grid (Sunday-started weeks) stays within date.min/date.max.
ANCHOR_MIN = date(1, 2, 1)
ANCHOR_MAX = date(9999, 11, 30)


def add_months(d: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    idx = d.year * 12 + (d.month - 1) + months
    year, month = divmod(idx, 12)
    month += 1
    if not MINYEAR <= year <= MAXYEAR:
        raise ValidationError(f"Calendar cannot go beyond years {MINYEAR}-{MAXYEAR}.")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(d.day, last_day))


def shift_anchor(anchor: date, granularity: Granularity, steps: int) -> date:
    """Move the anchor by `steps` days, weeks or months within ANCHOR_MIN..ANCHOR_MAX."""
    try:
        if granularity == Granularity.DAILY:
            shifted = anchor + timedelta(days=steps)
        elif granularity == Granularity.WEEKLY:
            shifted = anchor + timedelta(weeks=steps)
        else:
            shifted = add_months(anchor, steps)
    except OverflowError:
        shifted = None
    if shifted is None or not ANCHOR_MIN <= shifted <= ANCHOR_MAX:
        raise ValidationError(f"Calendar cannot move past {ANCHOR_MIN} .. {ANCHOR_MAX}.")
    return shifted


def view_title(granularity: Granularity, anchor: date) -> str:
    if granularity == Granularity.DAILY:
        return f"{anchor:%B} {anchor.day}, {anchor.year}"
    if granularity == Granularity.WEEKLY:
        days = week_days(anchor)
        return f"{short_date(days[0])} - {long_date(days[-1])}"
    return f"{anchor:%B} {anchor.year}"


def _make_cell(
    day: date,
    buckets: dict[date, list[Task]],
    *,
    limit: int | None,
    anchor: date,
    today: date,
) -> CalendarCell:
    items = tuple(buckets.get(day, ()))
    visible = items if limit is None else items[:limit]
    return CalendarCell(
        day=day,
        tasks=items,
        visible=visible,
        overflow=len(items) - len(visible),
        in_anchor_month=(day.year, day.month) == (anchor.year, anchor.month),
        is_today=day == today,
    )


def _build(
    granularity: Granularity,
    tasks: Iterable[Task],
    anchor: date,
    rows: Sequence[Sequence[date]],
    limit: int | None,
    today: date | None,
) -> CalendarView:
    today = today or date.today()
    buckets = _bucket_by_day(tasks)
    weeks = tuple(
        tuple(_make_cell(d, buckets, limit=limit, anchor=anchor, today=today) for d in row)
        for row in rows
    )
    return CalendarView(
        granularity=granularity,
        anchor=anchor,
        title=view_title(granularity, anchor),
        weeks=weeks,
    )


def daily_view(tasks: Iterable[Task], anchor: date, *, today: date | None = None) -> CalendarView:
    return _build(Granularity.DAILY, tasks, anchor, [[anchor]], None, today)


def weekly_view(tasks: Iterable[Task], anchor: date, *, today: date | None = None) -> CalendarView:
    return _build(Granularity.WEEKLY, tasks, anchor, [week_days(anchor)], WEEKLY_CELL_LIMIT, today)


def monthly_view(tasks: Iterable[Task], anchor: date, *, today: date | None = None) -> CalendarView:
    return _build(Granularity.MONTHLY, tasks, anchor, month_grid(anchor), MONTHLY_CELL_LIMIT, today)


_RENDERERS: dict[Granularity, Callable[..., CalendarView]] = {
    Granularity.DAILY: daily_view,
    Granularity.WEEKLY: weekly_view,
    Granularity.MONTHLY: monthly_view,
}


def project_calendar(
    tasks: Iterable[Task],
    anchor: date,
    granularity: Granularity,
    *,
    today: date | None = None,
) -> CalendarView:
    return _RENDERERS[granularity](tasks, anchor, today=today)


class CalendarNavigator:
    """
    Anchor date + active granularity.

    previous()/next() move by one unit of the granularity; today() jumps back
    to the current date. The clock is injectable for tests.
    """

    def __init__(
        self,
        granularity: Granularity = Granularity.MONTHLY,
        anchor: date | None = None,
        *,
        today_fn: Callable[[], date] = date.today,
    ) -> None:
        self._today_fn = today_fn
        self.granularity = granularity
        self.anchor = anchor or today_fn()

    def previous(self) -> date:
        self.anchor = shift_anchor(self.anchor, self.granularity, -1)
        return self.anchor

    def next(self) -> date:
        self.anchor = shift_anchor(self.anchor, self.granularity, 1)
        return self.anchor

    def today(self) -> date:
        self.anchor = self._today_fn()
        return self.anchor

    def set_granularity(self, granularity: Granularity) -> None:
        self.granularity = granularity

    def render(self, tasks: Iterable[Task]) -> CalendarView:
        return project_calendar(tasks, self.anchor, self.granularity, today=self._today_fn())
