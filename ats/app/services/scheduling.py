from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterable, Optional

from ats.app.models import CalendarDay, InterviewRecord, TimeSlot

SLOT_START = "09:00"
SLOT_END = "17:30"
SLOT_MINUTES = 30


def interviews_for_date(
    interviews: Iterable[InterviewRecord], day: date
) -> list[InterviewRecord]:
    return sorted(
        (interview for interview in interviews if interview.date == day),
        key=lambda interview: interview.time,
    )


def month_grid(
    interviews: Iterable[InterviewRecord], year: int, month: int
) -> list[Optional[CalendarDay]]:
    """
    Calendar cells for one month, Sunday first.

    Leading cells before the first of the month are None so the list lines up
    with a seven-column week view.
    """
    items = list(interviews)
    first_weekday, days_in_month = calendar.monthrange(year, month)
    # monthrange counts Monday as 0.
    leading = (first_weekday + 1) % 7
    cells: list[Optional[CalendarDay]] = [None] * leading
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        cells.append(CalendarDay(date=day, interviews=interviews_for_date(items, day)))
    return cells


def slot_times(
    start: str = SLOT_START, end: str = SLOT_END, step_minutes: int = SLOT_MINUTES
) -> list[str]:
    current = datetime.strptime(start, "%H:%M")
    last = datetime.strptime(end, "%H:%M")
    times: list[str] = []
    while current <= last:
        times.append(current.strftime("%H:%M"))
        current += timedelta(minutes=step_minutes)
    return times


def time_slots(interviews: Iterable[InterviewRecord], day: date) -> list[TimeSlot]:
    booked: dict[str, InterviewRecord] = {}
    for interview in interviews_for_date(interviews, day):
        booked.setdefault(interview.time, interview)
    return [
        TimeSlot(time=slot, available=slot not in booked, interview=booked.get(slot))
        for slot in slot_times()
    ]
