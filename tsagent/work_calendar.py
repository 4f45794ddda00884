"""
Work calendar generation for the timesheet agent
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from .models import WorkDay, SCHEDULE_TYPES

logger = logging.getLogger(__name__)

# (month, day) pairs: New Year's Day, Labor Day, National Day x3
FIXED_HOLIDAYS = [(1, 1), (5, 1), (10, 1), (10, 2), (10, 3)]

SATURDAY = 5
SUNDAY = 6


class InvalidDateRange(ValueError):
    """Raised when a date range cannot be turned into a calendar"""
    pass


def parse_date(value) -> date:
    """Parse an ISO date string (or date/datetime) into a date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(str(value).strip()).date()
    except (ValueError, OverflowError) as e:
        raise InvalidDateRange(f"Invalid date '{value}': {e}")


def is_fixed_holiday(day: date) -> bool:
    return (day.month, day.day) in FIXED_HOLIDAYS


def _monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def is_big_week(start: date, day: date, is_current_week_big: bool) -> bool:
    """Whether ``day`` falls in a big week, given the start week's flag"""
    weeks_apart = (_monday_of(day) - _monday_of(start)).days // 7
    return is_current_week_big ^ (weeks_apart % 2 == 1)


def _is_rest_day(day: date, start: date, schedule_type: str,
                 single_rest_day: Optional[str], is_current_week_big: Optional[bool]) -> bool:
    weekday = day.weekday()

    if schedule_type == 'single':
        rest = SATURDAY if single_rest_day == 'saturday' else SUNDAY
        return weekday == rest

    if schedule_type == 'alternate' and is_current_week_big is not None:
        if is_big_week(start, day, is_current_week_big):
            return weekday == SUNDAY
        return weekday in (SATURDAY, SUNDAY)

    return weekday in (SATURDAY, SUNDAY)


def generate_work_days(
    start_date,
    end_date,
    daily_hours: float = 8,
    schedule_type: str = 'double',
    exclude_holidays: bool = True,
    single_rest_day: Optional[str] = None,
    is_current_week_big: Optional[bool] = None,
) -> List[WorkDay]:
    """Enumerate every day in [start_date, end_date] and mark the workdays.

    Fixed holidays are checked first and, when ``exclude_holidays`` is set,
    always rest. The remaining days follow the rest schedule:

    * ``double``: Saturday and Sunday rest
    * ``single``: only ``single_rest_day`` rests (Sunday by default)
    * ``alternate``: big weeks rest Sunday, small weeks rest the whole
      weekend; the start week is big when ``is_current_week_big`` is true
      and weeks alternate from there. Without the flag every week is
      treated as a small week.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)

    if start > end:
        raise InvalidDateRange(f"Start date {start.isoformat()} is after end date {end.isoformat()}")

    if schedule_type not in SCHEDULE_TYPES:
        raise ValueError("Schedule type must be one of: single, double, alternate")

    if schedule_type == 'alternate' and is_current_week_big is None:
        logger.debug("Alternate schedule without week flag, using double rest")

    work_days = []
    current = start
    while current <= end:
        holiday = is_fixed_holiday(current)

        if exclude_holidays and holiday:
            is_workday = False
        else:
            is_workday = not _is_rest_day(current, start, schedule_type, single_rest_day, is_current_week_big)

        work_days.append(WorkDay(
            date=current.isoformat(),
            is_workday=is_workday,
            is_holiday=holiday,
            planned_hours=daily_hours if is_workday else 0,
        ))
        current += timedelta(days=1)

    logger.debug(f"Generated {len(work_days)} days, {sum(1 for d in work_days if d.is_workday)} workdays")
    return work_days


def available_hours(work_days: List[WorkDay]) -> float:
    """Planned hours of the days that take part in allocation"""
    return sum(day.planned_hours for day in work_days if day.is_workday and not day.is_holiday)


def current_month_range(today: Optional[date] = None) -> Tuple[str, str]:
    """First and last day of the month containing ``today``"""
    today = today or date.today()
    start = today.replace(day=1)
    end = start + relativedelta(months=1) - timedelta(days=1)
    return start.isoformat(), end.isoformat()
