"""
Conversion of daily assignments into timesheet rows
"""

import logging
from typing import List, Optional, Tuple
from uuid import uuid4

from .models import DailyAssignment, TimesheetEntry, round_hours

logger = logging.getLogger(__name__)

# remaining_hours is measured against a fixed 8h day, not the configured daily hours
NOMINAL_DAILY_HOURS = 8

OTHER_WORK = "Other work"


class TimesheetError(Exception):
    """Raised when assignments cannot be turned into a timesheet"""
    pass


class TimesheetAgent:
    """Turns distributor output into one timesheet entry per day"""

    def process(self, assignments: List[DailyAssignment],
                work_content: Optional[str] = None) -> List[TimesheetEntry]:
        self.validate_input(assignments)
        return [self.convert_assignment(assignment, work_content) for assignment in assignments]

    def validate_input(self, assignments: List[DailyAssignment]) -> None:
        if not assignments:
            raise TimesheetError("Assignment list is empty")

        for assignment in assignments:
            if not assignment.date:
                raise TimesheetError("Assignment is missing its date")
            if not assignment.tasks:
                logger.warning(f"No tasks allocated on {assignment.date}")

    def convert_assignment(self, assignment: DailyAssignment,
                           work_content: Optional[str] = None) -> TimesheetEntry:
        hours_spent = round_hours(assignment.total_hours or 0)
        return TimesheetEntry(
            id=uuid4().hex,
            date=assignment.date,
            work_content=self.generate_work_content(assignment, work_content),
            hours_spent=hours_spent,
            remaining_hours=calculate_remaining_hours(hours_spent),
            task_id=assignment.tasks[0].task_id if assignment.tasks else None,
            is_editable=True,
        )

    @staticmethod
    def generate_work_content(assignment: DailyAssignment, work_content: Optional[str] = None) -> str:
        """Summarize a day's tasks in one line; a non-empty override wins outright"""
        if work_content:
            return work_content

        tasks = assignment.tasks
        if not tasks:
            return OTHER_WORK

        if len(tasks) == 1:
            task = tasks[0]
            return task.work_description or f"{task.task_name} related work"

        descriptions = [t.work_description for t in tasks if t.work_description][:2]
        if descriptions:
            content = "; ".join(descriptions)
            if len(tasks) > 2:
                return f"{content} and {len(tasks) - 2} more items"
            return content

        names = ", ".join(t.task_name for t in tasks[:2])
        if len(tasks) > 2:
            return f"{names} and {len(tasks) - 2} more modules development"
        return f"{names} development"


def calculate_remaining_hours(hours_spent: float) -> float:
    return round_hours(max(0, NOMINAL_DAILY_HOURS - hours_spent))


def validate_timesheet(entries: List[TimesheetEntry]) -> Tuple[bool, List[str], List[str]]:
    """Check entries for missing fields and implausible hours"""
    errors = []
    warnings = []

    for index, entry in enumerate(entries, start=1):
        if not entry.date:
            errors.append(f"Row {index}: date is required")

        if not entry.work_content:
            errors.append(f"Row {index}: work content is required")

        if entry.hours_spent < 0:
            errors.append(f"Row {index}: hours spent cannot be negative")

        if entry.hours_spent > 24:
            warnings.append(f"Row {index}: more than 24 hours in one day, please check")
        elif entry.hours_spent > 12:
            warnings.append(f"Row {index}: more than 12 hours in one day, please confirm")

    return len(errors) == 0, errors, warnings
