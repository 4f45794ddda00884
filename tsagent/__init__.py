__all__ = ["main", "Task", "WorkDay", "DailyAssignment", "TimesheetEntry", "TimesheetResult", "ProjectConfig"]
from .models import Task, WorkDay, DailyAssignment, TimesheetEntry, TimesheetResult, ProjectConfig
from .cli import main
__version__ = "0.1.0"
