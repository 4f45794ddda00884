"""
End-to-end timesheet generation
"""

import logging
import random
from datetime import datetime
from typing import List, Optional

from .model_config import ModelConfigStore
from .models import ProjectConfig, TimesheetResult, TimesheetSummary
from .task_agent import TaskAgent, TaskAgentError
from .timesheet_agent import TimesheetAgent, TimesheetError
from .work_calendar import InvalidDateRange, generate_work_days

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when a generation request is rejected; the message is meant for the user"""
    pass


class TimesheetGenerator:
    """Runs calendar generation, hour distribution and formatting in sequence"""

    def __init__(self, model_store: Optional[ModelConfigStore] = None,
                 rng: Optional[random.Random] = None, llm_timeout: float = 60):
        self.task_agent = TaskAgent(model_store=model_store, rng=rng, timeout=llm_timeout)
        self.timesheet_agent = TimesheetAgent()
        self.warnings: List[str] = []

    def generate(self, project: ProjectConfig) -> TimesheetResult:
        self.warnings = []

        if not project.tasks:
            raise GenerationError("Add at least one task before generating a timesheet")

        hours = project.working_hours
        logger.info(f"Generating timesheet for {project.start_date} to {project.end_date} "
                    f"({project.distribution_mode} mode, {len(project.tasks)} tasks)")

        try:
            work_days = generate_work_days(
                project.start_date,
                project.end_date,
                hours.daily_hours,
                hours.schedule_type,
                hours.exclude_holidays,
                hours.single_rest_day,
                hours.is_current_week_big,
            )
        except InvalidDateRange as e:
            raise GenerationError(f"Invalid date range: {e}")

        try:
            assignments = self.task_agent.process(project.tasks, work_days, project.distribution_mode)
        except TaskAgentError as e:
            raise GenerationError(str(e))
        finally:
            self.warnings.extend(self.task_agent.warnings)

        try:
            entries = self.timesheet_agent.process(assignments, project.work_content or None)
        except TimesheetError as e:
            raise GenerationError(f"Could not build timesheet: {e}")

        summary = TimesheetSummary.from_entries(entries)
        logger.info(f"Generated {summary.total_days} entries, {summary.total_hours:.2f}h total")

        return TimesheetResult(
            entries=entries,
            summary=summary,
            generated_at=datetime.now().isoformat(),
        )
