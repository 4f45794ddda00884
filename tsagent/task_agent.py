"""
Task hour distribution across workdays
"""

import copy
import logging
import random
from typing import Callable, Dict, List, Optional

from .llm_client import LLMClient, LLMError, extract_json_object
from .model_config import ModelConfigStore
from .models import DailyAssignment, ModelConfig, Task, TaskAllocation, WorkDay, round_hours
from .work_calendar import available_hours

logger = logging.getLogger(__name__)

PRIORITY_WEIGHTS = {'high': 3, 'medium': 2, 'low': 1}

DESCRIPTION_TEMPLATES = [
    "Developed {name} module",
    "Optimized {name} logic",
    "Implemented {name} core features",
    "Debugged {name} module issues",
    "Refined {name} feature details",
]

MODE_DESCRIPTIONS = {
    'daily': "Even split: spread task hours as evenly as possible over every workday",
    'priority': "Priority first: schedule high-priority tasks first so important work finishes early",
    'feature': "By feature: keep each task on consecutive days to finish one feature before the next",
}

DISTRIBUTION_SYSTEM_PROMPT = """You are a work-hour planning assistant. Given tasks, workdays and a distribution strategy, plan a realistic daily schedule.

Strategies:
- daily: spread task hours evenly over the workdays to balance the load
- priority: schedule high-priority tasks first
- feature: group each task on consecutive days to limit context switching

Rules:
1. A day's total hours must not exceed that day's plannedHours
2. All task hours should be allocated
3. Keep the plan close to how people actually work and avoid switching tasks too often
4. Reply strictly in the requested JSON format"""

DESCRIPTION_SYSTEM_PROMPT = (
    "You are a timesheet assistant who writes short, professional descriptions of daily work. "
    "Produce descriptions that fit a corporate timesheet."
)

REFERENCE_TEXT_LIMIT = 4000


def split_cents(total: int, weights: List[int]) -> List[int]:
    """Split ``total`` proportionally to ``weights`` by largest remainder.

    The parts always sum to ``total`` and no part exceeds its weight while
    ``total`` is at most ``sum(weights)``. Ties go to the earlier weight.
    """
    weight_sum = sum(weights)
    if total <= 0 or weight_sum <= 0:
        return [0] * len(weights)

    parts = [total * w // weight_sum for w in weights]
    remainders = [total * w % weight_sum for w in weights]
    leftover = total - sum(parts)
    for i in sorted(range(len(weights)), key=lambda i: -remainders[i])[:leftover]:
        parts[i] += 1
    return parts


def _reply_text(value) -> str:
    """A model-supplied string field, or "" when it is missing or not a string"""
    return value.strip() if isinstance(value, str) else ""


class TaskAgentError(Exception):
    """Raised when tasks cannot be distributed"""
    pass


class EmptyInput(TaskAgentError):
    """Raised when there are no tasks or no workdays to distribute over"""
    pass


class TaskAgent:
    """Distributes task hours over workdays, optionally asking an LLM first"""

    def __init__(self, model_store: Optional[ModelConfigStore] = None,
                 rng: Optional[random.Random] = None,
                 client_factory: Callable[..., LLMClient] = LLMClient,
                 timeout: float = 60):
        self.model_store = model_store
        self.rng = rng or random.Random()
        self.client_factory = client_factory
        self.timeout = timeout
        self.warnings: List[str] = []

    def _warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def process(self, tasks: List[Task], work_days: List[WorkDay],
                distribution_mode: str = 'daily') -> List[DailyAssignment]:
        """Allocate hours of ``tasks`` to ``work_days`` using ``distribution_mode``.

        The caller's task objects are never modified.
        """
        self.warnings = []
        self.validate_input(tasks, work_days)

        tasks = copy.deepcopy(tasks)
        valid_days = [day for day in work_days if day.is_workday and not day.is_holiday]
        if not valid_days:
            raise EmptyInput("No workdays in the selected date range, adjust the dates or rest schedule")

        model_config = self._active_model_config()
        if model_config is not None:
            try:
                logger.info("Distributing hours with the AI model...")
                assignments = self.distribute_with_ai(tasks, valid_days, distribution_mode, model_config)
                logger.info("AI distribution succeeded, skipping built-in strategies")
                return self.enhance_descriptions(assignments, tasks, model_config)
            except LLMError as e:
                self._warn(f"AI distribution failed, using {distribution_mode} strategy: {e}")

        assignments = self.distribute(tasks, valid_days, distribution_mode)

        if model_config is not None:
            assignments = self.enhance_descriptions(assignments, tasks, model_config)

        return assignments

    def validate_input(self, tasks: List[Task], work_days: List[WorkDay]) -> None:
        if not tasks:
            raise EmptyInput("Task list is empty, add at least one task")

        if not work_days:
            raise EmptyInput("Workday list is empty, check the date range")

        requested = sum(task.total_hours for task in tasks)
        available = available_hours(work_days)
        if requested > available:
            self._warn(f"Requested hours ({requested}h) exceed available workday hours ({available}h)")

    def _active_model_config(self) -> Optional[ModelConfig]:
        if self.model_store is None:
            return None
        config = self.model_store.get_active_config()
        if config is None or not config.api_key:
            logger.info("No AI model configured, using built-in strategies")
            return None
        return config

    # Deterministic strategies

    def distribute(self, tasks: List[Task], work_days: List[WorkDay], mode: str) -> List[DailyAssignment]:
        """Run a built-in strategy on a private copy of ``tasks``"""
        tasks = [task for task in copy.deepcopy(tasks) if round_hours(task.total_hours) > 0]

        strategies = {
            'daily': self.distribute_by_daily,
            'priority': self.distribute_by_priority,
            'feature': self.distribute_by_feature,
        }
        strategy = strategies.get(mode)
        if strategy is None:
            self._warn(f"Unknown distribution mode '{mode}', using daily")
            strategy = self.distribute_by_daily

        return strategy(tasks, work_days)

    def distribute_by_daily(self, tasks: List[Task], work_days: List[WorkDay]) -> List[DailyAssignment]:
        # Hours are split in hundredths so a day's shares add up to its target exactly
        remaining = [int(round(task.total_hours * 100)) for task in tasks]

        assignments = []
        for index, day in enumerate(work_days):
            days_left = len(work_days) - index
            planned_cents = int(round(day.planned_hours * 100))
            day_cents = min(planned_cents, int(round(sum(remaining) / days_left)))
            if days_left == 1:
                day_cents = min(planned_cents, sum(remaining))

            allocations = []
            for i, cents in enumerate(split_cents(day_cents, remaining)):
                if cents > 0:
                    remaining[i] -= cents
                    allocations.append(self._allocation(tasks[i], cents / 100))

            assignment = DailyAssignment(date=day.date, tasks=allocations)
            assignment.recalculate()
            assignments.append(assignment)

        return assignments

    def distribute_by_priority(self, tasks: List[Task], work_days: List[WorkDay]) -> List[DailyAssignment]:
        # sorted() is stable, so equal priorities keep list order
        remaining = sorted(tasks, key=lambda t: PRIORITY_WEIGHTS[t.priority], reverse=True)

        assignments = []
        for day in work_days:
            allocations = []
            day_left = day.planned_hours

            for task in list(remaining):
                if day_left <= 0:
                    break
                hours = round_hours(min(task.total_hours, day_left))
                if hours <= 0:
                    continue

                allocations.append(self._allocation(task, hours))
                day_left = round_hours(day_left - hours)
                task.total_hours = round_hours(task.total_hours - hours)

                if task.total_hours <= 0:
                    remaining.remove(task)

            assignment = DailyAssignment(date=day.date, tasks=allocations)
            assignment.recalculate()
            assignments.append(assignment)

        return assignments

    def distribute_by_feature(self, tasks: List[Task], work_days: List[WorkDay]) -> List[DailyAssignment]:
        task_index = 0

        assignments = []
        for day in work_days:
            allocations = []
            day_left = day.planned_hours

            # Stay on the current task until it is done or the day is full
            while task_index < len(tasks) and day_left > 0:
                task = tasks[task_index]
                hours = round_hours(min(task.total_hours, day_left))

                if hours <= 0:
                    # Less than a hundredth left on the task or in the day
                    if round_hours(task.total_hours) > 0:
                        break
                    task_index += 1
                    continue

                allocations.append(self._allocation(task, hours))
                day_left = round_hours(day_left - hours)
                task.total_hours = round_hours(task.total_hours - hours)

                if task.total_hours <= 0:
                    task_index += 1

            assignment = DailyAssignment(date=day.date, tasks=allocations)
            assignment.recalculate()
            assignments.append(assignment)

        return assignments

    def _allocation(self, task: Task, hours: float) -> TaskAllocation:
        return TaskAllocation(
            task_id=task.id,
            task_name=task.name,
            allocated_hours=hours,
            work_description=self.generate_work_description(task),
        )

    def generate_work_description(self, task: Task) -> str:
        """Pick a random template phrase for ``task``"""
        base = self.rng.choice(DESCRIPTION_TEMPLATES).format(name=task.name)
        if task.description:
            return f"{base}, {task.description}"
        return base

    # AI allocation

    def distribute_with_ai(self, tasks: List[Task], work_days: List[WorkDay], mode: str,
                           model_config: ModelConfig) -> List[DailyAssignment]:
        """Ask the model for a full allocation; raises LLMError on any failure"""
        client = self.client_factory(model_config, timeout=self.timeout)
        reply = client.chat(
            self._system_prompt(DISTRIBUTION_SYSTEM_PROMPT, model_config, "\n\nUser rules:\n"),
            self.build_distribution_prompt(tasks, work_days, mode),
        )
        return self.parse_distribution_response(reply)

    @staticmethod
    def _system_prompt(base: str, model_config: ModelConfig, separator: str) -> str:
        rules = (model_config.rules or "").strip()
        if rules:
            return f"{base}{separator}{rules}"
        return base

    @staticmethod
    def _task_line(task: Task) -> str:
        line = f"- {task.name} ({task.total_hours}h, priority: {task.priority}"
        if task.description:
            line += f", description: {task.description}"
        return line + ")"

    def build_reference_context(self, tasks: List[Task]) -> str:
        """Git commits and pasted text carried by the tasks, as prompt context"""
        sections = []
        for task in tasks:
            data = task.source_data or {}
            commits = data.get('gitCommits') or []
            raw = data.get('rawContent') or ""

            lines = []
            for commit in commits:
                short_hash = str(commit.get('hash', ''))[:7]
                lines.append(f"  {short_hash} {commit.get('date', '')} {commit.get('message', '')}".rstrip())
            if not lines and raw:
                text = raw if len(raw) <= REFERENCE_TEXT_LIMIT else raw[:REFERENCE_TEXT_LIMIT] + "..."
                lines.append(text)

            if lines:
                sections.append(f"[{task.source}] {task.name}\n" + "\n".join(lines))

        return "\n\n".join(sections)

    def build_distribution_prompt(self, tasks: List[Task], work_days: List[WorkDay], mode: str) -> str:
        work_tasks = [task for task in tasks if not task.is_reference]
        task_summary = "\n".join(self._task_line(task) for task in work_tasks)
        day_summary = "\n".join(f"- {day.date} ({day.planned_hours}h)" for day in work_days)
        mode_description = MODE_DESCRIPTIONS.get(mode, MODE_DESCRIPTIONS['daily'])

        prompt = f"""
Tasks:
{task_summary}

Workdays:
{day_summary}

Strategy: {mode_description}
"""
        reference = self.build_reference_context(tasks)
        if reference:
            prompt += f"""
Reference material (use it to make the work descriptions concrete, it takes no hours):
{reference}
"""
        prompt += """
Allocate the daily hours. Requirements:
1. Every task's hours must be fully allocated
2. A day's allocated hours must not exceed its plannedHours
3. Follow the chosen strategy
4. Avoid spreading each day over too many tasks

Return the allocation in this JSON format:
{
  "dailyAssignments": [
    {
      "date": "2025-06-01",
      "tasks": [
        {
          "taskId": "task_id",
          "taskName": "Task name",
          "allocatedHours": 4.0,
          "workDescription": "What was done"
        }
      ],
      "totalHours": 8.0
    }
  ]
}
"""
        return prompt

    def parse_distribution_response(self, reply: str) -> List[DailyAssignment]:
        data = extract_json_object(reply)
        raw_assignments = data.get('dailyAssignments')
        if not isinstance(raw_assignments, list):
            raise LLMError("Model reply is missing the dailyAssignments array")

        assignments = []
        for raw in raw_assignments:
            if not isinstance(raw, dict) or not raw.get('date') or not isinstance(raw.get('tasks'), list):
                raise LLMError("Model reply has a malformed daily assignment")

            allocations = []
            for raw_task in raw['tasks']:
                if not isinstance(raw_task, dict):
                    continue
                name = str(raw_task.get('taskName') or "")
                try:
                    hours = float(raw_task.get('allocatedHours') or 0)
                except (TypeError, ValueError):
                    hours = 0.0
                allocations.append(TaskAllocation(
                    task_id=str(raw_task.get('taskId') or ""),
                    task_name=name,
                    allocated_hours=hours,
                    work_description=_reply_text(raw_task.get('workDescription')) or f"{name} related work",
                ))

            assignment = DailyAssignment(date=str(raw['date']), tasks=allocations)
            assignment.recalculate()
            assignments.append(assignment)

        return assignments

    # AI descriptions

    def enhance_descriptions(self, assignments: List[DailyAssignment], tasks: List[Task],
                             model_config: ModelConfig) -> List[DailyAssignment]:
        """Replace descriptions with model-written ones; keeps the originals on failure"""
        try:
            client = self.client_factory(model_config, timeout=self.timeout)
            reply = client.chat(
                self._system_prompt(DESCRIPTION_SYSTEM_PROMPT, model_config, "\n"),
                self.build_description_prompt(assignments, tasks),
                default_max_tokens=20000,
            )
            return self.merge_descriptions(assignments, reply)
        except LLMError as e:
            self._warn(f"AI description enhancement failed, keeping default descriptions: {e}")
            return assignments

    def build_description_prompt(self, assignments: List[DailyAssignment], tasks: List[Task]) -> str:
        task_summary = "\n".join(self._task_line(task) for task in tasks if not task.is_reference)
        assignment_summary = "\n".join(
            f"{a.date}: " + ", ".join(f"{t.task_name}({t.allocated_hours}h)" for t in a.tasks)
            for a in assignments
        )

        prompt = f"""
Tasks:
{task_summary}

Allocation:
{assignment_summary}
"""
        reference = self.build_reference_context(tasks)
        if reference:
            prompt += f"""
Reference material:
{reference}
"""
        prompt += """
Write a short, professional work description for every task on every day:
1. Be specific and professional
2. Reflect the actual work done
3. Match software development timesheet conventions
4. At most 30 characters per description

Return this JSON format:
{
  "assignments": [
    {
      "date": "2024-01-01",
      "tasks": [
        {
          "taskName": "Task name",
          "workDescription": "What was done"
        }
      ]
    }
  ]
}
"""
        return prompt

    def merge_descriptions(self, assignments: List[DailyAssignment], reply: str) -> List[DailyAssignment]:
        data = extract_json_object(reply)
        raw_assignments = data.get('assignments')
        if not isinstance(raw_assignments, list):
            raise LLMError("Model reply is missing the assignments array")

        descriptions: Dict[tuple, str] = {}
        for raw in raw_assignments:
            if not isinstance(raw, dict) or not isinstance(raw.get('tasks'), list):
                continue
            for raw_task in raw['tasks']:
                if not isinstance(raw_task, dict):
                    continue
                description = _reply_text(raw_task.get('workDescription'))
                if description:
                    key = (raw.get('date'), raw_task.get('taskName'))
                    descriptions.setdefault(key, description)

        enhanced = []
        for assignment in assignments:
            allocations = []
            for allocation in assignment.tasks:
                description = descriptions.get((assignment.date, allocation.task_name))
                if description:
                    allocation = copy.copy(allocation)
                    allocation.work_description = description
                allocations.append(allocation)
            enhanced.append(DailyAssignment(date=assignment.date, tasks=allocations,
                                            total_hours=assignment.total_hours))

        return enhanced
