"""
Data models for the timesheet agent
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional


PRIORITIES = ['high', 'medium', 'low']
TASK_SOURCES = ['manual', 'gitlog', 'attachment']
SCHEDULE_TYPES = ['single', 'double', 'alternate']
REST_DAYS = ['saturday', 'sunday']
DISTRIBUTION_MODES = ['daily', 'priority', 'feature']


def round_hours(value: float) -> float:
    """Round an hour figure to two decimals"""
    return round(value * 100) / 100


@dataclass
class Task:
    """Represents a unit of work requested by the user"""
    id: str
    name: str
    total_hours: float
    priority: str = "medium"
    description: str = ""
    source: str = "manual"
    source_data: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        """Validate task after initialization"""
        if not self.id or not self.name:
            raise ValueError("Task must have id and name")

        if self.total_hours < 0:
            raise ValueError("Task hours cannot be negative")

        if self.priority not in PRIORITIES:
            raise ValueError("Priority must be one of: high, medium, low")

        if self.source not in TASK_SOURCES:
            raise ValueError("Source must be one of: manual, gitlog, attachment")

    @property
    def is_reference(self) -> bool:
        """Zero-hour git log or attachment material used only as prompt context"""
        return self.total_hours == 0 and self.source != 'manual'

    def to_dict(self) -> Dict:
        data = {
            "id": self.id,
            "name": self.name,
            "totalHours": self.total_hours,
            "priority": self.priority,
            "description": self.description,
            "source": self.source,
        }
        if self.source_data is not None:
            data["sourceData"] = self.source_data
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "Task":
        return cls(
            id=data['id'],
            name=data['name'],
            total_hours=float(data.get('totalHours', data.get('total_hours', 0))),
            priority=data.get('priority', 'medium'),
            description=data.get('description') or "",
            source=data.get('source') or 'manual',
            source_data=data.get('sourceData', data.get('source_data')),
        )


@dataclass
class WorkDay:
    """One calendar date's work status"""
    date: str
    is_workday: bool
    is_holiday: bool
    planned_hours: float

    def to_dict(self) -> Dict:
        return {
            "date": self.date,
            "isWorkday": self.is_workday,
            "isHoliday": self.is_holiday,
            "plannedHours": self.planned_hours,
        }


@dataclass
class TaskAllocation:
    """Hours of one task placed on one day"""
    task_id: str
    task_name: str
    allocated_hours: float
    work_description: str = ""

    def to_dict(self) -> Dict:
        return {
            "taskId": self.task_id,
            "taskName": self.task_name,
            "allocatedHours": self.allocated_hours,
            "workDescription": self.work_description,
        }


@dataclass
class DailyAssignment:
    """Distributor output for a single workday"""
    date: str
    tasks: List[TaskAllocation] = field(default_factory=list)
    total_hours: float = 0.0

    def recalculate(self) -> None:
        self.total_hours = round_hours(sum(t.allocated_hours for t in self.tasks))

    def to_dict(self) -> Dict:
        return {
            "date": self.date,
            "tasks": [t.to_dict() for t in self.tasks],
            "totalHours": self.total_hours,
        }


@dataclass
class TimesheetEntry:
    """One exportable, editable timesheet row"""
    id: str
    date: str
    work_content: str
    hours_spent: float
    remaining_hours: float
    task_id: Optional[str] = None
    is_editable: bool = True

    def to_dict(self) -> Dict:
        data = {
            "id": self.id,
            "date": self.date,
            "workContent": self.work_content,
            "hoursSpent": self.hours_spent,
            "remainingHours": self.remaining_hours,
            "isEditable": self.is_editable,
        }
        if self.task_id is not None:
            data["taskId"] = self.task_id
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "TimesheetEntry":
        return cls(
            id=data['id'],
            date=data['date'],
            work_content=data.get('workContent', ''),
            hours_spent=float(data.get('hoursSpent', 0)),
            remaining_hours=float(data.get('remainingHours', 0)),
            task_id=data.get('taskId'),
            is_editable=data.get('isEditable', True),
        )


@dataclass
class TimesheetSummary:
    """Totals reported alongside a generated timesheet"""
    total_hours: float
    total_days: int
    average_hours_per_day: float

    @classmethod
    def from_entries(cls, entries: List[TimesheetEntry]) -> "TimesheetSummary":
        total_hours = sum(entry.hours_spent for entry in entries)
        total_days = len(entries)
        average = total_hours / total_days if total_days > 0 else 0
        return cls(total_hours=total_hours, total_days=total_days, average_hours_per_day=average)

    def to_dict(self) -> Dict:
        return {
            "totalHours": self.total_hours,
            "totalDays": self.total_days,
            "averageHoursPerDay": self.average_hours_per_day,
        }


@dataclass
class WorkingHours:
    """Daily hour target and rest schedule"""
    daily_hours: float = 8
    exclude_holidays: bool = True
    schedule_type: str = "double"
    single_rest_day: Optional[str] = None
    is_current_week_big: Optional[bool] = None

    def __post_init__(self):
        """Validate working hours after initialization"""
        if self.daily_hours <= 0 or self.daily_hours > 24:
            raise ValueError("Daily hours must be between 0 and 24")

        if self.schedule_type not in SCHEDULE_TYPES:
            raise ValueError("Schedule type must be one of: single, double, alternate")

        if self.single_rest_day and self.single_rest_day not in REST_DAYS:
            raise ValueError("Single rest day must be saturday or sunday")

    def to_dict(self) -> Dict:
        data = {
            "dailyHours": self.daily_hours,
            "excludeHolidays": self.exclude_holidays,
            "scheduleType": self.schedule_type,
        }
        if self.single_rest_day is not None:
            data["singleRestDay"] = self.single_rest_day
        if self.is_current_week_big is not None:
            data["isCurrentWeekBig"] = self.is_current_week_big
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "WorkingHours":
        return cls(
            daily_hours=data.get('dailyHours', 8),
            exclude_holidays=data.get('excludeHolidays', True),
            schedule_type=data.get('scheduleType', 'double'),
            single_rest_day=data.get('singleRestDay'),
            is_current_week_big=data.get('isCurrentWeekBig'),
        )


@dataclass
class ProjectConfig:
    """Everything a single generation request needs"""
    tasks: List[Task]
    start_date: str
    end_date: str
    working_hours: WorkingHours = field(default_factory=WorkingHours)
    distribution_mode: str = "daily"
    work_content: str = ""
    auto_save: bool = True
    id: Optional[str] = None
    name: Optional[str] = None

    def __post_init__(self):
        """Validate project configuration after initialization"""
        if self.distribution_mode not in DISTRIBUTION_MODES:
            raise ValueError("Distribution mode must be one of: daily, priority, feature")

    def to_dict(self) -> Dict:
        data = {
            "tasks": [t.to_dict() for t in self.tasks],
            "workContent": self.work_content,
            "dateRange": {"startDate": self.start_date, "endDate": self.end_date},
            "workingHours": self.working_hours.to_dict(),
            "distributionMode": self.distribution_mode,
            "autoSave": self.auto_save,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.name is not None:
            data["name"] = self.name
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "ProjectConfig":
        date_range = data.get('dateRange', {})
        return cls(
            tasks=[Task.from_dict(t) for t in data.get('tasks', [])],
            start_date=date_range.get('startDate', ''),
            end_date=date_range.get('endDate', ''),
            working_hours=WorkingHours.from_dict(data.get('workingHours', {})),
            distribution_mode=data.get('distributionMode', 'daily'),
            work_content=data.get('workContent') or "",
            auto_save=data.get('autoSave', True),
            id=data.get('id'),
            name=data.get('name'),
        )


@dataclass
class TimesheetResult:
    """A generated timesheet, optionally archived"""
    entries: List[TimesheetEntry]
    summary: TimesheetSummary
    generated_at: str
    id: Optional[str] = None
    name: Optional[str] = None
    project_config: Optional[ProjectConfig] = None
    archived_at: Optional[str] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_dict(self) -> Dict:
        data = {
            "entries": [e.to_dict() for e in self.entries],
            "summary": self.summary.to_dict(),
            "generatedAt": self.generated_at,
        }
        if self.id is not None:
            data["id"] = self.id
        if self.name is not None:
            data["name"] = self.name
        if self.project_config is not None:
            data["projectConfig"] = self.project_config.to_dict()
        if self.archived_at is not None:
            data["archivedAt"] = self.archived_at
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "TimesheetResult":
        entries = [TimesheetEntry.from_dict(e) for e in data.get('entries', [])]
        summary_data = data.get('summary')
        if summary_data:
            summary = TimesheetSummary(
                total_hours=summary_data.get('totalHours', 0),
                total_days=summary_data.get('totalDays', 0),
                average_hours_per_day=summary_data.get('averageHoursPerDay', 0),
            )
        else:
            summary = TimesheetSummary.from_entries(entries)
        project_config = data.get('projectConfig')
        return cls(
            entries=entries,
            summary=summary,
            generated_at=data.get('generatedAt', ''),
            id=data.get('id'),
            name=data.get('name'),
            project_config=ProjectConfig.from_dict(project_config) if project_config else None,
            archived_at=data.get('archivedAt'),
        )


@dataclass
class ModelConfig:
    """Connection settings for one LLM provider"""
    provider: str
    base_url: str
    api_key: str
    model: str
    temperature: float = 0.7
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    presence_penalty: Optional[float] = None
    frequency_penalty: Optional[float] = None
    rules: str = ""

    def __post_init__(self):
        """Validate model configuration after initialization"""
        if not self.base_url.startswith(('http://', 'https://')):
            raise ValueError("Invalid base URL format. Must start with http:// or https://")

        if not self.model:
            raise ValueError("Model identifier is required")

        self.base_url = self.base_url.rstrip('/')

    def to_dict(self) -> Dict:
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict) -> "ModelConfig":
        return cls(
            provider=data['provider'],
            base_url=data.get('base_url', data.get('baseURL', '')),
            api_key=data.get('api_key', data.get('apiKey', '')),
            model=data['model'],
            temperature=data.get('temperature', 0.7),
            max_tokens=data.get('max_tokens', data.get('maxTokens')),
            top_p=data.get('top_p'),
            presence_penalty=data.get('presence_penalty'),
            frequency_penalty=data.get('frequency_penalty'),
            rules=data.get('rules') or "",
        )


@dataclass
class GitLogEntry:
    """A single commit parsed from git log output"""
    hash: str
    date: str = ""
    author: str = ""
    message: str = ""
    files: List[str] = field(default_factory=list)
    additions: int = 0
    deletions: int = 0

    def to_dict(self) -> Dict:
        return asdict(self)
