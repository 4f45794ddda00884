import random
import sys
from pathlib import Path

import pytest

# Ensure the package is importable when tests run without installation
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from tsagent.models import Task, WorkDay


def make_task(task_id, hours, priority="medium", name=None, description="", source="manual", source_data=None):
    return Task(
        id=task_id,
        name=name or task_id,
        total_hours=hours,
        priority=priority,
        description=description,
        source=source,
        source_data=source_data,
    )


def make_days(*dates, hours=8):
    return [WorkDay(date=d, is_workday=True, is_holiday=False, planned_hours=hours) for d in dates]


@pytest.fixture
def rng():
    return random.Random(42)
