"""
Test data models and configuration loading
"""

import json

import pytest

from tsagent.config_manager import AppConfig, ConfigurationError, load_config, merge_json_defaults
from tsagent.models import ModelConfig, ProjectConfig, Task, WorkingHours, round_hours
from tsagent.model_config import ModelConfigStore


def test_task_validation():
    """Test task validation"""
    with pytest.raises(ValueError, match="Task must have id and name"):
        Task(id="1", name="", total_hours=4)

    with pytest.raises(ValueError, match="cannot be negative"):
        Task(id="1", name="Login", total_hours=-1)

    with pytest.raises(ValueError, match="Priority must be one of"):
        Task(id="1", name="Login", total_hours=4, priority="urgent")

    with pytest.raises(ValueError, match="Source must be one of"):
        Task(id="1", name="Login", total_hours=4, source="email")


def test_reference_task_flag():
    assert Task(id="1", name="Log", total_hours=0, source="gitlog").is_reference
    assert not Task(id="2", name="Login", total_hours=0).is_reference
    assert not Task(id="3", name="Log", total_hours=2, source="gitlog").is_reference


def test_working_hours_validation():
    """Test working hours validation"""
    with pytest.raises(ValueError, match="Daily hours must be between"):
        WorkingHours(daily_hours=25)

    with pytest.raises(ValueError, match="Schedule type must be one of"):
        WorkingHours(schedule_type="weekly")

    with pytest.raises(ValueError, match="Single rest day"):
        WorkingHours(schedule_type="single", single_rest_day="monday")


def test_project_config_from_dict():
    project = ProjectConfig.from_dict({
        "tasks": [{"id": "t1", "name": "Login", "totalHours": "12", "priority": "high"}],
        "dateRange": {"startDate": "2025-06-02", "endDate": "2025-06-13"},
        "workingHours": {"dailyHours": 7.5, "scheduleType": "alternate", "isCurrentWeekBig": True},
        "distributionMode": "priority",
    })

    assert project.tasks[0].total_hours == 12.0
    assert project.working_hours.is_current_week_big is True
    assert project.auto_save is True
    assert ProjectConfig.from_dict(project.to_dict()) == project

    with pytest.raises(ValueError, match="Distribution mode"):
        ProjectConfig(tasks=[], start_date="", end_date="", distribution_mode="fastest")


def test_model_config_accepts_camel_case():
    config = ModelConfig.from_dict({
        "provider": "moonshot", "baseURL": "https://api.moonshot.cn/v1/", "apiKey": "k", "model": "moonshot-v1-8k",
    })

    assert config.base_url == "https://api.moonshot.cn/v1"
    assert config.api_key == "k"
    assert "max_tokens" not in config.to_dict()


@pytest.mark.parametrize("value,expected", [(1.005, 1.0), (3.333333, 3.33), (4, 4.0)])
def test_round_hours(value, expected):
    assert round_hours(value) == pytest.approx(expected)


def test_model_config_store_persists(tmp_path):
    path = tmp_path / "model_config.json"
    store = ModelConfigStore(str(path))
    assert store.get_active_config() is None
    assert not store.has_credentials()

    store.update_model_config("zhipu", ModelConfig(
        provider="zhipu", base_url="https://open.bigmodel.cn/api/paas/v4", api_key="k", model="glm-4"))
    store.save_test_result("zhipu", True, "ok")

    reloaded = ModelConfigStore(str(path))
    assert reloaded.active_provider == "zhipu"
    assert reloaded.has_credentials()
    assert reloaded.get_active_config().model == "glm-4"
    assert reloaded.last_test_result["success"] is True


def test_app_config_validation():
    """Test configuration validation"""
    with pytest.raises(ValueError, match="Default daily hours"):
        AppConfig(default_daily_hours=0)

    with pytest.raises(ValueError, match="Distribution mode"):
        AppConfig(default_distribution_mode="random")

    with pytest.raises(ValueError, match="LLM timeout"):
        AppConfig(llm_timeout_seconds=0)


def test_load_config_resolves_relative_paths(tmp_path):
    config_path = tmp_path / "conf" / "config.json"
    config_path.parent.mkdir()
    config_path.write_text(json.dumps({"storage_file": "data/storage.json", "default_schedule_type": "single"}))

    config = load_config(str(config_path))

    assert config.storage_file == str(config_path.parent.resolve() / "data" / "storage.json")
    assert config.default_schedule_type == "single"
    assert config.default_daily_hours == 8


@pytest.mark.parametrize("content,message", [
    ("{broken", "Invalid JSON"),
    (json.dumps({"default_daily_hours": 30}), "Default daily hours"),
    (json.dumps({"default_schedule_type": "weekly"}), "Schedule type"),
    (json.dumps([1, 2]), "JSON object"),
])
def test_load_config_errors(tmp_path, content, message):
    config_path = tmp_path / "config.json"
    config_path.write_text(content)

    with pytest.raises(ConfigurationError, match=message):
        load_config(str(config_path))


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="Error loading config"):
        load_config(str(tmp_path / "missing.json"))


def test_merge_json_defaults(tmp_path):
    defaults = tmp_path / "defaults.json"
    defaults.write_text(json.dumps({"a": 1, "nested": {"x": 1, "y": 2}}))
    user = tmp_path / "user.json"
    user.write_text(json.dumps({"a": 5, "nested": {"x": 9}}))

    assert merge_json_defaults(defaults, user)
    assert json.loads(user.read_text()) == {"a": 5, "nested": {"x": 9, "y": 2}}
    assert not merge_json_defaults(defaults, user)
