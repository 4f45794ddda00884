import json

import pytest

from tsagent.generator import TimesheetGenerator
from tsagent.models import ProjectConfig
from tsagent.storage import STORAGE_KEY, StorageError, TimesheetStorage

from conftest import make_task


@pytest.fixture
def project():
    return ProjectConfig(tasks=[make_task("A", 16)], start_date="2025-06-02", end_date="2025-06-06")


@pytest.fixture
def result(project, rng):
    return TimesheetGenerator(rng=rng).generate(project)


def test_empty_when_file_missing(tmp_path):
    storage = TimesheetStorage(tmp_path / "storage.json")

    assert storage.current_config is None
    assert storage.current_result is None
    assert storage.saved_results == []


def test_auto_save_archives_read_only_copy(tmp_path, project, result):
    storage = TimesheetStorage(tmp_path / "storage.json")
    storage.set_current_result(result, auto_save=True, project_config=project)

    assert storage.current_result is result
    assert all(e.is_editable for e in result.entries)

    archived = storage.saved_results[0]
    assert archived.is_archived
    assert archived.name.startswith("Timesheet_")
    assert archived.project_config.tasks[0].id == "A"
    assert not any(e.is_editable for e in archived.entries)


def test_without_auto_save_nothing_archived(tmp_path, result):
    storage = TimesheetStorage(tmp_path / "storage.json")
    storage.set_current_result(result)

    assert storage.saved_results == []


def test_state_persists(tmp_path, project, result):
    path = tmp_path / "storage.json"
    storage = TimesheetStorage(path)
    storage.set_current_config(project)
    storage.save_config(project, name="June")
    storage.set_current_result(result, auto_save=True, project_config=project)

    with open(path, encoding="utf-8") as f:
        assert set(json.load(f)[STORAGE_KEY]) == {
            "currentConfig", "savedConfigs", "currentResult", "savedResults",
        }

    reloaded = TimesheetStorage(path)
    assert reloaded.current_config.tasks[0].total_hours == 16
    assert reloaded.saved_configs[0].name == "June"
    assert reloaded.current_result.entries == result.entries
    assert reloaded.saved_results[0].archived_at == storage.saved_results[0].archived_at
    assert not reloaded.saved_results[0].entries[0].is_editable


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")

    assert TimesheetStorage(path).saved_results == []


def test_edit_current_entry(tmp_path, result):
    storage = TimesheetStorage(tmp_path / "storage.json")
    storage.set_current_result(result)
    entry_id = result.entries[1].id

    storage.update_timesheet_entry(entry_id, "Code review")

    assert TimesheetStorage(tmp_path / "storage.json").current_result.entries[1].work_content == "Code review"


def test_edit_rejects_read_only_and_unknown(tmp_path, result):
    storage = TimesheetStorage(tmp_path / "storage.json")

    with pytest.raises(StorageError, match="No current timesheet"):
        storage.update_timesheet_entry("x", "y")

    storage.set_current_result(result)
    with pytest.raises(StorageError, match="not found"):
        storage.update_timesheet_entry("missing", "y")

    result.entries[0].is_editable = False
    with pytest.raises(StorageError, match="read-only"):
        storage.update_timesheet_entry(result.entries[0].id, "y")


def test_delete_saved_items(tmp_path, project, result):
    storage = TimesheetStorage(tmp_path / "storage.json")
    storage.save_config(project)
    storage.archive_result(result, name="first")
    storage.archive_result(result, name="second")

    storage.delete_result(0)
    storage.delete_config(0)

    assert [r.name for r in storage.saved_results] == ["second"]
    assert storage.saved_configs == []
    with pytest.raises(StorageError):
        storage.delete_result(5)


def test_archive_without_result(tmp_path):
    with pytest.raises(StorageError, match="No timesheet to archive"):
        TimesheetStorage(tmp_path / "storage.json").archive_result()
