import csv
import json
import sys

import pytest

import tsagent.cli as cli
from tsagent.llm_client import LLMClient


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["ts-agent", *args])
    cli.main()


def test_update_config_creates_files(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "config.json"

    run_cli(monkeypatch, "--update-config", "--config", str(config_path))

    assert config_path.exists()
    assert (tmp_path / "project.json").exists()
    assert (tmp_path / "model_config.json").exists()
    with open(config_path) as f:
        data = json.load(f)
    assert data["default_distribution_mode"] == "daily"


def test_update_config_keeps_user_values(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"default_daily_hours": 6}))

    run_cli(monkeypatch, "--update-config", "--config", str(config_path))

    data = json.loads(config_path.read_text())
    assert data["default_daily_hours"] == 6
    assert data["storage_file"] == "timesheet_storage.json"


def test_generate_and_export(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    config_path = str(tmp_path / "config.json")
    output = tmp_path / "june.csv"

    run_cli(monkeypatch, "--config", config_path, "--mode", "feature", "--export", "csv", "--output", str(output))

    printed = capsys.readouterr().out
    assert "Total: 16.00h over 10 days" in printed
    assert f"Exported to {output}" in printed

    with open(output, encoding="utf-8-sig", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[1][0] == "2025-06-02"
    assert rows[1][2] == "8.0"
    assert rows[3][2] == "0.0"

    storage = json.loads((tmp_path / "timesheet_storage.json").read_text())
    state = storage["timesheet-agent-storage"]
    assert len(state["currentResult"]["entries"]) == 10
    assert len(state["savedResults"]) == 1

    run_cli(monkeypatch, "--config", config_path, "--list-results")
    assert "10 days, 16.00h" in capsys.readouterr().out


def test_reference_material_and_date_override(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    git_log = tmp_path / "commits.txt"
    git_log.write_text("3f2a9c1 - Jane, 2025-06-02 : Add login form\n")
    notes = tmp_path / "notes.txt"
    notes.write_text("Sprint goal: SSO")

    run_cli(monkeypatch, "--config", str(tmp_path / "config.json"),
            "--start", "2025-06-02", "--end", "2025-06-06",
            "--git-log", str(git_log), "--attach", str(notes))

    assert "Total: 16.00h over 5 days" in capsys.readouterr().out

    storage = json.loads((tmp_path / "timesheet_storage.json").read_text())
    tasks = storage["timesheet-agent-storage"]["currentConfig"]["tasks"]
    assert [t["source"] for t in tasks] == ["manual", "gitlog", "attachment"]


def test_configure_provider(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    run_cli(monkeypatch, "--config", str(tmp_path / "config.json"), "--provider", "deepseek", "--api-key", "sk-1")

    data = json.loads((tmp_path / "model_config.json").read_text())
    assert data["activeProvider"] == "deepseek"
    assert data["configs"]["deepseek"]["model"] == "deepseek-chat"
    assert data["configs"]["deepseek"]["base_url"] == "https://api.deepseek.com/v1"


def test_test_connection_exit_code(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(LLMClient, "test_connection", lambda self: (False, "Invalid API key"))

    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--config", str(tmp_path / "config.json"),
                "--provider", "openai", "--api-key", "bad", "--test-connection")
    assert exc.value.code == 1

    data = json.loads((tmp_path / "model_config.json").read_text())
    assert data["lastTestResult"]["success"] is False


def test_missing_project_file_exits(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--config", str(tmp_path / "config.json"), "--project", str(tmp_path / "nope.json"))
    assert exc.value.code == 1


def test_missing_git_log_file_exits(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    errors = []
    monkeypatch.setattr(cli.logger, "error", errors.append)

    with pytest.raises(SystemExit) as exc:
        run_cli(monkeypatch, "--config", str(tmp_path / "config.json"), "--git-log", str(tmp_path / "nope.txt"))

    assert exc.value.code == 1
    assert errors[-1].startswith("Could not read git log")
