"""
JSON-file persistence for project configs and archived timesheets
"""

import copy
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from .models import ProjectConfig, TimesheetResult, TimesheetSummary

logger = logging.getLogger(__name__)

STORAGE_KEY = 'timesheet-agent-storage'


class StorageError(Exception):
    """Raised when stored timesheet data cannot be read or changed"""
    pass


class TimesheetStorage:
    """Current and saved configs, current and archived results.

    The whole state is one JSON document stored under ``STORAGE_KEY``.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.current_config: Optional[ProjectConfig] = None
        self.saved_configs: List[ProjectConfig] = []
        self.current_result: Optional[TimesheetResult] = None
        self.saved_results: List[TimesheetResult] = []
        self.load()

    def load(self) -> None:
        self.current_config = None
        self.saved_configs = []
        self.current_result = None
        self.saved_results = []

        if not self.path.exists():
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                state = json.load(f).get(STORAGE_KEY, {})

            if state.get('currentConfig'):
                self.current_config = ProjectConfig.from_dict(state['currentConfig'])
            self.saved_configs = [ProjectConfig.from_dict(c) for c in state.get('savedConfigs', [])]
            if state.get('currentResult'):
                self.current_result = TimesheetResult.from_dict(state['currentResult'])
            self.saved_results = [TimesheetResult.from_dict(r) for r in state.get('savedResults', [])]
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, ValueError) as e:
            logger.error(f"Failed to load storage {self.path}, starting empty: {e}")
            return

        logger.info(f"Loaded {len(self.saved_configs)} saved configs and {len(self.saved_results)} archived results")

    def save(self) -> None:
        state = {
            'currentConfig': self.current_config.to_dict() if self.current_config else None,
            'savedConfigs': [c.to_dict() for c in self.saved_configs],
            'currentResult': self.current_result.to_dict() if self.current_result else None,
            'savedResults': [r.to_dict() for r in self.saved_results],
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump({STORAGE_KEY: state}, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise StorageError(f"Failed to write storage {self.path}: {e}")

    def set_current_config(self, config: ProjectConfig) -> None:
        self.current_config = config
        self.save()

    def save_config(self, config: ProjectConfig, name: Optional[str] = None) -> ProjectConfig:
        saved = copy.deepcopy(config)
        saved.id = uuid4().hex
        saved.name = name or f"Config_{datetime.now().strftime('%Y-%m-%d')}"
        self.saved_configs.append(saved)
        self.save()
        logger.info(f"Saved config '{saved.name}'")
        return saved

    def delete_config(self, index: int) -> None:
        try:
            removed = self.saved_configs.pop(index)
        except IndexError:
            raise StorageError(f"No saved config at index {index}")
        self.save()
        logger.info(f"Deleted config '{removed.name}'")

    def set_current_result(self, result: TimesheetResult, auto_save: bool = False,
                           project_config: Optional[ProjectConfig] = None) -> None:
        self.current_result = result
        self.save()
        if auto_save:
            self.archive_result(result, project_config=project_config)

    def archive_result(self, result: Optional[TimesheetResult] = None, name: Optional[str] = None,
                       project_config: Optional[ProjectConfig] = None) -> TimesheetResult:
        """Store a read-only copy of ``result`` (the current result by default)"""
        result = result or self.current_result
        if result is None:
            raise StorageError("No timesheet to archive")

        archived = copy.deepcopy(result)
        archived.id = uuid4().hex
        archived.name = name or f"Timesheet_{datetime.now().strftime('%Y-%m-%d')}"
        archived.project_config = copy.deepcopy(project_config or self.current_config)
        archived.archived_at = datetime.now().isoformat()
        for entry in archived.entries:
            entry.is_editable = False

        self.saved_results.append(archived)
        self.save()
        logger.info(f"Archived timesheet '{archived.name}' ({len(archived.entries)} entries)")
        return archived

    def delete_result(self, index: int) -> None:
        try:
            removed = self.saved_results.pop(index)
        except IndexError:
            raise StorageError(f"No archived result at index {index}")
        self.save()
        logger.info(f"Deleted archived timesheet '{removed.name}'")

    def update_timesheet_entry(self, entry_id: str, work_content: str) -> None:
        """Edit the work content of an entry in the current result"""
        if self.current_result is None:
            raise StorageError("No current timesheet to edit")

        for entry in self.current_result.entries:
            if entry.id == entry_id:
                if not entry.is_editable:
                    raise StorageError(f"Entry {entry_id} is archived and read-only")
                entry.work_content = work_content
                break
        else:
            raise StorageError(f"Entry {entry_id} not found")

        self.current_result.summary = TimesheetSummary.from_entries(self.current_result.entries)
        self.save()
