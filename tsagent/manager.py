"""
Main timesheet manager coordinating configuration, generation, storage and export
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from .config_manager import load_config, setup_logging, ConfigurationError
from .exporter import export_entries, default_filename, generate_preview
from .generator import TimesheetGenerator, GenerationError
from .llm_client import LLMClient, get_provider
from .model_config import ModelConfigStore
from .models import ModelConfig, ProjectConfig, Task, TimesheetResult
from .sources import (
    build_attachment_reference_tasks, build_git_reference_task, load_attachment_file, load_git_log_file
)
from .storage import TimesheetStorage
from .timesheet_agent import validate_timesheet
from .work_calendar import current_month_range

logger = logging.getLogger(__name__)


class TimesheetManager:
    """Main manager that coordinates all components"""

    def __init__(self, config_file: str = "config.json"):
        try:
            self.config = load_config(config_file)
            setup_logging(self.config)

            self.model_store = ModelConfigStore(self.config.model_config_file)
            self.storage = TimesheetStorage(self.config.storage_file)
            self.generator = TimesheetGenerator(
                model_store=self.model_store,
                llm_timeout=self.config.llm_timeout_seconds,
            )

            logger.info("TimesheetManager initialized successfully")

        except ConfigurationError as e:
            logger.error(f"Configuration error: {e}")
            raise

    def load_project(self, project_file: str) -> ProjectConfig:
        """Load a project file, filling gaps from the app defaults"""
        try:
            with open(project_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Project file not found: {project_file}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in project file: {e}")

        data.setdefault('distributionMode', self.config.default_distribution_mode)
        hours = data.setdefault('workingHours', {})
        hours.setdefault('dailyHours', self.config.default_daily_hours)
        hours.setdefault('scheduleType', self.config.default_schedule_type)

        date_range = data.setdefault('dateRange', {})
        start, end = current_month_range()
        date_range['startDate'] = date_range.get('startDate') or start
        date_range['endDate'] = date_range.get('endDate') or end

        try:
            project = ProjectConfig.from_dict(data)
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid project file: {e}")

        self.storage.set_current_config(project)
        return project

    def add_reference_material(self, project: ProjectConfig, git_log_file: Optional[str] = None,
                               attachment_files: Optional[List[str]] = None,
                               git_log_text: Optional[str] = None) -> ProjectConfig:
        """Attach git history and text files to the project as reference tasks"""
        new_tasks: List[Task] = []

        if git_log_file:
            new_tasks.append(load_git_log_file(git_log_file))

        if git_log_text:
            new_tasks.append(build_git_reference_task(git_log_text))

        if attachment_files:
            attachments = [load_attachment_file(path) for path in attachment_files]
            new_tasks.extend(build_attachment_reference_tasks(attachments=attachments))

        if new_tasks:
            project.tasks.extend(new_tasks)
            logger.info(f"Added {len(new_tasks)} reference tasks")
        return project

    def generate(self, project: ProjectConfig) -> TimesheetResult:
        """Generate a timesheet and store it as the current result"""
        result = self.generator.generate(project)

        for warning in self.generator.warnings:
            logger.warning(warning)

        _, errors, warnings = validate_timesheet(result.entries)
        for message in errors + warnings:
            logger.warning(message)

        self.storage.set_current_result(result, auto_save=project.auto_save, project_config=project)
        return result

    def export(self, fmt: str, output: Optional[str] = None,
               result: Optional[TimesheetResult] = None) -> Path:
        result = result or self.storage.current_result
        if result is None:
            raise GenerationError("No timesheet to export, generate one first")

        path = output or str(Path(self.config.export_dir) / default_filename(fmt))
        return export_entries(result.entries, fmt, path)

    def preview(self, result: Optional[TimesheetResult] = None) -> str:
        result = result or self.storage.current_result
        if result is None:
            return "No timesheet generated yet"
        return generate_preview(result.entries)

    def list_results(self) -> List[str]:
        lines = []
        for index, result in enumerate(self.storage.saved_results):
            summary = result.summary
            lines.append(f"[{index}] {result.name} - {summary.total_days} days, "
                         f"{summary.total_hours:.2f}h (archived {result.archived_at})")
        return lines

    def configure_model(self, provider: str, api_key: str, model: Optional[str] = None,
                        base_url: Optional[str] = None) -> ModelConfig:
        known = get_provider(provider)
        if base_url is None and known is None:
            raise ConfigurationError(f"Unknown provider '{provider}', a base URL is required")

        try:
            config = ModelConfig(
                provider=provider,
                base_url=base_url or known.base_url,
                api_key=api_key,
                model=model or (known.models[0] if known else ''),
            )
        except ValueError as e:
            raise ConfigurationError(str(e))

        self.model_store.update_model_config(provider, config)
        logger.info(f"Configured {provider} with model {config.model}")
        return config

    def test_connection(self) -> bool:
        """Test the connection to the active LLM provider"""
        config = self.model_store.get_active_config()
        if config is None:
            logger.error(f"No model configured for provider '{self.model_store.active_provider}'")
            return False

        client = LLMClient(config, timeout=self.config.llm_timeout_seconds)
        success, message = client.test_connection()
        self.model_store.save_test_result(config.provider, success, message)

        if success:
            logger.info(f"✓ {message}")
        else:
            logger.error(f"✗ {message}")
        return success

