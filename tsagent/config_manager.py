"""
Configuration management for the timesheet agent
"""

import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .models import SCHEDULE_TYPES, DISTRIBUTION_MODES

logger = logging.getLogger(__name__)

DEFAULTS_DIR = Path(__file__).parent / 'defaults'


class ConfigurationError(Exception):
    """Raised when there's an issue with configuration"""
    pass


@dataclass
class AppConfig:
    """Configuration settings"""
    storage_file: str = "timesheet_storage.json"
    model_config_file: str = "model_config.json"
    export_dir: str = "."
    default_daily_hours: float = 8
    default_schedule_type: str = "double"
    default_distribution_mode: str = "daily"
    llm_timeout_seconds: int = 60
    log_level: str = "INFO"
    log_file: str = "timesheet-agent.log"

    def __post_init__(self):
        """Validate configuration after initialization"""
        if self.default_daily_hours <= 0 or self.default_daily_hours > 24:
            raise ValueError("Default daily hours must be between 0 and 24")

        if self.default_schedule_type not in SCHEDULE_TYPES:
            raise ValueError("Schedule type must be one of: single, double, alternate")

        if self.default_distribution_mode not in DISTRIBUTION_MODES:
            raise ValueError("Distribution mode must be one of: daily, priority, feature")

        if self.llm_timeout_seconds <= 0:
            raise ValueError("LLM timeout must be positive")


def merge_json_defaults(default_path: Path, user_path: Path) -> bool:
    """Merge keys from ``default_path`` into ``user_path`` without overwriting existing values."""
    if not default_path.exists():
        return False

    if not user_path.exists():
        user_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy(default_path, user_path)
        logger.info(f"Created {user_path} from defaults")
        return True

    with open(default_path, 'r', encoding='utf-8') as f:
        default_data = json.load(f)
    with open(user_path, 'r', encoding='utf-8') as f:
        user_data = json.load(f)

    changed = False

    def merge(d, u):
        nonlocal changed
        for k, v in d.items():
            if k not in u:
                u[k] = v
                changed = True
            elif isinstance(v, dict) and isinstance(u.get(k), dict):
                merge(v, u[k])

    merge(default_data, user_data)

    if changed:
        with open(user_path, 'w', encoding='utf-8') as f:
            json.dump(user_data, f, indent=2)
        logger.info(f"Updated {user_path} with new settings")

    return changed


def update_config_files(config_path: str, project_path: Optional[str] = None) -> None:
    """Update user configuration, model config and project files from defaults."""
    config_file = Path(config_path)
    merge_json_defaults(DEFAULTS_DIR / 'config.json', config_file)
    if project_path:
        merge_json_defaults(DEFAULTS_DIR / 'project.json', Path(project_path))

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read config for update: {e}")
        return

    model_file = Path(data.get('model_config_file', 'model_config.json'))
    if not model_file.is_absolute():
        model_file = config_file.parent / model_file
    merge_json_defaults(DEFAULTS_DIR / 'model_config.json', model_file)


def validate_config_data(config_data: dict) -> None:
    """Validate configuration data structure and values"""
    if not isinstance(config_data, dict):
        raise ConfigurationError("Configuration must be a JSON object")

    daily_hours = config_data.get('default_daily_hours', 8)
    if not isinstance(daily_hours, (int, float)) or daily_hours <= 0 or daily_hours > 24:
        raise ConfigurationError("Default daily hours must be between 0 and 24")

    schedule_type = config_data.get('default_schedule_type', 'double')
    if schedule_type not in SCHEDULE_TYPES:
        raise ConfigurationError("Schedule type must be one of: single, double, alternate")

    mode = config_data.get('default_distribution_mode', 'daily')
    if mode not in DISTRIBUTION_MODES:
        raise ConfigurationError("Distribution mode must be one of: daily, priority, feature")


def _resolve(base: Path, value: str) -> str:
    path = Path(value)
    return str(path if path.is_absolute() else base / path)


def load_config(config_file: str) -> AppConfig:
    """Load and validate configuration from JSON file"""
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = json.load(f)

        validate_config_data(config_data)

        # Relative paths are relative to the config file
        base = Path(config_file).resolve().parent

        return AppConfig(
            storage_file=_resolve(base, config_data.get('storage_file', 'timesheet_storage.json')),
            model_config_file=_resolve(base, config_data.get('model_config_file', 'model_config.json')),
            export_dir=_resolve(base, config_data.get('export_dir', '.')),
            default_daily_hours=config_data.get('default_daily_hours', 8),
            default_schedule_type=config_data.get('default_schedule_type', 'double'),
            default_distribution_mode=config_data.get('default_distribution_mode', 'daily'),
            llm_timeout_seconds=config_data.get('llm_timeout_seconds', 60),
            log_level=config_data.get('log_level', 'INFO'),
            log_file=_resolve(base, config_data.get('log_file', 'timesheet-agent.log')),
        )

    except ConfigurationError:
        raise
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in config file: {e}")
    except Exception as e:
        raise ConfigurationError(f"Error loading config: {e}")


def setup_logging(config: AppConfig) -> None:
    """Setup logging configuration"""
    package_logger = logging.getLogger('tsagent')

    # Clear existing handlers
    for handler in package_logger.handlers[:]:
        package_logger.removeHandler(handler)

    log_level = getattr(logging, config.log_level.upper(), logging.INFO)
    package_logger.setLevel(log_level)
    package_logger.propagate = False

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # File handler
    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding='utf-8')
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    package_logger.addHandler(console_handler)
