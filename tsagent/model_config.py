"""
Persistent LLM provider configuration
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from .models import ModelConfig

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = 'openai'


class ModelConfigStore:
    """Provider credentials and the active-provider selection, backed by a JSON file.

    Loaded once on construction and written back on every change. Pass
    ``path=None`` for an in-memory store.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self.configs: Dict[str, ModelConfig] = {}
        self.active_provider = DEFAULT_PROVIDER
        self.last_test_result: Optional[Dict] = None
        self.load()

    def load(self) -> None:
        """Read the store from disk, falling back to an empty store"""
        self.configs = {}
        self.active_provider = DEFAULT_PROVIDER
        self.last_test_result = None

        if self.path is None or not self.path.exists():
            return

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read model config {self.path}: {e}")
            return

        for provider, config_data in data.get('configs', {}).items():
            try:
                self.configs[provider] = ModelConfig.from_dict({'provider': provider, **config_data})
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping invalid model config '{provider}': {e}")

        self.active_provider = data.get('activeProvider', DEFAULT_PROVIDER)
        self.last_test_result = data.get('lastTestResult')
        logger.info(f"Loaded {len(self.configs)} model configs, active provider: {self.active_provider}")

    def save(self) -> None:
        if self.path is None:
            return

        data = {
            'configs': {name: config.to_dict() for name, config in self.configs.items()},
            'activeProvider': self.active_provider,
        }
        if self.last_test_result is not None:
            data['lastTestResult'] = self.last_test_result

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        except OSError as e:
            logger.error(f"Failed to save model config {self.path}: {e}")

    def update_model_config(self, provider: str, config: ModelConfig) -> None:
        """Store ``config`` for ``provider`` and make it the active one"""
        self.configs[provider] = config
        self.active_provider = provider
        self.save()

    def set_active_provider(self, provider: str) -> None:
        self.active_provider = provider
        self.save()

    def get_active_config(self) -> Optional[ModelConfig]:
        return self.configs.get(self.active_provider)

    def has_credentials(self) -> bool:
        config = self.get_active_config()
        return bool(config and config.api_key)

    def save_test_result(self, provider: str, success: bool, message: str) -> None:
        self.last_test_result = {
            'provider': provider,
            'success': success,
            'message': message,
            'timestamp': datetime.now().isoformat(),
        }
        self.save()
