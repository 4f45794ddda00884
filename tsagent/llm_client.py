"""
Chat-completion API integration for the timesheet agent
"""

import json
import logging
import requests
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .models import ModelConfig

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when there's an issue talking to the LLM provider"""
    pass


@dataclass
class ModelProvider:
    """A known chat-completion provider"""
    id: str
    display_name: str
    base_url: str
    models: List[str]
    requires_auth: bool = True


MODEL_PROVIDERS = [
    ModelProvider('openai', 'OpenAI', 'https://api.openai.com/v1',
                  ['gpt-4o', 'gpt-4o-mini', 'gpt-4-turbo', 'gpt-3.5-turbo']),
    ModelProvider('moonshot', 'Moonshot AI', 'https://api.moonshot.cn/v1',
                  ['moonshot-v1-8k', 'moonshot-v1-32k', 'moonshot-v1-128k']),
    ModelProvider('azure', 'Azure OpenAI', 'https://your-resource.openai.azure.com',
                  ['gpt-4', 'gpt-35-turbo']),
    ModelProvider('anyscale', 'Anyscale', 'https://api.endpoints.anyscale.com/v1',
                  ['meta-llama/Llama-2-7b-chat-hf', 'meta-llama/Llama-2-13b-chat-hf',
                   'mistralai/Mistral-7B-Instruct-v0.1']),
    ModelProvider('deepseek', 'DeepSeek', 'https://api.deepseek.com/v1',
                  ['deepseek-chat', 'deepseek-coder']),
    ModelProvider('zhipu', 'Zhipu AI', 'https://open.bigmodel.cn/api/paas/v4',
                  ['glm-4', 'glm-4-0520', 'glm-3-turbo']),
]

# Providers that accept top_p and the penalty parameters
FULL_SUPPORT_PROVIDERS = [
    'openai', 'moonshot', 'azure', 'anyscale', 'deepseek', 'zhipu', 'baichuan', 'minimax', 'spark', 'qwen'
]


def get_provider(provider_id: str) -> Optional[ModelProvider]:
    for provider in MODEL_PROVIDERS:
        if provider.id == provider_id:
            return provider
    return None


def _dig(data: Any, *path) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing"""
    for key in path:
        if isinstance(key, int):
            if not isinstance(data, list) or len(data) <= key:
                return None
        elif not isinstance(data, dict):
            return None
        data = data[key] if isinstance(key, int) else data.get(key)
    return data


# Tried in order; the first extractor returning a non-empty string wins.
RESPONSE_EXTRACTORS: List[Tuple[str, Callable[[Any], Any]]] = [
    ('openai', lambda d: _dig(d, 'choices', 0, 'message', 'content')),
    ('gemini', lambda d: _dig(d, 'candidates', 0, 'content', 'parts', 0, 'text')),
    ('result', lambda d: _dig(d, 'result')),
    ('output_text', lambda d: _dig(d, 'output', 'text')),
    ('output_content', lambda d: _dig(d, 'output', 0, 'content', 0, 'text')),
    ('responses', lambda d: _dig(d, 'output', 0, 'text')),
]


def extract_response_text(data: Any) -> Optional[str]:
    """Normalize a provider response envelope into the reply text"""
    for name, extractor in RESPONSE_EXTRACTORS:
        text = extractor(data)
        if isinstance(text, str) and text.strip():
            logger.debug(f"Extracted reply using {name} format")
            return text
    return None


def extract_json_object(text: str) -> Dict:
    """Parse the JSON object spanning the first '{' to the last '}' in ``text``"""
    start = text.find('{')
    end = text.rfind('}')
    if start == -1 or end <= start:
        raise LLMError("No JSON object found in model reply")
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise LLMError(f"Invalid JSON in model reply: {e}")
    if not isinstance(data, dict):
        raise LLMError("Model reply JSON is not an object")
    return data


class LLMClient:
    """Sends chat-completion requests to the configured provider"""

    def __init__(self, config: ModelConfig, timeout: float = 60):
        self.config = config
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Authorization': f'Bearer {config.api_key}',
            'Content-Type': 'application/json',
        })

    def _make_request(self, method: str, url: str, timeout: Optional[float] = None, **kwargs):
        """Make HTTP request and translate transport failures into LLMError"""
        try:
            response = self.session.request(method, url, timeout=timeout or self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except requests.exceptions.Timeout:
            raise LLMError(f"Request timeout for {method} {url}")
        except requests.exceptions.ConnectionError:
            raise LLMError(f"Connection error for {method} {url}")
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 'unknown'
            if status == 401:
                raise LLMError("Authentication failed. Please check your API key.")
            elif status == 404:
                raise LLMError(f"Resource not found: {url}")
            else:
                raise LLMError(f"HTTP error {status}")
        except requests.exceptions.RequestException as e:
            raise LLMError(f"Request failed: {e}")

    def build_request_body(self, system_prompt: str, user_prompt: str,
                           default_max_tokens: int = 4000) -> Dict:
        body = {
            'model': self.config.model,
            'messages': [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt},
            ],
            'temperature': self.config.temperature if self.config.temperature is not None else 0.7,
            'max_tokens': self.config.max_tokens or default_max_tokens,
        }

        if self.config.provider in FULL_SUPPORT_PROVIDERS:
            for name in ('top_p', 'presence_penalty', 'frequency_penalty'):
                value = getattr(self.config, name)
                if isinstance(value, (int, float)):
                    body[name] = value

        return body

    def chat(self, system_prompt: str, user_prompt: str, default_max_tokens: int = 4000) -> str:
        """Send one chat request and return the reply text"""
        body = self.build_request_body(system_prompt, user_prompt, default_max_tokens)
        logger.debug(f"Sending chat request to {self.config.provider} ({self.config.model})")

        response = self._make_request('POST', f"{self.config.base_url}/chat/completions", json=body)

        try:
            data = response.json()
        except ValueError as e:
            raise LLMError(f"Provider returned a non-JSON body: {e}")

        text = extract_response_text(data)
        if not text:
            raise LLMError("Unrecognized response format from provider")
        return text

    def test_connection(self) -> Tuple[bool, str]:
        """Check the provider is reachable and the model is available"""
        try:
            response = self.session.get(f"{self.config.base_url}/models", timeout=10)
            if response.ok:
                data = response.json()
                models = data.get('data') if isinstance(data, dict) else None
                if isinstance(models, list):
                    available = any(
                        m.get('id') == self.config.model or m.get('model') == self.config.model
                        for m in models if isinstance(m, dict)
                    )
                    if available:
                        return True, f"Connected, model {self.config.model} is available"
                    return False, f"Connected, but model {self.config.model} is not available"
                return True, "Connected"
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.debug(f"/models check failed, trying /chat/completions: {e}")

        try:
            response = self.session.post(
                f"{self.config.base_url}/chat/completions",
                json={
                    'model': self.config.model,
                    'messages': [{'role': 'user', 'content': 'test'}],
                    'max_tokens': 1,
                },
                timeout=10,
            )
        except requests.exceptions.Timeout:
            return False, "Connection timed out, check the network or base URL"
        except requests.exceptions.RequestException as e:
            return False, f"Connection failed: {e}"

        if response.ok:
            return True, f"Connected, model {self.config.model} is available"
        if response.status_code == 401:
            return False, "Invalid API key, please check the configuration"
        if response.status_code == 404:
            return False, f"Model {self.config.model} does not exist or is unavailable"
        return False, f"Connection failed: HTTP {response.status_code}"
