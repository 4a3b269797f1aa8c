import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)


DEFAULT_API_BASE_URL = "https://space.ai-builders.com/backend"
DEFAULT_MODEL = "grok-4-fast"


class ModelOption(BaseModel):
    value: str
    label: str
    description: str = ""


AVAILABLE_MODELS: list[ModelOption] = [
    ModelOption(value="grok-4-fast", label="Grok-4-Fast", description="Fast Grok model"),
    ModelOption(
        value="supermind-agent-v1",
        label="Supermind Agent",
        description="Multi-tool agent with web search",
    ),
    ModelOption(value="deepseek", label="DeepSeek", description="Fast and cost-effective"),
    ModelOption(value="gemini-2.5-pro", label="Gemini 2.5 Pro", description="Google Gemini model"),
    ModelOption(
        value="gemini-3-flash-preview",
        label="Gemini 3 Flash",
        description="Fast Gemini reasoning",
    ),
    ModelOption(value="gpt-5", label="GPT-5", description="OpenAI-compatible"),
]


def is_known_model(model: str) -> bool:
    return any(m.value == model for m in AVAILABLE_MODELS)


class AppConfig(BaseModel):
    api_token: str = ""
    selected_model: str = DEFAULT_MODEL


_config_dir = Path(os.environ.get("CHATCLONE_CONFIG_DIR", Path.home() / ".chatclone"))
_config_file = _config_dir / "config.json"
_storage_file = _config_dir / "storage.json"

# Fields encrypted at rest
SENSITIVE_FIELDS: list[str] = ["api_token"]


def api_base_url() -> str:
    """Base URL of the completion API, without a trailing slash."""
    url = (
        os.environ.get("AI_BUILDER_API_URL")
        or os.environ.get("NEXT_PUBLIC_AI_BUILDER_API_URL")
        or DEFAULT_API_BASE_URL
    )
    return url.rstrip("/")


def storage_mode() -> str:
    """``file`` (default) or ``memory`` when no durable storage should be used."""
    return os.environ.get("CHATCLONE_STORAGE", "file").strip().lower() or "file"


def get_storage_path() -> Path:
    return _storage_file


def _encrypt_sensitive(data: dict) -> dict:
    """Encrypt sensitive fields in a config dict before writing to disk."""
    from .crypto import encrypt_value

    for field in SENSITIVE_FIELDS:
        if field in data:
            data[field] = encrypt_value(data[field])
    return data


def _decrypt_sensitive(data: dict) -> dict:
    """Decrypt sensitive fields in a config dict after reading from disk."""
    from .crypto import decrypt_value

    for field in SENSITIVE_FIELDS:
        if field in data:
            data[field] = decrypt_value(data[field])
    return data


def _needs_migration(data: dict) -> bool:
    """Return True if any sensitive field is non-empty plaintext (no ENC: prefix)."""
    from .crypto import _ENC_PREFIX

    for field in SENSITIVE_FIELDS:
        val = data.get(field, "")
        if val and not val.startswith(_ENC_PREFIX):
            return True
    return False


def _ensure_config_dir() -> None:
    _config_dir.mkdir(parents=True, exist_ok=True)


def load_config() -> AppConfig:
    _ensure_config_dir()
    config = AppConfig()
    if _config_file.exists():
        try:
            data = json.loads(_config_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            logger.warning("Failed to read %s, using defaults", _config_file)
            data = None
        if isinstance(data, dict):
            migrate = _needs_migration(data)
            data = _decrypt_sensitive(data)
            config = AppConfig(**data)
            if migrate:
                logger.info("Migrating config to encrypted storage")
                save_config(config)

    # A token provided through the environment seeds an empty config
    env_token = os.environ.get("AI_BUILDER_TOKEN", "")
    if not config.api_token and env_token:
        config.api_token = env_token
        save_config(config)
    return config


def save_config(config: AppConfig) -> None:
    from .crypto import set_strict_permissions

    _ensure_config_dir()
    data = json.loads(config.model_dump_json())
    data = _encrypt_sensitive(data)
    _config_file.write_text(
        json.dumps(data, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    set_strict_permissions(_config_file)


_current_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _current_config
    if _current_config is None:
        _current_config = load_config()
    return _current_config


def update_config(config: AppConfig) -> AppConfig:
    global _current_config
    save_config(config)
    _current_config = config
    return _current_config


def reset_config() -> None:
    """Drop the cached config so the next ``get_config()`` reloads from disk."""
    global _current_config
    _current_config = None
