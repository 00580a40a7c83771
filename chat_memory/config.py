"""
Configuration for persistent chat memory.

Every setting is resolved once, up front, and handed to the components that
need it; storage backends never read the environment themselves.

Precedence (first hit wins)
---------------------------
1. explicit argument to ``ChatMemoryConfig.resolve``
2. environment variable (``.env`` is loaded first via python-dotenv)
3. ``chat_memory:`` section of an optional YAML config file
4. built-in default

Environment
-----------
    BROWSEROS_CHAT_MEMORY_ID            conversation id          (default "default")
    BROWSEROS_CHAT_MEMORY_PATH          SQLite database path     (default ./chat_memory.sqlite)
    BROWSEROS_CHAT_MEMORY_MAX_TOKENS    token budget             (default 8192)
    BROWSEROS_CHAT_MEMORY_JOURNAL_MODE  SQLite journal mode      (default WAL)
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from chat_memory.utils.logging import get_logger

logger = get_logger(__name__)

ENV_CONVERSATION_ID = "BROWSEROS_CHAT_MEMORY_ID"
ENV_DB_PATH = "BROWSEROS_CHAT_MEMORY_PATH"
ENV_MAX_TOKENS = "BROWSEROS_CHAT_MEMORY_MAX_TOKENS"
ENV_JOURNAL_MODE = "BROWSEROS_CHAT_MEMORY_JOURNAL_MODE"

DEFAULT_CONVERSATION_ID = "default"
DEFAULT_DB_FILENAME = "chat_memory.sqlite"
DEFAULT_MAX_TOKENS = 8192
DEFAULT_JOURNAL_MODE = "WAL"

JOURNAL_MODES = frozenset({"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"})


def default_db_path() -> Path:
    """Database file in the current working directory."""
    return Path.cwd() / DEFAULT_DB_FILENAME


def resolve_db_path(db_path: Optional[Union[str, Path]] = None) -> Path:
    """
    Database file: *db_path* when given, else ``BROWSEROS_CHAT_MEMORY_PATH``,
    else ``./chat_memory.sqlite``. No other setting is read.
    """
    explicit = _blank_to_none(db_path)
    if explicit is not None:
        return Path(explicit)
    load_dotenv()
    from_env = _blank_to_none(os.getenv(ENV_DB_PATH))
    return Path(from_env) if from_env is not None else default_db_path()


def normalize_journal_mode(value: str) -> str:
    """Upper-case *value*; raise ``ValueError`` unless it is a SQLite journal mode."""
    mode = value.strip().upper() if isinstance(value, str) else value
    if mode not in JOURNAL_MODES:
        raise ValueError(
            f"journal_mode must be one of {sorted(JOURNAL_MODES)}, got {value!r}"
        )
    return mode


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _load_file_section(config_file: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """Return the ``chat_memory`` section of *config_file*, or ``{}``."""
    if config_file is None:
        return {}
    path = Path(config_file)
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning("Ignoring unreadable config file %s: %s", path, exc)
        return {}
    section = data.get("chat_memory", {}) if isinstance(data, dict) else {}
    return section if isinstance(section, dict) else {}


class ChatMemoryConfig(BaseModel):
    """Resolved settings for a persistent conversation."""

    conversation_id: str = Field(default=DEFAULT_CONVERSATION_ID, min_length=1)
    db_path: Path = Field(default_factory=default_db_path)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    journal_mode: str = Field(default=DEFAULT_JOURNAL_MODE)

    @field_validator("journal_mode")
    @classmethod
    def _check_journal_mode(cls, value: str) -> str:
        return normalize_journal_mode(value)

    @classmethod
    def resolve(
        cls,
        conversation_id: Optional[str] = None,
        db_path: Optional[Union[str, Path]] = None,
        max_tokens: Optional[int] = None,
        journal_mode: Optional[str] = None,
        config_file: Optional[Union[str, Path]] = None,
    ) -> "ChatMemoryConfig":
        """
        Build a config from explicit values, the environment and an optional
        YAML file, in that order of precedence.
        """
        load_dotenv()
        file_cfg = _load_file_section(config_file)

        def pick(explicit: Any, env_var: str, key: str) -> Any:
            for candidate in (explicit, os.getenv(env_var), file_cfg.get(key)):
                candidate = _blank_to_none(candidate)
                if candidate is not None:
                    return candidate
            return None

        values: Dict[str, Any] = {
            "conversation_id": pick(conversation_id, ENV_CONVERSATION_ID, "conversation_id"),
            "db_path": pick(db_path, ENV_DB_PATH, "db_path"),
            "max_tokens": pick(max_tokens, ENV_MAX_TOKENS, "max_tokens"),
            "journal_mode": pick(journal_mode, ENV_JOURNAL_MODE, "journal_mode"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})
