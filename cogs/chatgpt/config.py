"""
Configuration for the ChatGPT Module
====================================

Values are read from the environment once, when the cog is constructed.
A ``.env`` file in the working directory is honoured.
"""

import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .exceptions import ConfigurationException

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://chat.openai.com"
DEFAULT_MODEL = "text-davinci-002-render"
DEFAULT_STORAGE_PATH = "data/chatgpt.json"


def _require(env: Mapping[str, str], key: str) -> str:
    value = env.get(key)
    if value is None or not value.strip():
        raise ConfigurationException(f"Missing required setting '{key}'", key=key)
    return value.strip()


def _require_positive_int(env: Mapping[str, str], key: str) -> int:
    raw = _require(env, key)
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationException(
            f"Setting '{key}' must be an integer number of milliseconds, got {raw!r}",
            key=key
        )
    if value <= 0:
        raise ConfigurationException(f"Setting '{key}' must be positive, got {value}", key=key)
    return value


def _parse_denylist(raw: Optional[str]) -> Optional[Tuple[str, ...]]:
    if raw is None:
        return None
    terms = tuple(term.strip() for term in raw.split(",") if term.strip())
    return terms or None


@dataclass
class ChatGPTConfig:
    """Settings the MentionResponder needs for its whole lifetime."""
    token: str
    timeout_ms: int
    cooldown_ms: int
    denylist: Optional[Tuple[str, ...]] = None
    storage_path: str = DEFAULT_STORAGE_PATH
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    log_level: str = "INFO"

    @property
    def timeout(self) -> float:
        """Dispatch timeout in seconds."""
        return self.timeout_ms / 1000

    @property
    def cooldown(self) -> float:
        """Minimum dispatch spacing in seconds."""
        return self.cooldown_ms / 1000

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "ChatGPTConfig":
        """
        Build the configuration from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (``.env`` is
                only loaded when this is omitted)

        Raises:
            ConfigurationException: If a required value is missing or invalid
        """
        if env is None:
            load_dotenv()
            env = os.environ

        config = cls(
            token=_require(env, "chatgpt_token"),
            timeout_ms=_require_positive_int(env, "chatgpt_timeout"),
            cooldown_ms=_require_positive_int(env, "chatgpt_cooldown"),
            denylist=_parse_denylist(env.get("chatgpt_denylist")),
            storage_path=env.get("chatgpt_storage_path", DEFAULT_STORAGE_PATH),
            base_url=env.get("chatgpt_base_url", DEFAULT_BASE_URL).rstrip("/"),
            model=env.get("chatgpt_model", DEFAULT_MODEL),
            log_level=env.get("chatgpt_log_level", "INFO").upper(),
        )

        logger.debug(
            f"Loaded ChatGPT config: timeout={config.timeout_ms}ms, "
            f"cooldown={config.cooldown_ms}ms, storage={config.storage_path}"
        )
        return config
