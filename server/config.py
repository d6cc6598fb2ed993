"""
Server settings for Crazy Eights.

Values come from environment variables, with a ``.env`` file at the project
root loaded first (python-dotenv never overrides variables that are already
set). Anything unset or unparsable keeps its default.

Usage:
    from config import config
    config.PORT
    config.game_defaults.cpu_delay_scale
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Read a yes/no flag; anything unrecognized keeps ``default``."""
    raw = os.environ.get(key, "").strip().lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def _get_env_number(key: str, default, cast):
    raw = os.environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning(f"Ignoring {key}={raw!r}, using {default}")
        return default


def get_env_int(key: str, default: int = 0) -> int:
    return _get_env_number(key, default, int)


def get_env_float(key: str, default: float = 0.0) -> float:
    return _get_env_number(key, default, float)


@dataclass
class GameDefaults:
    """Per-table game settings."""
    cpu_delay_scale: float = 1.0  # 0 = CPU moves without pausing


@dataclass
class ServerConfig:
    """Process-wide settings."""
    HOST: str = "127.0.0.1"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"
    MAX_TABLES: int = 100
    game_defaults: GameDefaults = field(default_factory=GameDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        defaults = cls()
        game = GameDefaults(
            cpu_delay_scale=max(
                0.0, get_env_float("CPU_DELAY_SCALE", defaults.game_defaults.cpu_delay_scale)
            ),
        )
        return cls(
            HOST=get_env("HOST", defaults.HOST),
            PORT=get_env_int("PORT", defaults.PORT),
            DEBUG=get_env_bool("DEBUG", defaults.DEBUG),
            LOG_LEVEL=get_env("LOG_LEVEL", defaults.LOG_LEVEL).upper(),
            ENVIRONMENT=get_env("ENVIRONMENT", defaults.ENVIRONMENT),
            MAX_TABLES=get_env_int("MAX_TABLES", defaults.MAX_TABLES),
            game_defaults=game,
        )


config = ServerConfig.from_env()


def reload_config() -> ServerConfig:
    """
    Re-read the environment into the module-level ``config``.

    Only ``config`` itself changes. Values that constants.py and its
    importers copied at import time (CPU_DELAY_SCALE, MAX_TABLES) keep the
    settings the process started with.
    """
    global config
    config = ServerConfig.from_env()
    return config
