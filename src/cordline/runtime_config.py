"""
Runtime configuration for cordline.

This module provides:
- load_envs(): load DISCORD_TOKEN, CORDLINE_HISTORY_LIMIT and CORDLINE_LOG_LEVEL from a
  .env file if they are not already present in the environment.
- RuntimeConfig: a dataclass holding runtime settings, including the token,
  the history size fetched on join and the typing cool-down.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values, find_dotenv

# Environment variable names
DISCORD_TOKEN_ENV: str = "DISCORD_TOKEN"
HISTORY_LIMIT_ENV: str = "CORDLINE_HISTORY_LIMIT"
LOG_LEVEL_ENV: str = "CORDLINE_LOG_LEVEL"

DEFAULT_HISTORY_LIMIT: int = 50
TYPING_COOLDOWN_SECONDS: float = 8.0


def load_envs(env_file: Optional[str] = None) -> None:
    """
    Load DISCORD_TOKEN, CORDLINE_HISTORY_LIMIT and CORDLINE_LOG_LEVEL from a .env file
    into the process environment if they are not already set.
    """
    env_values = dotenv_values(env_file or find_dotenv(usecwd=True))
    for key in (DISCORD_TOKEN_ENV, HISTORY_LIMIT_ENV, LOG_LEVEL_ENV):
        if not os.environ.get(key):
            val = env_values.get(key)
            if val:
                os.environ[key] = str(val)


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Holds runtime configuration for a cordline session.

    Attributes:
        token: The Discord token used to open the session.
        history_limit: How many recent messages /join prints.
        typing_cooldown: Seconds between two outbound typing signals.
    """

    token: str
    history_limit: int = DEFAULT_HISTORY_LIMIT
    typing_cooldown: float = TYPING_COOLDOWN_SECONDS


def get_config_dir() -> Path:
    """
    Return the cordline config directory under XDG_CONFIG_HOME or fallback to ~/.config.
    """
    config_home = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return config_home / "cordline"


def get_data_dir() -> Path:
    """
    Return the cordline data directory under XDG_DATA_HOME or fallback to ~/.local/share.
    """
    data_home = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return data_home / "cordline"
