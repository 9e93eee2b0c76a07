"""
Player configuration.
Loads settings from environment variables, optionally seeded by a .env file.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from domain.models import (DEFAULT_API_URL, DEFAULT_EMBED_HOST,
                           DEFAULT_TICK_INTERVAL_MS, PlayerSettings)


def load_player_settings(env_path: Optional[Path] = None) -> PlayerSettings:
    """
    Load player settings.

    Priority:
    1. Environment variables (YTPLAYER_API_URL, YTPLAYER_EMBED_HOST, YTPLAYER_TICK_MS)
    2. .env file in project root
    3. Built-in defaults

    Raises:
        ValueError: If YTPLAYER_TICK_MS is not a positive integer
    """
    if env_path is None:
        env_path = Path(__file__).parent.parent / '.env'

    if env_path.exists():
        load_dotenv(env_path)

    api_url = os.getenv('YTPLAYER_API_URL') or DEFAULT_API_URL
    embed_host = os.getenv('YTPLAYER_EMBED_HOST') or DEFAULT_EMBED_HOST

    raw_tick = os.getenv('YTPLAYER_TICK_MS')
    tick_interval_ms = DEFAULT_TICK_INTERVAL_MS
    if raw_tick:
        try:
            tick_interval_ms = int(raw_tick)
        except ValueError:
            raise ValueError(f"YTPLAYER_TICK_MS must be an integer, got {raw_tick!r}") from None
        if tick_interval_ms <= 0:
            raise ValueError(f"YTPLAYER_TICK_MS must be positive, got {tick_interval_ms}")

    return PlayerSettings(
        api_url=api_url,
        embed_host=embed_host,
        tick_interval_ms=tick_interval_ms,
    )


def load_log_level() -> str:
    return (os.getenv('YTPLAYER_LOG_LEVEL') or 'INFO').upper()
