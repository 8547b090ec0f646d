"""Project-level configuration and path helpers."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_CACHE_PATH = DATA_DIR / "chat_cache.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_CACHE_MAX_AGE_MINUTES = 5
DEFAULT_MERGE_POLICY = "last_writer_wins"

DATA_DIR.mkdir(parents=True, exist_ok=True)
LOGS_DIR.mkdir(parents=True, exist_ok=True)


PathLike = Union[str, Path]


def resolve_cache_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve CHAT_CACHE_PATH to an absolute path."""
    if not env_value:
        return DEFAULT_CACHE_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def cache_max_age_minutes() -> int:
    """Freshness window for the room cache, from CACHE_MAX_AGE_MINUTES."""
    raw = os.getenv("CACHE_MAX_AGE_MINUTES")
    if not raw:
        return DEFAULT_CACHE_MAX_AGE_MINUTES
    try:
        return int(raw)
    except ValueError:
        return DEFAULT_CACHE_MAX_AGE_MINUTES


def merge_policy_name() -> str:
    """Room merge policy name, from CHAT_MERGE_POLICY."""
    return os.getenv("CHAT_MERGE_POLICY", DEFAULT_MERGE_POLICY)
