# scoring_api/config.py
from __future__ import annotations

import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, str(default))
    try:
        return float(raw)
    except ValueError:
        return default


# -------------------------
# Match format defaults (T20)
# -------------------------
DEFAULT_OVERS_LIMIT: int = _get_env_int("DEFAULT_OVERS_LIMIT", 20)
DEFAULT_PLAYERS_PER_TEAM: int = _get_env_int("DEFAULT_PLAYERS_PER_TEAM", 11)
DEFAULT_MAX_OVERS_PER_BOWLER: int = _get_env_int("DEFAULT_MAX_OVERS_PER_BOWLER", 4)
DEFAULT_POWERPLAY_OVERS: int = _get_env_int("DEFAULT_POWERPLAY_OVERS", 6)


# -------------------------
# Persistence backend (OPTIONAL)
# -------------------------
# If 0, balls live only in this process; nothing is pushed anywhere.
SCORING_BACKEND_ENABLED: bool = _get_env("SCORING_BACKEND_ENABLED", "0") == "1"
SCORING_BACKEND_URL: str = _get_env("SCORING_BACKEND_URL", "http://localhost:3001/api/scoring")
SCORING_BACKEND_TOKEN: str = _get_env("SCORING_BACKEND_TOKEN")

SYNC_TIMEOUT_SECONDS: float = _get_env_float("SYNC_TIMEOUT_SECONDS", 10.0)
SYNC_MAX_ATTEMPTS: int = _get_env_int("SYNC_MAX_ATTEMPTS", 4)
SYNC_BACKOFF_MULTIPLIER_MS: int = _get_env_int("SYNC_BACKOFF_MULTIPLIER_MS", 500)
SYNC_BACKOFF_MAX_MS: int = _get_env_int("SYNC_BACKOFF_MAX_MS", 8000)

LOG_LEVEL: str = _get_env("LOG_LEVEL", "INFO").upper()


def validate_config() -> None:
    if DEFAULT_OVERS_LIMIT <= 0:
        raise RuntimeError("DEFAULT_OVERS_LIMIT must be positive")
    if DEFAULT_MAX_OVERS_PER_BOWLER <= 0:
        raise RuntimeError("DEFAULT_MAX_OVERS_PER_BOWLER must be positive")
    if DEFAULT_MAX_OVERS_PER_BOWLER > DEFAULT_OVERS_LIMIT:
        raise RuntimeError("DEFAULT_MAX_OVERS_PER_BOWLER cannot exceed DEFAULT_OVERS_LIMIT")
    if DEFAULT_PLAYERS_PER_TEAM < 2:
        raise RuntimeError("DEFAULT_PLAYERS_PER_TEAM must be at least 2")
    if not 0 <= DEFAULT_POWERPLAY_OVERS <= DEFAULT_OVERS_LIMIT:
        raise RuntimeError("DEFAULT_POWERPLAY_OVERS must be between 0 and DEFAULT_OVERS_LIMIT")

    # Backend sanity only matters when sync is on
    if SCORING_BACKEND_ENABLED and not SCORING_BACKEND_URL.startswith("http"):
        raise RuntimeError("SCORING_BACKEND_URL must start with http/https")

    if SYNC_TIMEOUT_SECONDS <= 0:
        raise RuntimeError("SYNC_TIMEOUT_SECONDS must be positive")
    if SYNC_MAX_ATTEMPTS < 1:
        raise RuntimeError("SYNC_MAX_ATTEMPTS must be at least 1")
    if SYNC_BACKOFF_MULTIPLIER_MS < 0 or SYNC_BACKOFF_MAX_MS < 0:
        raise RuntimeError("SYNC_BACKOFF_* must not be negative")

    if LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise RuntimeError(f"LOG_LEVEL must be a logging level name, got {LOG_LEVEL}")
