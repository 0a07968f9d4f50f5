"""Runtime configuration for extraction runs.

Values come from ``EKSTRE_*`` environment variables (the CLI loads a local
``.env`` first via python-dotenv). Every knob has a default, so an empty
environment yields a working configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError

DEFAULT_STATE_PATH = Path(".ekstre") / "state.json"


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Knobs for one extraction and reconciliation run.

    ``lookahead_days`` bounds synthesized loan installments going forward from
    today; ``retrieval_window_months`` bounds message retrieval going back.
    The two windows are independent.
    """

    lookahead_days: int = 10
    retrieval_window_months: int = 2
    email_max_results: int = 10
    message_max_results: int = 5
    concurrency: int = 4
    manual_horizon_months: int = 1
    state_path: Path = DEFAULT_STATE_PATH

    @classmethod
    def from_env(cls) -> EngineConfig:
        state_path = os.getenv("EKSTRE_STATE_PATH")
        return cls(
            lookahead_days=_env_int("EKSTRE_LOOKAHEAD_DAYS", 10, minimum=0),
            retrieval_window_months=_env_int("EKSTRE_RETRIEVAL_WINDOW_MONTHS", 2, minimum=0),
            email_max_results=_env_int("EKSTRE_EMAIL_MAX_RESULTS", 10, minimum=1),
            message_max_results=_env_int("EKSTRE_MESSAGE_MAX_RESULTS", 5, minimum=1),
            concurrency=_env_int("EKSTRE_CONCURRENCY", 4, minimum=1),
            manual_horizon_months=_env_int("EKSTRE_MANUAL_HORIZON_MONTHS", 1, minimum=0),
            state_path=Path(state_path) if state_path else DEFAULT_STATE_PATH,
        )


def _env_int(name: str, default: int, *, minimum: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


__all__ = ["DEFAULT_STATE_PATH", "EngineConfig"]
