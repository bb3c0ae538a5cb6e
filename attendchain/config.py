"""
Ledger configuration.

Defaults live in module constants; LedgerConfig can be overridden from
ATTENDCHAIN_* environment variables via load_config().
"""

from dataclasses import dataclass
from os import environ
from typing import Mapping, Optional, Tuple


ENV_PREFIX = "ATTENDCHAIN_"

# Proof-of-work difficulty: number of leading zero hex characters
DEFAULT_DIFFICULTY = 4
MAX_DIFFICULTY = 64  # a SHA-256 hex digest has 64 characters

VALID_ATTENDANCE_STATUSES: Tuple[str, ...] = ('Present', 'Absent', 'Leave')

SNAPSHOT_INTERVAL_SECONDS = 30.0
DEFAULT_SNAPSHOT_PATH = "data/blockchain.json"


@dataclass(frozen=True)
class LedgerConfig:
    difficulty: int = DEFAULT_DIFFICULTY
    snapshot_path: str = DEFAULT_SNAPSHOT_PATH
    snapshot_interval: float = SNAPSHOT_INTERVAL_SECONDS
    autosave: bool = True

    def validate(self) -> None:
        if not 0 <= self.difficulty <= MAX_DIFFICULTY:
            raise ValueError(f"difficulty must be between 0 and {MAX_DIFFICULTY}")
        if self.snapshot_interval <= 0:
            raise ValueError("snapshot_interval must be > 0")
        if not (self.snapshot_path or "").strip():
            raise ValueError("snapshot_path must be set")


def _coerce_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _coerce_int(value: str, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid integer for {field}: {value}") from exc


def _coerce_float(value: str, field: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid float for {field}: {value}") from exc


def _get_env(env: Mapping[str, str], key: str) -> Optional[str]:
    return env.get(f"{ENV_PREFIX}{key}")


def load_config(env: Optional[Mapping[str, str]] = None) -> LedgerConfig:
    source = environ if env is None else env

    difficulty_raw = _get_env(source, "DIFFICULTY")
    difficulty = (
        _coerce_int(difficulty_raw, "difficulty")
        if difficulty_raw is not None
        else LedgerConfig.difficulty
    )

    snapshot_path = _get_env(source, "SNAPSHOT_PATH") or LedgerConfig.snapshot_path

    interval_raw = _get_env(source, "SNAPSHOT_INTERVAL")
    snapshot_interval = (
        _coerce_float(interval_raw, "snapshot_interval")
        if interval_raw is not None
        else LedgerConfig.snapshot_interval
    )

    autosave_raw = _get_env(source, "AUTOSAVE")
    autosave = _coerce_bool(autosave_raw) if autosave_raw is not None else LedgerConfig.autosave

    cfg = LedgerConfig(
        difficulty=difficulty,
        snapshot_path=snapshot_path,
        snapshot_interval=snapshot_interval,
        autosave=autosave,
    )
    cfg.validate()
    return cfg
