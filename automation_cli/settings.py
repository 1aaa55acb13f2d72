"""Process-level tunables read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


def _coerce_float(raw: Optional[str], fallback: float) -> float:
    if raw is None:
        return fallback
    text = raw.strip()
    if not text:
        return fallback
    try:
        value = float(text)
    except ValueError:
        return fallback
    if value < 0:
        return fallback
    return value


def _coerce_int(raw: Optional[str], fallback: int) -> int:
    if raw is None or not raw.strip():
        return fallback
    try:
        value = int(raw.strip())
    except ValueError:
        return fallback
    return value if value >= 0 else fallback


@dataclass(frozen=True)
class Settings:
    """Knobs that are not part of any environment record."""

    gas_premium_percent: int = 20
    health_timeout: float = 120.0
    health_interval: float = 5.0
    database_grace: float = 10.0
    receipt_timeout: float = 600.0
    receipt_poll_interval: float = 1.0
    contracts_directory: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        contracts = env.get("AUTOMATION_CLI_CONTRACTS_DIR")
        return cls(
            gas_premium_percent=_coerce_int(env.get("AUTOMATION_CLI_GAS_PREMIUM_PERCENT"), cls.gas_premium_percent),
            health_timeout=_coerce_float(env.get("AUTOMATION_CLI_HEALTH_TIMEOUT"), cls.health_timeout),
            health_interval=_coerce_float(env.get("AUTOMATION_CLI_HEALTH_INTERVAL"), cls.health_interval),
            database_grace=_coerce_float(env.get("AUTOMATION_CLI_DB_GRACE"), cls.database_grace),
            receipt_timeout=_coerce_float(env.get("AUTOMATION_CLI_RECEIPT_TIMEOUT"), cls.receipt_timeout),
            receipt_poll_interval=_coerce_float(
                env.get("AUTOMATION_CLI_RECEIPT_POLL_INTERVAL"), cls.receipt_poll_interval
            ),
            contracts_directory=Path(contracts).expanduser() if contracts else None,
        )


__all__ = ["Settings"]
