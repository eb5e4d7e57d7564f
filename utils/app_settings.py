"""Application settings for the equipment loan services.

Values come from an optional ``[loans]`` section in ``data/app.ini`` and are
overridden by ``LOANS_*`` environment variables. The data directory itself is
taken from ``LOANS_DATA_DIR`` (default ``data``). Fines can only be paid once
``payment_gateway`` names a gateway; ``sandbox`` is for tests and demos.

Example INI::

    [loans]
    storage = sqlite
    due_policy = category
    category_days = Camera:3, Laptop:14
    fine_cents_per_day = 150
    payment_gateway = sandbox
"""

from __future__ import annotations

import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

logger = logging.getLogger(__name__)

_SECTION = "loans"
_ENV_PREFIX = "LOANS_"

STORAGE_BACKENDS = {"memory", "sqlite"}
DUE_POLICIES = {"fixed", "category"}
FINE_POLICIES = {"per_day", "flat"}
PAYMENT_GATEWAYS = {"disabled", "sandbox"}


def data_dir(env: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if env is None else env
    return Path(env.get("LOANS_DATA_DIR", "data"))


@dataclass
class LoanSettings:
    storage: str = "memory"
    db_path: Path = field(default_factory=lambda: data_dir() / "equipment_loans.db")
    due_policy: str = "fixed"
    loan_days: int = 7
    category_days: Dict[str, int] = field(default_factory=dict)
    fine_policy: str = "per_day"
    fine_cents_per_day: int = 100
    fine_flat_cents: int = 500
    fine_grace_days: int = 0
    fine_cap_cents: Optional[int] = None
    currency: str = "EUR"
    payment_gateway: str = "disabled"

    def __post_init__(self) -> None:
        if self.storage not in STORAGE_BACKENDS:
            raise ValueError(f"Unknown storage backend: {self.storage}")
        if self.due_policy not in DUE_POLICIES:
            raise ValueError(f"Unknown due-date policy: {self.due_policy}")
        if self.fine_policy not in FINE_POLICIES:
            raise ValueError(f"Unknown fine policy: {self.fine_policy}")
        if self.payment_gateway not in PAYMENT_GATEWAYS:
            raise ValueError(f"Unknown payment gateway: {self.payment_gateway}")
        if self.loan_days < 0:
            raise ValueError("loan_days must not be negative")
        self.db_path = Path(self.db_path)
        self.currency = self.currency.upper()


def parse_category_days(raw: str) -> Dict[str, int]:
    """Parse ``"Camera:3, Laptop:14"`` into ``{"Camera": 3, "Laptop": 14}``."""

    rules: Dict[str, int] = {}
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        category, sep, days = chunk.rpartition(":")
        if not sep or not category.strip():
            raise ValueError(f"Invalid category rule: {chunk!r}")
        rules[category.strip()] = int(days)
    return rules


def _read_ini(ini_path: Path) -> Dict[str, str]:
    if not ini_path.exists():
        return {}
    cp = configparser.ConfigParser()
    cp.read(ini_path)
    if not cp.has_section(_SECTION):
        return {}
    return {key: value for key, value in cp.items(_SECTION)}


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    ini_path: Optional[Path] = None,
) -> LoanSettings:
    env = os.environ if env is None else env
    base = data_dir(env)
    raw = _read_ini(ini_path or base / "app.ini")
    for key, value in env.items():
        if key.startswith(_ENV_PREFIX) and key != "LOANS_DATA_DIR":
            raw[key[len(_ENV_PREFIX):].lower()] = value

    cap = raw.get("fine_cap_cents", "").strip()
    settings = LoanSettings(
        storage=raw.get("storage", "memory").strip().lower(),
        db_path=Path(raw["db_path"]) if raw.get("db_path") else base / "equipment_loans.db",
        due_policy=raw.get("due_policy", "fixed").strip().lower(),
        loan_days=int(raw.get("loan_days", 7)),
        category_days=parse_category_days(raw.get("category_days", "")),
        fine_policy=raw.get("fine_policy", "per_day").strip().lower(),
        fine_cents_per_day=int(raw.get("fine_cents_per_day", 100)),
        fine_flat_cents=int(raw.get("fine_flat_cents", 500)),
        fine_grace_days=int(raw.get("fine_grace_days", 0)),
        fine_cap_cents=int(cap) if cap else None,
        currency=raw.get("currency", "EUR").strip(),
        payment_gateway=raw.get("payment_gateway", "disabled").strip().lower(),
    )
    logger.debug(
        "[settings] storage=%s due_policy=%s fine_policy=%s",
        settings.storage,
        settings.due_policy,
        settings.fine_policy,
    )
    return settings


__all__ = ["LoanSettings", "load_settings", "parse_category_days", "data_dir"]
