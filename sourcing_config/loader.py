"""
Configuration loader (``sourcing_config.loader``).

Responsibility
--------------
Reads a YAML document and parses it into a validated
``MarketplaceConfig``.  Callers outside this package go through
``sourcing_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or bad values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from sourcing_config.schema import AutoQuoteConfig, MarketplaceConfig

_TOP_LEVEL_KEYS = frozenset({
    "default_margin_percent",
    "default_category",
    "payout_holding_days",
    "credit_history_limit",
    "enforce_credit_on_acceptance",
    "order_initial_status",
    "auto_quote",
})

_AUTO_QUOTE_KEYS = frozenset({
    "enabled",
    "delay_minutes",
    "lead_time_days",
    "include_limited_stock",
    "batch_limit",
})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_decimal(name: str, value: Any) -> Decimal:
    # YAML floats go through str() so 15.1 stays 15.1
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a number, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc


def parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


def parse_bool(name: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false, got {value!r}")
    return value


def _reject_unknown(section: str, data: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown {section} keys: {', '.join(unknown)}")


def parse_auto_quote(data: dict[str, Any]) -> AutoQuoteConfig:
    _reject_unknown("auto_quote", data, _AUTO_QUOTE_KEYS)
    defaults = AutoQuoteConfig()
    return AutoQuoteConfig(
        enabled=parse_bool("auto_quote.enabled", data.get("enabled", defaults.enabled)),
        delay_minutes=parse_int(
            "auto_quote.delay_minutes", data.get("delay_minutes", defaults.delay_minutes),
        ),
        lead_time_days=parse_int(
            "auto_quote.lead_time_days", data.get("lead_time_days", defaults.lead_time_days),
        ),
        include_limited_stock=parse_bool(
            "auto_quote.include_limited_stock",
            data.get("include_limited_stock", defaults.include_limited_stock),
        ),
        batch_limit=parse_int(
            "auto_quote.batch_limit", data.get("batch_limit", defaults.batch_limit),
        ),
    )


def parse_marketplace_config(data: dict[str, Any]) -> MarketplaceConfig:
    """
    Build a ``MarketplaceConfig`` from a parsed YAML mapping.

    Keys left out fall back to the dataclass defaults.
    """
    _reject_unknown("configuration", data, _TOP_LEVEL_KEYS)
    defaults = MarketplaceConfig()
    return MarketplaceConfig(
        default_margin_percent=parse_decimal(
            "default_margin_percent",
            data.get("default_margin_percent", defaults.default_margin_percent),
        ),
        default_category=str(data.get("default_category", defaults.default_category)),
        payout_holding_days=parse_int(
            "payout_holding_days",
            data.get("payout_holding_days", defaults.payout_holding_days),
        ),
        credit_history_limit=parse_int(
            "credit_history_limit",
            data.get("credit_history_limit", defaults.credit_history_limit),
        ),
        enforce_credit_on_acceptance=parse_bool(
            "enforce_credit_on_acceptance",
            data.get("enforce_credit_on_acceptance", defaults.enforce_credit_on_acceptance),
        ),
        order_initial_status=str(
            data.get("order_initial_status", defaults.order_initial_status)
        ),
        auto_quote=parse_auto_quote(data.get("auto_quote") or {}),
        checksum=compute_checksum(data),
    )
