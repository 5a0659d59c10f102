"""
Configuration Loader (``pos_config.loader``).

Responsibility
--------------
Load the shop YAML file and parse it into the typed ``pos_config.schema``
dataclasses.  Runtime callers go through ``pos_config.get_active_config()``.

Invariants enforced
-------------------
* Money and percentages are parsed to ``Decimal`` via their string form,
  never through float arithmetic.
* Negative amounts and percentages outside 0..100 raise
  ``InvalidConfigError``.
* ``compute_checksum`` is a deterministic SHA-256 of the parsed content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad value  -> ``InvalidConfigError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from pos_config.schema import (
    DEFAULT_DAILY_TARGET,
    DEFAULT_TOP_ITEMS,
    DashboardSettings,
    DeliveryChannel,
    ShopConfig,
)
from pos_kernel.domain.settings import FixedCosts, HiddenCosts
from pos_kernel.exceptions import InvalidConfigError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Postconditions:
        - Returns a ``dict`` (empty if the YAML is empty).
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(key: str, value: Any, default: Decimal = Decimal("0")) -> Decimal:
    """Parse a non-negative Decimal from a YAML scalar."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidConfigError(key, value, "expected a number")
    try:
        parsed = Decimal(str(value))
    except InvalidOperation:
        raise InvalidConfigError(key, value, "expected a number") from None
    if not parsed.is_finite() or parsed < 0:
        raise InvalidConfigError(key, value, "must be a finite number >= 0")
    return parsed


def parse_percent(key: str, value: Any) -> Decimal:
    parsed = parse_decimal(key, value)
    if parsed > 100:
        raise InvalidConfigError(key, value, "percentage must be between 0 and 100")
    return parsed


def parse_fixed_costs(data: dict[str, Any]) -> FixedCosts:
    return FixedCosts(
        rent=parse_decimal("fixed_costs.rent", data.get("rent")),
        transport=parse_decimal("fixed_costs.transport", data.get("transport")),
        electricity=parse_decimal("fixed_costs.electricity", data.get("electricity")),
        labor=parse_decimal("fixed_costs.labor", data.get("labor")),
    )


def parse_hidden_costs(data: dict[str, Any]) -> HiddenCosts:
    return HiddenCosts(
        waste_percent=parse_percent("hidden_costs.waste_percent", data.get("waste_percent")),
        promo_loss_percent=parse_percent(
            "hidden_costs.promo_loss_percent", data.get("promo_loss_percent")
        ),
    )


def parse_delivery_channel(data: dict[str, Any]) -> DeliveryChannel:
    name = str(data.get("name") or "").strip()
    if not name:
        raise InvalidConfigError("delivery_channels.name", data.get("name"), "required")
    return DeliveryChannel(
        name=name,
        fee_percent=parse_percent(f"delivery_channels.{name}.fee_percent", data.get("fee_percent")),
    )


def parse_dashboard(data: dict[str, Any]) -> DashboardSettings:
    top_items = data.get("top_items", DEFAULT_TOP_ITEMS)
    if not isinstance(top_items, int) or isinstance(top_items, bool) or top_items < 1:
        raise InvalidConfigError("dashboard.top_items", top_items, "must be a positive integer")
    return DashboardSettings(
        daily_target=parse_decimal(
            "dashboard.daily_target", data.get("daily_target"), DEFAULT_DAILY_TARGET
        ),
        top_items=top_items,
    )


def parse_shop_config(data: dict[str, Any]) -> ShopConfig:
    """Parse the whole shop document into a ShopConfig (checksum included)."""
    channels = tuple(
        parse_delivery_channel(ch) for ch in data.get("delivery_channels") or ()
    )
    names = [ch.name.lower() for ch in channels]
    if len(names) != len(set(names)):
        raise InvalidConfigError("delivery_channels", names, "duplicate channel name")

    return ShopConfig(
        shop_name=str(data.get("shop_name") or "My Stall"),
        fixed_costs=parse_fixed_costs(data.get("fixed_costs") or {}),
        hidden_costs=parse_hidden_costs(data.get("hidden_costs") or {}),
        delivery_channels=channels,
        dashboard=parse_dashboard(data.get("dashboard") or {}),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization; deterministic."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
