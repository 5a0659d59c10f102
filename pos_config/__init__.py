"""
pos_config -- single public entrypoint for shop configuration.

Responsibility:
    ``get_active_config()`` is the only way to obtain configuration at
    runtime.  Services receive the returned ``ShopConfig``; they never read
    YAML files or environment variables themselves.

Architecture position:
    Configuration -- sits above ``pos_kernel`` and below ``pos_modules``.
    The kernel and engines MUST NOT import from ``pos_config``.

Failure modes:
    - ``FileNotFoundError`` -- the requested file does not exist.
    - ``InvalidConfigError`` -- a value is out of range.

Audit relevance:
    Every successful call emits a ``POS_CONFIG_TRACE`` log record with the
    source path and a SHA-256 checksum of the parsed document.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pos_config.loader import load_yaml_file, parse_shop_config
from pos_config.schema import DashboardSettings, DeliveryChannel, ShopConfig

_logger = logging.getLogger("pos_kernel.config")

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults" / "shop.yaml"


def get_active_config(config_path: Path | str | None = None) -> ShopConfig:
    """
    Load and validate the shop configuration.

    Args:
        config_path: YAML file to load.  Defaults to the packaged
            ``pos_config/defaults/shop.yaml``.

    Returns:
        Frozen ShopConfig.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_FILE
    config = parse_shop_config(load_yaml_file(path))

    _logger.info(
        "POS_CONFIG_TRACE",
        extra={
            "trace_type": "POS_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "shop_name": config.shop_name,
            "delivery_channel_count": len(config.delivery_channels),
        },
    )
    return config


__all__ = [
    "DashboardSettings",
    "DeliveryChannel",
    "ShopConfig",
    "get_active_config",
]
