"""
sourcing_config -- single public entrypoint for marketplace configuration.

Responsibility:
    ``get_active_config()`` is the only way services obtain configuration
    at runtime.  No other component reads configuration files directly.

Architecture position:
    Configuration -- sits above ``sourcing_kernel`` and below
    ``sourcing_modules``.  The kernel MUST NEVER import from this package.

Failure modes:
    - ``FileNotFoundError`` -- the requested YAML file does not exist.
    - ``ValueError`` -- unknown keys or out-of-range values.

Audit relevance:
    Every successful call emits a ``SOURCING_CONFIG_TRACE`` log entry
    carrying the source path and checksum.
"""

from __future__ import annotations

import logging
from pathlib import Path

from sourcing_config.loader import load_yaml_file, parse_marketplace_config
from sourcing_config.schema import AutoQuoteConfig, MarketplaceConfig

_logger = logging.getLogger("sourcing_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> MarketplaceConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a YAML document.  Defaults to the
            packaged ``defaults.yaml``.

    Raises:
        FileNotFoundError: If the document does not exist.
        ValueError: If validation fails.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config = parse_marketplace_config(load_yaml_file(path))

    _logger.info(
        "SOURCING_CONFIG_TRACE",
        extra={
            "trace_type": "SOURCING_CONFIG_TRACE",
            "config_path": str(path),
            "checksum": config.checksum,
            "default_margin_percent": str(config.default_margin_percent),
            "auto_quote_enabled": config.auto_quote.enabled,
        },
    )
    return config


__all__ = [
    "AutoQuoteConfig",
    "DEFAULT_CONFIG_PATH",
    "MarketplaceConfig",
    "get_active_config",
]
