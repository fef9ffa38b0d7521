"""
ledger_config -- single public entrypoint for ledger configuration.

``get_active_config()`` is the only way runtime code obtains configuration:
account role bindings, transaction numbering, retry policy and API clients.
The kernel never imports this package; callers translate the returned
``LedgerConfig`` into constructor arguments.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ledger_config.loader import load_config
from ledger_config.schema import (
    ApiClient,
    LedgerConfig,
    NumberingConfig,
    RetryPolicy,
    RoleBinding,
)

_logger = logging.getLogger("ledger_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def get_active_config(path: Path | str | None = None) -> LedgerConfig:
    """Load the ledger configuration.

    Args:
        path: YAML file to load.  Defaults to the packaged
            ``defaults/ledger.yaml``.

    Raises:
        ConfigurationError: if the file is missing or invalid.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = load_config(config_path)
    _logger.info(
        "ledger_config_loaded",
        extra={
            "path": str(config_path),
            "currency": config.currency,
            "reset_yearly": config.numbering.reset_yearly,
            "role_count": len(config.roles),
            "api_client_count": len(config.api_clients),
        },
    )
    return config


__all__ = [
    "ApiClient",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "NumberingConfig",
    "RetryPolicy",
    "RoleBinding",
    "get_active_config",
]
