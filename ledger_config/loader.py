"""
Configuration Loader (``ledger_config.loader``).

Loads the ledger YAML file and parses it into the frozen dataclasses of
``ledger_config.schema``.  The single public entry point for runtime config
is ``ledger_config.get_active_config()``.

Failure modes
-------------
* Missing file -> ``ConfigurationError``.
* Malformed YAML -> ``ConfigurationError`` wrapping ``yaml.YAMLError``.
* Unknown role / account type, missing keys, unbound roles ->
  ``ConfigurationError``.
* Wrongly typed numbering / retry values (``width: abc``, a quoted
  ``"false"``) -> ``ConfigurationError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    ApiClient,
    LedgerConfig,
    NumberingConfig,
    RetryPolicy,
    RoleBinding,
)
from ledger_kernel.domain.values import AccountRole, AccountType
from ledger_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing or is not valid YAML.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        raise ConfigurationError("Configuration file not found", str(path)) from None
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML: {exc}", str(path)) from exc

    if not isinstance(data, dict):
        raise ConfigurationError("Top-level YAML value must be a mapping", str(path))
    return data


def parse_role_binding(data: dict[str, Any]) -> RoleBinding:
    """Parse a ``RoleBinding`` from a dict."""
    try:
        role = AccountRole(data["role"])
    except KeyError:
        raise ConfigurationError("Role binding is missing 'role'") from None
    except ValueError:
        raise ConfigurationError(f"Unknown account role: {data['role']}") from None

    account_type = None
    if data.get("account_type") is not None:
        try:
            account_type = AccountType(data["account_type"])
        except ValueError:
            raise ConfigurationError(
                f"Unknown account type for {role.value}: {data['account_type']}"
            ) from None

    binding = RoleBinding(
        role=role,
        account_type=account_type,
        category=data.get("category"),
        account_number=(
            str(data["account_number"]) if data.get("account_number") is not None else None
        ),
    )
    if binding.account_number is None and (binding.account_type is None or binding.category is None):
        raise ConfigurationError(
            f"Role {role.value} needs account_number or account_type + category"
        )
    return binding


def _as_int(data: dict[str, Any], key: str, default: int, section: str) -> int:
    value = data.get(key, default)
    if isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{section}.{key} must be an integer, got {value!r}") from None


def _as_float(data: dict[str, Any], key: str, default: float, section: str) -> float:
    value = data.get(key, default)
    if isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{section}.{key} must be a number, got {value!r}") from None


def _as_bool(data: dict[str, Any], key: str, default: bool, section: str) -> bool:
    # A quoted "false" is a non-empty string; only YAML booleans are accepted
    value = data.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(f"{section}.{key} must be true or false, got {value!r}")
    return value


def parse_numbering(data: dict[str, Any]) -> NumberingConfig:
    width = _as_int(data, "width", 3, "numbering")
    if width < 1:
        raise ConfigurationError(f"numbering.width must be >= 1, got {width}")
    return NumberingConfig(
        prefix=str(data.get("prefix", "TRX")),
        width=width,
        reset_yearly=_as_bool(data, "reset_yearly", False, "numbering"),
    )


def parse_retry(data: dict[str, Any]) -> RetryPolicy:
    max_attempts = _as_int(data, "max_attempts", 5, "retry")
    if max_attempts < 1:
        raise ConfigurationError(f"retry.max_attempts must be >= 1, got {max_attempts}")
    backoff_seconds = _as_float(data, "backoff_seconds", 0.05, "retry")
    if backoff_seconds < 0:
        raise ConfigurationError(f"retry.backoff_seconds must be >= 0, got {backoff_seconds}")
    return RetryPolicy(max_attempts=max_attempts, backoff_seconds=backoff_seconds)


def parse_api_client(data: dict[str, Any]) -> ApiClient:
    try:
        return ApiClient(
            name=str(data["name"]),
            token=str(data["token"]),
            actor_id=str(data["actor_id"]),
        )
    except KeyError as exc:
        raise ConfigurationError(f"API client is missing {exc.args[0]!r}") from None


def parse_config(data: dict[str, Any], source: str | None = None) -> LedgerConfig:
    """
    Build a ``LedgerConfig`` from a parsed YAML mapping.

    Every ``AccountRole`` must be bound exactly once.
    """
    roles = tuple(parse_role_binding(item) for item in data.get("roles") or ())

    seen: set[AccountRole] = set()
    for binding in roles:
        if binding.role in seen:
            raise ConfigurationError(f"Role bound twice: {binding.role.value}", source)
        seen.add(binding.role)
    missing = sorted(role.value for role in AccountRole if role not in seen)
    if missing:
        raise ConfigurationError(f"Unbound account roles: {', '.join(missing)}", source)

    api = data.get("api") or {}
    return LedgerConfig(
        currency=str(data.get("currency", "IDR")),
        numbering=parse_numbering(data.get("numbering") or {}),
        retry=parse_retry(data.get("retry") or {}),
        roles=roles,
        api_clients=tuple(parse_api_client(item) for item in api.get("clients") or ()),
    )


def load_config(path: Path) -> LedgerConfig:
    """Load and parse a ledger YAML file."""
    return parse_config(load_yaml_file(path), source=str(path))
