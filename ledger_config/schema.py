"""
Configuration schema (``ledger_config.schema``).

Frozen dataclasses produced by the loader.  Nothing here reads files; see
``ledger_config.loader``.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass, field

from ledger_kernel.domain.dtos import AccountCriteria
from ledger_kernel.domain.values import AccountRole, AccountType


@dataclass(frozen=True)
class RoleBinding:
    """Maps an account role to concrete selection criteria.

    Either ``account_number`` (a fixed account) or ``account_type`` plus
    ``category`` must be given.
    """

    role: AccountRole
    account_type: AccountType | None = None
    category: str | None = None
    account_number: str | None = None

    def to_criteria(self) -> AccountCriteria:
        return AccountCriteria(
            account_type=self.account_type,
            category=self.category,
            account_number=self.account_number,
        )


@dataclass(frozen=True)
class NumberingConfig:
    """Transaction number format: ``<prefix>-<year>-<seq padded to width>``.

    ``reset_yearly`` is False by default: the sequence keeps counting across
    year boundaries, as the ledger always has.
    """

    prefix: str = "TRX"
    width: int = 3
    reset_yearly: bool = False


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry for consistency conflicts inside one atomic unit."""

    max_attempts: int = 5
    backoff_seconds: float = 0.05


@dataclass(frozen=True)
class ApiClient:
    """A bearer token accepted by the HTTP integration endpoints."""

    name: str
    token: str
    actor_id: str


@dataclass(frozen=True)
class LedgerConfig:
    """The compiled ledger configuration."""

    currency: str = "IDR"
    numbering: NumberingConfig = field(default_factory=NumberingConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    roles: tuple[RoleBinding, ...] = ()
    api_clients: tuple[ApiClient, ...] = ()

    def role_criteria(self) -> dict[AccountRole, AccountCriteria]:
        return {binding.role: binding.to_criteria() for binding in self.roles}

    def client_for_token(self, token: str) -> ApiClient | None:
        for client in self.api_clients:
            if hmac.compare_digest(client.token.encode(), token.encode()):
                return client
        return None
