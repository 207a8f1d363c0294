"""Restriction and VPN detection data models for IPGUARD.

Defines the cached snapshots, the session record seen by the session
directory and the configured response to a positive VPN verdict.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class VpnAction(Enum):
    """Policy response to a positive VPN/proxy verdict."""

    KICK = "KICK"
    BLOCK_REGISTER = "BLOCK_REGISTER"
    BLOCK_LOGIN = "BLOCK_LOGIN"
    LOG_ONLY = "LOG_ONLY"

    @property
    def blocks_register(self) -> bool:
        return self in (VpnAction.KICK, VpnAction.BLOCK_REGISTER)

    @property
    def blocks_login(self) -> bool:
        return self in (VpnAction.KICK, VpnAction.BLOCK_LOGIN)

    @property
    def blocks_join(self) -> bool:
        return self is VpnAction.KICK


@dataclass(frozen=True)
class CachedCount:
    """Snapshot of account counts for one IP.

    Attributes:
        registered_count: Accounts registered from the IP in the store
        online_count: Sessions connected from the IP when the snapshot was taken
    """

    registered_count: int
    online_count: int

    def to_dict(self) -> dict[str, int]:
        """Serialisation JSON snake_case."""
        return {
            "registered_count": self.registered_count,
            "online_count": self.online_count,
        }


@dataclass(frozen=True)
class CachedVpnResult:
    """Snapshot VPN/proxy verdict for one IP."""

    is_vpn: bool
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"is_vpn": self.is_vpn, "reason": self.reason}


@dataclass(frozen=True)
class VpnVerdict:
    """Outcome of one evaluation of the detection rule table."""

    is_vpn: bool
    reason: str


@dataclass(frozen=True)
class ConnectedSession:
    """A client currently connected to the host.

    Attributes:
        account_name: Name the client connected with
        ip: Resolved client address, None when unknown
    """

    account_name: str
    ip: str | None

    def has_ip(self, ip: str) -> bool:
        """Case-insensitive address comparison."""
        return self.ip is not None and self.ip.strip().lower() == ip.strip().lower()
