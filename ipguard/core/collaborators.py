"""Interfaces of the collaborators consumed by the IPGUARD engines.

The account store, the session directory and the hostname resolver
belong to the host. The engines only depend on these protocols.
"""

from __future__ import annotations

import logging
import socket
from collections.abc import Iterable
from typing import Protocol

from ipguard.models.restriction import ConnectedSession

logger = logging.getLogger(__name__)


class AccountStore(Protocol):
    """Authoritative persistent account store."""

    def count_accounts_by_ip(self, ip: str) -> int:
        ...

    def list_account_names_by_ip(self, ip: str) -> list[str]:
        ...

    def is_authenticated(self, account_name: str) -> bool:
        ...


class SessionDirectory(Protocol):
    """Live directory of clients connected to the host."""

    def list_connected_sessions(self) -> Iterable[ConnectedSession]:
        ...


class HostnameResolver(Protocol):
    """Reverse-DNS lookup. May raise on timeout or resolver failure."""

    def resolve_hostname(self, ip: str) -> str | None:
        ...


class SocketHostnameResolver:
    """Reverse DNS through the system resolver.

    An address without a PTR record resolves to None; resolver failures
    (timeouts, unreachable servers) propagate as ``OSError``. The lookup
    timeout is the system resolver's own.
    """

    def resolve_hostname(self, ip: str) -> str | None:
        try:
            hostname, _aliases, _addresses = socket.gethostbyaddr(ip)
        except socket.herror:
            logger.debug(f"No PTR record (ip={ip})")
            return None

        # The resolver echoes the address back when it has no name for it
        if not hostname or hostname == ip:
            return None
        return hostname
