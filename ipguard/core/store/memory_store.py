"""In-memory account store and session directory.

Used by the development application and the test suite in place of the
host's persistent store and live player list. Both are thread-safe.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from ipguard.models.restriction import ConnectedSession

logger = logging.getLogger(__name__)


class InMemoryAccountStore:
    """Accounts keyed by lower-cased name, each with its last known IP."""

    def __init__(self) -> None:
        self._accounts: dict[str, str | None] = {}
        self._authenticated: set[str] = set()
        self._lock = threading.Lock()

    def register(self, account_name: str, ip: str | None) -> None:
        """Record an account registered from ``ip``."""
        name = account_name.lower()
        with self._lock:
            self._accounts[name] = ip.strip().lower() if ip else None
        logger.debug(f"Account registered (name={name}, ip={ip})")

    def unregister(self, account_name: str) -> bool:
        name = account_name.lower()
        with self._lock:
            self._authenticated.discard(name)
            return self._accounts.pop(name, None) is not None

    def set_authenticated(self, account_name: str, authenticated: bool = True) -> None:
        name = account_name.lower()
        with self._lock:
            if authenticated:
                self._authenticated.add(name)
            else:
                self._authenticated.discard(name)

    def count_accounts_by_ip(self, ip: str) -> int:
        return len(self.list_account_names_by_ip(ip))

    def list_account_names_by_ip(self, ip: str) -> list[str]:
        key = ip.strip().lower()
        with self._lock:
            return sorted(name for name, last_ip in self._accounts.items() if last_ip == key)

    def is_authenticated(self, account_name: str) -> bool:
        with self._lock:
            return account_name.lower() in self._authenticated


class InMemorySessionDirectory:
    """Connected sessions keyed by account name."""

    def __init__(self, sessions: Iterable[ConnectedSession] = ()) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, ConnectedSession] = {
            s.account_name: s for s in sessions
        }

    def connect(self, account_name: str, ip: str | None) -> ConnectedSession:
        session = ConnectedSession(account_name=account_name, ip=ip)
        with self._lock:
            self._sessions[account_name] = session
        return session

    def disconnect(self, account_name: str) -> bool:
        with self._lock:
            return self._sessions.pop(account_name, None) is not None

    def list_connected_sessions(self) -> list[ConnectedSession]:
        with self._lock:
            return list(self._sessions.values())
