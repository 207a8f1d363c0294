"""Reference account store and session directory for IPGUARD."""

from ipguard.core.store.memory_store import (
    InMemoryAccountStore,
    InMemorySessionDirectory,
)

__all__ = [
    "InMemoryAccountStore",
    "InMemorySessionDirectory",
]
