"""Pytest fixtures for IPGUARD tests."""

import pytest

from ipguard import create_app
from ipguard.core.store import InMemoryAccountStore, InMemorySessionDirectory
from ipguard.services import RestrictionSettings, SettingsProvider


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeResolver:
    """Reverse-DNS stub returning canned hostnames or raising."""

    def __init__(self, hostnames=None, error=None):
        self.hostnames = dict(hostnames or {})
        self.error = error
        self.calls = []

    def resolve_hostname(self, ip):
        self.calls.append(ip)
        if self.error is not None:
            raise self.error
        return self.hostnames.get(ip)


@pytest.fixture
def clock():
    """Fake clock shared by the caches under test."""
    return FakeClock()


@pytest.fixture
def resolver():
    """Resolver with no PTR records."""
    return FakeResolver()


@pytest.fixture
def store():
    """Empty in-memory account store."""
    return InMemoryAccountStore()


@pytest.fixture
def sessions():
    """Empty in-memory session directory."""
    return InMemorySessionDirectory()


@pytest.fixture
def make_provider():
    """Factory building a SettingsProvider from keyword overrides.

    Returns:
        Callable[..., SettingsProvider]
    """
    def _make(**overrides):
        return SettingsProvider(RestrictionSettings().with_overrides(**overrides))
    return _make


@pytest.fixture
def app(store, sessions, resolver):
    """Create application for testing.

    Returns:
        Flask: Application configured for testing
    """
    settings = RestrictionSettings().with_overrides(
        max_registrations_per_ip=2,
        max_login_per_ip=1,
        max_join_per_ip=2,
        vpn_detection_enabled=True,
        vpn_action="BLOCK_REGISTER",
    )
    app = create_app(
        'testing',
        store=store,
        sessions=sessions,
        resolver=resolver,
        settings=settings,
    )
    yield app


@pytest.fixture
def client(app):
    """Create test client.

    Args:
        app: Flask application fixture

    Returns:
        FlaskClient: Test client for making requests
    """
    return app.test_client()
