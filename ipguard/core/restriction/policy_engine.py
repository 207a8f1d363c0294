"""IP restriction policy engine for IPGUARD.

Answers the three admission questions asked by the host when a client
joins, logs in or registers:

- may this IP register another account? (``registered < limit``)
- has this IP reached its logged-in session limit? (``logged_in >= limit``)
- has this IP exceeded its joined session limit? (``online > limit``)

The join check uses a strict ``>``: the joining client is
already part of the online count, so an IP exactly at the limit is
tolerated, whereas registration and login deny at the limit.

Registered account counts come from the account store through a TTL
cache. Store failures never raise to the caller: depending on
``fail_closed_on_store_error`` the check fails open (default) or denies.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from operator import attrgetter
from typing import Any

from ipguard.core.cache.ttl_cache import TtlCache
from ipguard.core.collaborators import AccountStore, SessionDirectory
from ipguard.core.detection.vpn_detection import VpnDetectionEngine
from ipguard.core.network.cidr import is_loopback_address, normalize_ip
from ipguard.models.restriction import CachedCount, VpnAction
from ipguard.services.restriction_settings import RestrictionSettings, SettingsProvider

logger = logging.getLogger(__name__)


class RestrictionPolicyEngine:
    """Registration, login and join limits per IP address.

    Usage:
        engine = RestrictionPolicyEngine(provider, store, sessions, vpn_engine)
        if not engine.is_ip_allowed_to_register(ip, "alice"):
            ...
    """

    def __init__(
        self,
        settings: SettingsProvider,
        store: AccountStore,
        sessions: SessionDirectory,
        vpn_detection: VpnDetectionEngine,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._store = store
        self._sessions = sessions
        self._vpn = vpn_detection
        self._count_cache: TtlCache[str, CachedCount] = TtlCache(
            lambda: self._settings.current.count_cache_ttl_seconds,
            clock=clock,
            name="ip_restriction",
        )
        logger.debug("RestrictionPolicyEngine initialized")

    @property
    def count_cache(self) -> TtlCache[str, CachedCount]:
        return self._count_cache

    @property
    def vpn_detection(self) -> VpnDetectionEngine:
        return self._vpn

    # ------------------------------------------------------------------
    # Admission checks
    # ------------------------------------------------------------------

    def is_ip_allowed_to_register(
        self,
        ip: str | None,
        account_name: str | None = None,
        has_bypass_permission: bool = False,
    ) -> bool:
        """Check whether another account may be registered from ``ip``.

        Args:
            ip: Resolved client address
            account_name: Name being registered (for logging)
            has_bypass_permission: Caller may hold multiple accounts

        Returns:
            True if registration is allowed
        """
        settings = self._settings.current
        limit = settings.max_registrations_per_ip
        if limit <= 0:
            return True

        key = normalize_ip(ip)
        if key is None or is_loopback_address(key):
            return True

        if has_bypass_permission:
            return True

        if self._vpn_blocks(key, settings, attrgetter("blocks_register")):
            logger.info(f"Registration denied, VPN/proxy detected (ip={key}, account={account_name})")
            return False

        count = self._registered_count_or_none(key)
        if count is None:
            return not settings.fail_closed_on_store_error
        allowed = count < limit

        attempts = 0
        while not allowed and settings.strict_ip_restriction and attempts < settings.strict_recheck_attempts:
            attempts += 1
            self._count_cache.invalidate(key)
            count = self._registered_count_or_none(key)
            if count is None:
                return not settings.fail_closed_on_store_error
            allowed = count < limit
            logger.debug(f"Strict re-check (ip={key}, attempt={attempts}, registered={count})")

        if not allowed:
            logger.info(
                f"Registration denied, IP limit reached "
                f"(ip={key}, account={account_name}, registered={count}, limit={limit})"
            )
        return allowed

    def has_reached_max_logged_in_players_for_ip(
        self,
        ip: str | None,
        account_name: str | None = None,
        has_bypass_permission: bool = False,
    ) -> bool:
        """Check whether ``ip`` already has too many authenticated sessions.

        The account logging in is excluded from the count.

        Returns:
            True if the login must be refused
        """
        settings = self._settings.current
        limit = settings.max_login_per_ip
        if limit <= 0:
            return False

        key = normalize_ip(ip)
        if key is None or is_loopback_address(key):
            return False

        if has_bypass_permission:
            return False

        if self._vpn_blocks(key, settings, attrgetter("blocks_login")):
            logger.info(f"Login denied, VPN/proxy detected (ip={key}, account={account_name})")
            return True

        count = self._logged_in_count_or_none(key, account_name)
        if count is None:
            return settings.fail_closed_on_store_error
        reached = count >= limit

        attempts = 0
        while reached and settings.strict_ip_restriction and attempts < settings.strict_recheck_attempts:
            attempts += 1
            count = self._logged_in_count_or_none(key, account_name)
            if count is None:
                return settings.fail_closed_on_store_error
            reached = count >= limit

        if reached:
            logger.info(
                f"Login limit reached (ip={key}, account={account_name}, "
                f"logged_in={count}, limit={limit})"
            )
        return reached

    def has_reached_max_joined_players_for_ip(
        self,
        ip: str | None,
        has_bypass_permission: bool = False,
    ) -> bool:
        """Check whether ``ip`` has more connected sessions than allowed.

        Returns:
            True if the joining client must be disconnected
        """
        settings = self._settings.current
        limit = settings.max_join_per_ip
        if limit <= 0:
            return False

        key = normalize_ip(ip)
        if key is None or is_loopback_address(key):
            return False

        if has_bypass_permission:
            return False

        if self._vpn_blocks(key, settings, attrgetter("blocks_join")):
            logger.info(f"Join denied, VPN/proxy detected (ip={key})")
            return True

        online = self.get_online_players_count(key)
        reached = online > limit
        if reached:
            logger.info(f"Join limit exceeded (ip={key}, online={online}, limit={limit})")
        return reached

    def _vpn_blocks(
        self,
        ip: str,
        settings: RestrictionSettings,
        blocks: Callable[[VpnAction], bool],
    ) -> bool:
        if not settings.vpn_detection_enabled or not self._vpn.is_vpn_or_proxy(ip):
            return False
        if blocks(settings.vpn_action):
            return True
        logger.info(f"VPN/proxy allowed by action (ip={ip}, action={settings.vpn_action.value})")
        return False

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    def get_registered_accounts_count(self, ip: str) -> int:
        """Registered accounts for ``ip``, served from the cache when fresh.

        Raises:
            Exception: Whatever the account store raises on a cache miss
        """
        key = normalize_ip(ip) or ""
        return self._count_cache.get_or_compute(key, lambda: self._load_counts(key)).registered_count

    def _load_counts(self, ip: str) -> CachedCount:
        registered = int(self._store.count_accounts_by_ip(ip))
        online = self.get_online_players_count(ip)
        logger.debug(f"IP counts loaded from store (ip={ip}, registered={registered}, online={online})")
        return CachedCount(registered_count=registered, online_count=online)

    def _registered_count_or_none(self, ip: str) -> int | None:
        try:
            return self.get_registered_accounts_count(ip)
        except Exception as e:
            logger.warning(f"Account store query failed (ip={ip}, error={e})")
            return None

    def get_logged_in_players_count(self, ip: str, exclude_account: str | None = None) -> int:
        """Authenticated sessions from ``ip``, not counting ``exclude_account``.

        Raises:
            Exception: Whatever the account store raises
        """
        count = 0
        for session in self._sessions.list_connected_sessions():
            if (
                session.has_ip(ip)
                and session.account_name != exclude_account
                and self._store.is_authenticated(session.account_name.lower())
            ):
                count += 1
        return count

    def _logged_in_count_or_none(self, ip: str, exclude_account: str | None) -> int | None:
        try:
            return self.get_logged_in_players_count(ip, exclude_account)
        except Exception as e:
            logger.warning(f"Authentication state query failed (ip={ip}, error={e})")
            return None

    def get_online_players_count(self, ip: str) -> int:
        """Connected sessions from ``ip``, authenticated or not."""
        return sum(1 for s in self._sessions.list_connected_sessions() if s.has_ip(ip))

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def list_accounts_by_ip(self, ip: str) -> list[str]:
        """Account names registered from ``ip`` (store pass-through)."""
        key = normalize_ip(ip) or ""
        return list(self._store.list_account_names_by_ip(key))

    def invalidate_ip(self, ip: str) -> None:
        """Force the next query for ``ip`` to re-read the store."""
        key = normalize_ip(ip)
        if key is None:
            return
        self._count_cache.invalidate(key)
        self._vpn.clear_cache_for_ip(key)
        logger.info(f"IP cache invalidated (ip={key})")

    def clear_all_caches(self) -> None:
        """Drop every cached count and VPN verdict."""
        counts = self._count_cache.clear()
        verdicts = self._vpn.clear_cache()
        logger.info(f"All IP caches cleared (counts={counts}, verdicts={verdicts})")

    def get_ip_report(self, ip: str) -> dict[str, Any]:
        """Cached and live state of ``ip`` for administrative reporting."""
        key = normalize_ip(ip) or ""
        entry = self._count_cache.get_entry(key)
        vpn_entry = self._vpn.cache.get_entry(key)
        now = self._count_cache.now()

        return {
            "ip": key,
            "cached_counts": entry.value.to_dict() if entry else None,
            "cached_age_seconds": round(entry.age(now), 3) if entry else None,
            "online_count": self.get_online_players_count(key),
            "cached_vpn": vpn_entry.value.to_dict() if vpn_entry else None,
            "vpn_info": self._vpn.get_vpn_detection_info(key),
        }
