"""VPN/proxy detection engine for IPGUARD.

Classifies an address with the ordered rule tables of
``ipguard.core.detection.rules`` and caches the verdict per IP with its
own TTL. Detection fails open: any internal error yields "not VPN" and
leaves nothing in the cache.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ipguard.core.cache.ttl_cache import TtlCache
from ipguard.core.collaborators import HostnameResolver, SocketHostnameResolver
from ipguard.core.detection.rules import (
    DETECTION_RULES,
    EXEMPTION_RULES,
    REASON_DISABLED,
    REASON_INVALID_IP,
    REASON_LOCAL,
    REASON_NO_IP,
    REASON_NOT_DETECTED,
    DetectionContext,
    evaluate,
)
from ipguard.core.network.cidr import is_local_address, is_valid_ip, normalize_ip
from ipguard.models.restriction import CachedVpnResult, VpnAction, VpnVerdict
from ipguard.services.restriction_settings import SettingsProvider

logger = logging.getLogger(__name__)


class VpnDetectionEngine:
    """Layered VPN/proxy classifier with a verdict cache.

    Usage:
        engine = VpnDetectionEngine(provider)
        if engine.is_vpn_or_proxy("185.220.101.4"):
            ...
    """

    def __init__(
        self,
        settings: SettingsProvider,
        resolver: HostnameResolver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._resolver = resolver or SocketHostnameResolver()
        self._cache: TtlCache[str, CachedVpnResult] = TtlCache(
            lambda: self._settings.current.vpn_cache_ttl_seconds,
            clock=clock,
            name="vpn",
        )
        logger.debug("VpnDetectionEngine initialized")

    @property
    def cache(self) -> TtlCache[str, CachedVpnResult]:
        return self._cache

    def is_detection_enabled(self) -> bool:
        return self._settings.current.vpn_detection_enabled

    def get_vpn_action(self) -> VpnAction:
        """Configured response to a positive verdict."""
        return self._settings.current.vpn_action

    def is_vpn_or_proxy(self, ip: str | None) -> bool:
        """Check whether ``ip`` is a known VPN, proxy or hosting address.

        Args:
            ip: Client address

        Returns:
            True if a detection rule matched, False otherwise or on any error
        """
        settings = self._settings.current
        key = normalize_ip(ip)
        if not settings.vpn_detection_enabled or key is None:
            return False
        if is_local_address(key) or not is_valid_ip(key):
            return False

        ctx = DetectionContext(key, settings, self._resolver)
        try:
            if evaluate(EXEMPTION_RULES, ctx) is not None:
                return False
            result = self._cache.get_or_compute(key, lambda: self._classify(ctx))
        except Exception as e:
            logger.debug(f"VPN check failed, treating as clean (ip={key}, error={e})")
            return False

        return result.is_vpn

    def _classify(self, ctx: DetectionContext) -> CachedVpnResult:
        verdict = evaluate(DETECTION_RULES, ctx)
        if verdict is None:
            return CachedVpnResult(is_vpn=False, reason=REASON_NOT_DETECTED)

        logger.info(f"VPN/Proxy detected (ip={ctx.ip}, reason={verdict.reason})")
        return CachedVpnResult(is_vpn=verdict.is_vpn, reason=verdict.reason)

    def evaluate(self, ip: str | None) -> VpnVerdict:
        """Run the full rule order without touching the cache.

        Raises:
            Exception: Whatever the hostname resolver raises
        """
        settings = self._settings.current
        key = normalize_ip(ip)
        if not settings.vpn_detection_enabled:
            return VpnVerdict(False, REASON_DISABLED)
        if key is None:
            return VpnVerdict(False, REASON_NO_IP)
        if is_local_address(key):
            return VpnVerdict(False, REASON_LOCAL)
        if not is_valid_ip(key):
            return VpnVerdict(False, REASON_INVALID_IP)

        ctx = DetectionContext(key, settings, self._resolver)
        return (
            evaluate(EXEMPTION_RULES, ctx)
            or evaluate(DETECTION_RULES, ctx)
            or VpnVerdict(False, REASON_NOT_DETECTED)
        )

    def get_vpn_detection_info(self, ip: str | None) -> str:
        """Human-readable reason for the verdict on ``ip`` (diagnostics only)."""
        try:
            return self.evaluate(ip).reason
        except Exception as e:
            return f"Error during detection: {e}"

    def clear_cache(self) -> int:
        """Drop every cached verdict."""
        count = self._cache.clear()
        logger.info(f"VPN detection cache cleared (entries={count})")
        return count

    def clear_cache_for_ip(self, ip: str | None) -> bool:
        key = normalize_ip(ip)
        if key is None:
            return False
        removed = self._cache.invalidate(key)
        logger.debug(f"VPN cache cleared for IP (ip={key}, removed={removed})")
        return removed
