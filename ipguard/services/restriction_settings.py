"""Restriction settings loaded from the IPGUARD YAML configuration.

The engines never keep settings between calls: they read
``SettingsProvider.current`` on every decision, so a reload swaps the
whole ``RestrictionSettings`` object atomically.

YAML layout (section ``restrictions``)::

    restrictions:
      max_registrations_per_ip: 1
      vpn_detection_enabled: true
      vpn_detection_action: BLOCK_REGISTER
      custom_vpn_ranges:
        - 203.0.113.0/24
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

from ipguard.models.restriction import VpnAction

logger = logging.getLogger(__name__)

DEFAULT_VPN_ACTION = VpnAction.KICK


def parse_vpn_action(value: Any) -> VpnAction:
    """Parse a configured action name, falling back to KICK with a warning."""
    if isinstance(value, VpnAction):
        return value
    if isinstance(value, str):
        try:
            return VpnAction[value.strip().upper()]
        except KeyError:
            pass
    logger.warning(
        f"Invalid VPN detection action, using {DEFAULT_VPN_ACTION.value} as default "
        f"(value={value!r})"
    )
    return DEFAULT_VPN_ACTION


@dataclass(frozen=True)
class RestrictionSettings:
    """Current IP restriction and VPN detection configuration.

    Attributes:
        max_registrations_per_ip: Registered accounts allowed per IP (0 = unlimited)
        max_login_per_ip: Logged-in sessions allowed per IP (0 = unlimited)
        max_join_per_ip: Connected sessions allowed per IP (0 = unlimited)
        strict_ip_restriction: Re-check denials against the store in real time
        strict_recheck_attempts: Upper bound on real-time re-checks per denial
        fail_closed_on_store_error: Deny instead of allow when the store fails
        cache_cleanup_enabled: Run the periodic cache sweep
        cache_cleanup_interval_seconds: Delay between two sweeps
        ip_restriction_cache_minutes: TTL of the account count cache
        vpn_cache_minutes: TTL of the VPN verdict cache
        vpn_detection_enabled: Master switch for VPN/proxy detection
        vpn_action: Response to a positive VPN verdict
        dns_vpn_detection_enabled: Treat public DNS resolver ranges as VPN
        advanced_vpn_detection_enabled: Use reverse-DNS hostname heuristics
        custom_vpn_ranges: Extra CIDR ranges flagged as VPN
        custom_vpn_hostnames: Hostname substrings flagged as VPN
        vpn_whitelist: CIDR ranges/addresses never flagged as VPN
        reload_on_change: Watch the configuration file and reload it
    """

    max_registrations_per_ip: int = 1
    max_login_per_ip: int = 0
    max_join_per_ip: int = 0
    strict_ip_restriction: bool = False
    strict_recheck_attempts: int = 1
    fail_closed_on_store_error: bool = False
    cache_cleanup_enabled: bool = True
    cache_cleanup_interval_seconds: int = 300
    ip_restriction_cache_minutes: int = 5
    vpn_cache_minutes: int = 30
    vpn_detection_enabled: bool = False
    vpn_action: VpnAction = DEFAULT_VPN_ACTION
    dns_vpn_detection_enabled: bool = True
    advanced_vpn_detection_enabled: bool = False
    custom_vpn_ranges: frozenset[str] = field(default_factory=frozenset)
    custom_vpn_hostnames: frozenset[str] = field(default_factory=frozenset)
    vpn_whitelist: frozenset[str] = field(default_factory=frozenset)
    reload_on_change: bool = False

    @property
    def count_cache_ttl_seconds(self) -> float:
        return max(1, self.ip_restriction_cache_minutes) * 60.0

    @property
    def vpn_cache_ttl_seconds(self) -> float:
        return max(1, self.vpn_cache_minutes) * 60.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> RestrictionSettings:
        """Build settings from the ``restrictions`` YAML section.

        Unknown keys are ignored, invalid values fall back to defaults
        with a warning.
        """
        data = data or {}
        defaults = cls()

        settings = cls(
            max_registrations_per_ip=_as_int(data, "max_registrations_per_ip", defaults.max_registrations_per_ip),
            max_login_per_ip=_as_int(data, "max_login_per_ip", defaults.max_login_per_ip),
            max_join_per_ip=_as_int(data, "max_join_per_ip", defaults.max_join_per_ip),
            strict_ip_restriction=_as_bool(data, "strict_ip_restriction", defaults.strict_ip_restriction),
            strict_recheck_attempts=_as_int(data, "strict_recheck_attempts", defaults.strict_recheck_attempts, minimum=1),
            fail_closed_on_store_error=_as_bool(data, "fail_closed_on_store_error", defaults.fail_closed_on_store_error),
            cache_cleanup_enabled=_as_bool(data, "cache_cleanup_enabled", defaults.cache_cleanup_enabled),
            cache_cleanup_interval_seconds=_as_int(
                data, "cache_cleanup_interval_seconds", defaults.cache_cleanup_interval_seconds, minimum=1
            ),
            ip_restriction_cache_minutes=_as_int(
                data, "ip_restriction_cache_minutes", defaults.ip_restriction_cache_minutes, minimum=1
            ),
            vpn_cache_minutes=_as_int(data, "vpn_cache_minutes", defaults.vpn_cache_minutes, minimum=1),
            vpn_detection_enabled=_as_bool(data, "vpn_detection_enabled", defaults.vpn_detection_enabled),
            vpn_action=parse_vpn_action(data.get("vpn_detection_action", defaults.vpn_action.value)),
            dns_vpn_detection_enabled=_as_bool(data, "dns_vpn_detection_enabled", defaults.dns_vpn_detection_enabled),
            advanced_vpn_detection_enabled=_as_bool(
                data, "advanced_vpn_detection_enabled", defaults.advanced_vpn_detection_enabled
            ),
            custom_vpn_ranges=_as_lower_set(data, "custom_vpn_ranges"),
            custom_vpn_hostnames=_as_lower_set(data, "custom_vpn_hostnames"),
            vpn_whitelist=_as_lower_set(data, "vpn_whitelist"),
            reload_on_change=_as_bool(data, "reload_on_change", defaults.reload_on_change),
        )

        if settings.count_cache_ttl_seconds > settings.vpn_cache_ttl_seconds:
            logger.warning(
                f"Count cache outlives VPN cache "
                f"(ip_restriction_cache_minutes={settings.ip_restriction_cache_minutes}, "
                f"vpn_cache_minutes={settings.vpn_cache_minutes})"
            )

        return settings

    def with_overrides(self, **changes: Any) -> RestrictionSettings:
        """Copy with some fields replaced (action names are parsed)."""
        if "vpn_action" in changes:
            changes["vpn_action"] = parse_vpn_action(changes["vpn_action"])
        for key in ("custom_vpn_ranges", "custom_vpn_hostnames", "vpn_whitelist"):
            if key in changes:
                changes[key] = frozenset(str(v).strip().lower() for v in changes[key])
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Serialisation JSON snake_case."""
        return {
            "max_registrations_per_ip": self.max_registrations_per_ip,
            "max_login_per_ip": self.max_login_per_ip,
            "max_join_per_ip": self.max_join_per_ip,
            "strict_ip_restriction": self.strict_ip_restriction,
            "strict_recheck_attempts": self.strict_recheck_attempts,
            "fail_closed_on_store_error": self.fail_closed_on_store_error,
            "cache_cleanup_enabled": self.cache_cleanup_enabled,
            "cache_cleanup_interval_seconds": self.cache_cleanup_interval_seconds,
            "ip_restriction_cache_minutes": self.ip_restriction_cache_minutes,
            "vpn_cache_minutes": self.vpn_cache_minutes,
            "vpn_detection_enabled": self.vpn_detection_enabled,
            "vpn_detection_action": self.vpn_action.value,
            "dns_vpn_detection_enabled": self.dns_vpn_detection_enabled,
            "advanced_vpn_detection_enabled": self.advanced_vpn_detection_enabled,
            "custom_vpn_ranges": sorted(self.custom_vpn_ranges),
            "custom_vpn_hostnames": sorted(self.custom_vpn_hostnames),
            "vpn_whitelist": sorted(self.vpn_whitelist),
            "reload_on_change": self.reload_on_change,
        }


def _as_int(data: dict[str, Any], key: str, default: int, minimum: int | None = None) -> int:
    value = data.get(key, default)
    if isinstance(value, bool):
        value = None
    try:
        result = int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid integer setting, using default (key={key}, value={value!r}, default={default})")
        return default
    if minimum is not None and result < minimum:
        logger.warning(f"Setting below minimum, clamped (key={key}, value={result}, minimum={minimum})")
        return minimum
    return result


def _as_bool(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "on", "1"):
        return True
    if isinstance(value, str) and value.strip().lower() in ("false", "no", "off", "0"):
        return False
    logger.warning(f"Invalid boolean setting, using default (key={key}, value={value!r}, default={default})")
    return default


def _as_lower_set(data: dict[str, Any], key: str) -> frozenset[str]:
    value = data.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        logger.warning(f"Invalid list setting, ignored (key={key}, value={value!r})")
        return frozenset()
    return frozenset(str(v).strip().lower() for v in value if str(v).strip())


def load_settings_file(path: str | Path) -> RestrictionSettings:
    """Load settings from a YAML file.

    A missing file yields the defaults.

    Raises:
        yaml.YAMLError: If the file is not valid YAML
        OSError: If the file exists but cannot be read
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"Config file not found, using defaults (path={path})")
        return RestrictionSettings()

    with open(path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    if not isinstance(config_data, dict):
        logger.warning(f"Config file has no mapping at top level, using defaults (path={path})")
        return RestrictionSettings()

    return RestrictionSettings.from_dict(config_data.get("restrictions", {}))


class SettingsProvider:
    """Holds the current RestrictionSettings and swaps them on reload."""

    def __init__(
        self,
        settings: RestrictionSettings | None = None,
        path: str | Path | None = None,
    ) -> None:
        self._path = Path(path) if path is not None else None
        self._lock = threading.Lock()
        self._listeners: list[Callable[[RestrictionSettings], None]] = []
        if settings is None:
            settings = load_settings_file(self._path) if self._path else RestrictionSettings()
        self._settings = settings

    @property
    def current(self) -> RestrictionSettings:
        """Settings in effect right now."""
        return self._settings

    @property
    def path(self) -> Path | None:
        return self._path

    def add_listener(self, listener: Callable[[RestrictionSettings], None]) -> None:
        """Register a callback invoked with the new settings after each update."""
        with self._lock:
            self._listeners.append(listener)

    def update(self, settings: RestrictionSettings) -> None:
        """Replace the current settings and notify listeners."""
        with self._lock:
            self._settings = settings
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(settings)
            except Exception as e:
                logger.error(f"Settings listener failed (error={e})")

    def reload(self) -> bool:
        """Re-read the configuration file.

        Returns:
            True if new settings were applied, False if the previous ones were kept
        """
        if self._path is None:
            logger.debug("Settings reload skipped (no config path)")
            return False

        try:
            settings = load_settings_file(self._path)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Settings reload failed, keeping previous values (path={self._path}, error={e})")
            return False

        self.update(settings)
        logger.info(
            f"Restriction settings reloaded (max_reg={settings.max_registrations_per_ip}, "
            f"max_login={settings.max_login_per_ip}, max_join={settings.max_join_per_ip}, "
            f"vpn_detection={settings.vpn_detection_enabled})"
        )
        return True
