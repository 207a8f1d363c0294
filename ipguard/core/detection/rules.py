"""Ordered VPN/proxy detection rules.

Each rule pairs a predicate with the verdict it yields. The rules are
evaluated in order and the first one that matches decides. Both the
boolean check and the diagnostic explanation walk these same tables,
so they cannot drift apart.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import cached_property

from ipguard.core.collaborators import HostnameResolver
from ipguard.core.network.cidr import find_match
from ipguard.models.restriction import VpnVerdict
from ipguard.services.restriction_settings import RestrictionSettings

logger = logging.getLogger(__name__)

KNOWN_VPN_RANGES: tuple[str, ...] = (
    "103.28.54.0/24",
    "103.28.55.0/24",
    "104.16.0.0/12",
    "104.17.0.0/16",
    "104.18.0.0/16",
    "104.19.0.0/16",
    "104.20.0.0/16",
    "104.21.0.0/16",
    "185.220.100.0/22",
    "185.220.101.0/24",
    "185.220.102.0/24",
    "192.42.116.0/22",
    "199.87.154.0/24",
    "209.141.32.0/19",
)

# Public DNS resolvers (Cloudflare, Google, Quad9, OpenDNS, Control D, AdGuard)
DNS_VPN_RANGES: tuple[str, ...] = (
    "1.1.1.0/24",
    "1.0.0.0/24",
    "8.8.8.0/24",
    "8.8.4.0/24",
    "9.9.9.0/24",
    "149.112.112.0/24",
    "208.67.222.0/24",
    "208.67.220.0/24",
    "76.76.19.0/24",
    "76.76.76.0/24",
    "94.140.14.0/24",
    "94.140.15.0/24",
)

HOSTING_PROVIDERS: tuple[str, ...] = (
    "amazonaws.com",
    "googleusercontent.com",
    "digitalocean.com",
    "vultr.com",
    "linode.com",
    "ovh.net",
    "hetzner.de",
    "cloudflare.com",
)

REASON_DISABLED = "VPN detection is disabled"
REASON_NO_IP = "No IP address"
REASON_INVALID_IP = "Invalid IP address"
REASON_LOCAL = "Local address, not checked"
REASON_NOT_DETECTED = "Not detected as VPN/Proxy"


class DetectionContext:
    """Everything one evaluation needs, with the hostname resolved lazily.

    The reverse lookup runs at most once per context and only when a
    hostname rule is reached. Resolver exceptions propagate.
    """

    def __init__(
        self,
        ip: str,
        settings: RestrictionSettings,
        resolver: HostnameResolver,
    ) -> None:
        self.ip = ip
        self.settings = settings
        self._resolver = resolver

    @cached_property
    def hostname(self) -> str | None:
        hostname = self._resolver.resolve_hostname(self.ip)
        return hostname.lower() if hostname else None


@dataclass(frozen=True)
class DetectionRule:
    """A predicate returning a reason when it matches, None otherwise."""

    name: str
    is_vpn: bool
    match: Callable[[DetectionContext], str | None]

    def apply(self, ctx: DetectionContext) -> VpnVerdict | None:
        reason = self.match(ctx)
        if reason is None:
            return None
        return VpnVerdict(is_vpn=self.is_vpn, reason=reason)


def _whitelisted(ctx: DetectionContext) -> str | None:
    if find_match(ctx.ip, ctx.settings.vpn_whitelist):
        return "IP is whitelisted"
    return None


def _known_range(ctx: DetectionContext) -> str | None:
    if find_match(ctx.ip, KNOWN_VPN_RANGES):
        return "Detected in known VPN ranges"
    return None


def _dns_range(ctx: DetectionContext) -> str | None:
    if ctx.settings.dns_vpn_detection_enabled and find_match(ctx.ip, DNS_VPN_RANGES):
        return "Detected as DNS VPN service"
    return None


def _custom_range(ctx: DetectionContext) -> str | None:
    if find_match(ctx.ip, ctx.settings.custom_vpn_ranges):
        return "Detected in custom VPN ranges"
    return None


def _hosting_provider(ctx: DetectionContext) -> str | None:
    if not ctx.settings.advanced_vpn_detection_enabled:
        return None
    hostname = ctx.hostname
    if hostname and any(provider in hostname for provider in HOSTING_PROVIDERS):
        return f"Detected as hosting provider: {hostname}"
    return None


def _custom_hostname(ctx: DetectionContext) -> str | None:
    if not ctx.settings.advanced_vpn_detection_enabled:
        return None
    hostname = ctx.hostname
    if hostname and any(part in hostname for part in ctx.settings.custom_vpn_hostnames):
        return f"Detected as custom VPN hostname: {hostname}"
    return None


# Checked live on every call, ahead of the verdict cache
EXEMPTION_RULES: tuple[DetectionRule, ...] = (
    DetectionRule("whitelist", False, _whitelisted),
)

# Outcome of these is cached per IP
DETECTION_RULES: tuple[DetectionRule, ...] = (
    DetectionRule("known_ranges", True, _known_range),
    DetectionRule("dns_ranges", True, _dns_range),
    DetectionRule("custom_ranges", True, _custom_range),
    DetectionRule("hosting_provider", True, _hosting_provider),
    DetectionRule("custom_hostname", True, _custom_hostname),
)


def evaluate(
    rules: tuple[DetectionRule, ...],
    ctx: DetectionContext,
) -> VpnVerdict | None:
    """Return the verdict of the first matching rule, None if none match."""
    for rule in rules:
        verdict = rule.apply(ctx)
        if verdict is not None:
            logger.debug(f"Detection rule matched (ip={ctx.ip}, rule={rule.name})")
            return verdict
    return None
