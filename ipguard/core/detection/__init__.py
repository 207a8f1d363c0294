"""VPN/proxy detection module for IPGUARD."""

from ipguard.core.detection.rules import (
    DETECTION_RULES,
    DNS_VPN_RANGES,
    EXEMPTION_RULES,
    HOSTING_PROVIDERS,
    KNOWN_VPN_RANGES,
    DetectionContext,
    DetectionRule,
)
from ipguard.core.detection.vpn_detection import VpnDetectionEngine

__all__ = [
    "DETECTION_RULES",
    "DNS_VPN_RANGES",
    "EXEMPTION_RULES",
    "HOSTING_PROVIDERS",
    "KNOWN_VPN_RANGES",
    "DetectionContext",
    "DetectionRule",
    "VpnDetectionEngine",
]
