# Data models package

from ipguard.models.restriction import (
    CachedCount,
    CachedVpnResult,
    ConnectedSession,
    VpnAction,
    VpnVerdict,
)

__all__ = [
    "CachedCount",
    "CachedVpnResult",
    "ConnectedSession",
    "VpnAction",
    "VpnVerdict",
]
