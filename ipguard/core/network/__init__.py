"""Network address helpers for IPGUARD."""

from ipguard.core.network.cidr import (
    CidrRange,
    contains,
    find_match,
    is_local_address,
    is_loopback_address,
    is_valid_ip,
    matches_any,
    normalize_ip,
    parse_address,
    parse_cidr,
)

__all__ = [
    "CidrRange",
    "contains",
    "find_match",
    "is_local_address",
    "is_loopback_address",
    "is_valid_ip",
    "matches_any",
    "normalize_ip",
    "parse_address",
    "parse_cidr",
]
