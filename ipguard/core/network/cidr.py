"""CIDR containment helpers shared by restriction and VPN detection.

Addresses are compared byte by byte on their packed form, so a range
only ever matches addresses of the same family (4 bytes for IPv4,
16 bytes for IPv6). A bare address without ``/prefix`` is treated as a
single-host range.

Examples:
    contains("10.0.0.255", "10.0.0.0/24") -> True
    contains("10.0.1.0", "10.0.0.0/24") -> False
    contains("::1", "0.0.0.0/0") -> False
"""

from __future__ import annotations

import ipaddress
import logging
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LOOPBACK_RANGES: tuple[str, ...] = (
    "127.0.0.0/8",
    "::1/128",
)

# Loopback, RFC 1918 site-local, link-local and the unspecified address.
LOCAL_RANGES: tuple[str, ...] = LOOPBACK_RANGES + (
    "10.0.0.0/8",
    "172.16.0.0/12",
    "192.168.0.0/16",
    "169.254.0.0/16",
    "0.0.0.0/32",
    "fe80::/10",
    "fc00::/7",
    "::/128",
)


@dataclass(frozen=True)
class CidrRange:
    """A network in CIDR notation.

    Attributes:
        base_address: Packed network address (4 or 16 bytes)
        prefix_length: Number of leading bits that must match
    """

    base_address: bytes
    prefix_length: int

    @property
    def max_prefix(self) -> int:
        return len(self.base_address) * 8

    def contains_bytes(self, address: bytes) -> bool:
        """Check a packed address against this range."""
        if len(address) != len(self.base_address):
            return False

        whole_bytes = self.prefix_length // 8
        remaining_bits = self.prefix_length % 8

        if address[:whole_bytes] != self.base_address[:whole_bytes]:
            return False

        if remaining_bits and whole_bytes < len(address):
            mask = (0xFF << (8 - remaining_bits)) & 0xFF
            return (address[whole_bytes] & mask) == (self.base_address[whole_bytes] & mask)

        return True


def normalize_ip(ip: str | None) -> str | None:
    """Return the cache key form of an IP string (stripped, lower-cased)."""
    if ip is None:
        return None
    key = ip.strip().lower()
    return key or None


def parse_address(ip: str) -> bytes:
    """Parse an IP literal to its packed bytes.

    IPv4-mapped IPv6 addresses (``::ffff:a.b.c.d``, as reported by
    dual-stack sockets) are unwrapped to their 4-byte IPv4 form.

    Raises:
        ValueError: If the literal is not an IPv4/IPv6 address
    """
    address = ipaddress.ip_address(ip.strip())
    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        return mapped.packed
    return address.packed


def is_valid_ip(ip: str | None) -> bool:
    """Check whether a string is a parseable IP literal."""
    if not ip:
        return False
    try:
        parse_address(ip)
    except ValueError:
        return False
    return True


def parse_cidr(cidr: str) -> CidrRange:
    """Parse ``address/prefix`` (or a bare address) into a CidrRange.

    Raises:
        ValueError: If the address or the prefix length is invalid
    """
    text = cidr.strip()
    if "/" in text:
        address_part, prefix_part = text.split("/", 1)
        prefix_part = prefix_part.strip()
        if not prefix_part.isdigit():
            raise ValueError(f"Invalid prefix length in '{cidr}'")
        base_address = ipaddress.ip_address(address_part.strip())
        base = base_address.packed
        prefix = int(prefix_part)
        # ::ffff:0:0/96 and narrower describe IPv4 ranges
        mapped = getattr(base_address, "ipv4_mapped", None)
        if mapped is not None and prefix >= 96:
            base = mapped.packed
            prefix -= 96
    else:
        base = parse_address(text)
        prefix = len(base) * 8

    if prefix > len(base) * 8:
        raise ValueError(f"Prefix length out of range in '{cidr}'")

    return CidrRange(base_address=base, prefix_length=prefix)


def contains(ip: str, cidr: str) -> bool:
    """Check whether ``ip`` falls inside ``cidr``.

    Malformed addresses or ranges never raise, they simply do not match.
    """
    try:
        network = parse_cidr(cidr)
        address = parse_address(ip)
    except (ValueError, AttributeError) as e:
        logger.debug(f"CIDR check skipped (ip={ip}, range={cidr}, error={e})")
        return False
    return network.contains_bytes(address)


def find_match(ip: str, ranges: Iterable[str]) -> str | None:
    """Return the first range of ``ranges`` containing ``ip``, or None."""
    try:
        address = parse_address(ip)
    except (ValueError, AttributeError):
        return None

    for cidr in ranges:
        try:
            network = parse_cidr(cidr)
        except (ValueError, AttributeError) as e:
            logger.debug(f"Ignoring malformed range (range={cidr}, error={e})")
            continue
        if network.contains_bytes(address):
            return cidr
    return None


def matches_any(ip: str, ranges: Iterable[str]) -> bool:
    """Check whether ``ip`` falls inside at least one of ``ranges``."""
    return find_match(ip, ranges) is not None


def is_loopback_address(ip: str | None) -> bool:
    """True for 127.0.0.0/8 and ::1."""
    if not ip:
        return False
    if ip.strip().lower() == "localhost":
        return True
    return matches_any(ip, LOOPBACK_RANGES)


def is_local_address(ip: str | None) -> bool:
    """True for loopback, private (RFC 1918), link-local and unspecified addresses."""
    if not ip:
        return False
    if ip.strip().lower() == "localhost":
        return True
    return matches_any(ip, LOCAL_RANGES)
