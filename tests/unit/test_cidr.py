"""Unit tests for CIDR containment helpers."""

import ipaddress

import pytest

from ipguard.core.network.cidr import (
    CidrRange,
    contains,
    find_match,
    is_local_address,
    is_loopback_address,
    is_valid_ip,
    matches_any,
    normalize_ip,
    parse_cidr,
)


class TestCidrBoundaries:
    """Boundary addresses for every IPv4 prefix length."""

    @pytest.mark.parametrize("prefix", range(0, 33))
    def test_first_and_last_address_inside(self, prefix):
        """Both ends of a /N range are contained."""
        network = ipaddress.ip_network(f"203.0.113.77/{prefix}", strict=False)
        cidr = f"203.0.113.77/{prefix}"

        assert contains(str(network.network_address), cidr) is True
        assert contains(str(network.broadcast_address), cidr) is True

    @pytest.mark.parametrize("prefix", range(1, 33))
    def test_neighbours_outside(self, prefix):
        """The addresses just before and after a /N range are excluded."""
        network = ipaddress.ip_network(f"203.0.113.77/{prefix}", strict=False)
        cidr = f"203.0.113.77/{prefix}"
        first = int(network.network_address)
        last = int(network.broadcast_address)

        if first > 0:
            assert contains(str(ipaddress.IPv4Address(first - 1)), cidr) is False
        if last < 2 ** 32 - 1:
            assert contains(str(ipaddress.IPv4Address(last + 1)), cidr) is False

    def test_slash_24_example(self):
        """10.0.0.0/24 contains 10.0.0.255 and excludes 10.0.1.0."""
        assert contains("10.0.0.255", "10.0.0.0/24") is True
        assert contains("10.0.1.0", "10.0.0.0/24") is False
        assert contains("9.255.255.255", "10.0.0.0/24") is False

    def test_partial_byte_mask(self):
        """Remaining bits are compared on the high bits of the next byte."""
        assert contains("185.220.103.255", "185.220.100.0/22") is True
        assert contains("185.220.104.0", "185.220.100.0/22") is False
        assert contains("209.141.63.1", "209.141.32.0/19") is True
        assert contains("209.141.64.1", "209.141.32.0/19") is False

    def test_prefix_zero_matches_everything(self):
        """A /0 range matches every IPv4 address."""
        assert contains("0.0.0.0", "0.0.0.0/0") is True
        assert contains("255.255.255.255", "10.1.2.3/0") is True

    def test_prefix_32_requires_equality(self):
        """A /32 range only matches its own address."""
        assert contains("8.8.8.8", "8.8.8.8/32") is True
        assert contains("8.8.8.9", "8.8.8.8/32") is False

    def test_bare_address_is_single_host(self):
        """A range without prefix is a single host."""
        assert contains("192.0.2.10", "192.0.2.10") is True
        assert contains("192.0.2.11", "192.0.2.10") is False


class TestCidrFamiliesAndErrors:
    """Family mismatch and malformed input."""

    def test_family_mismatch_never_matches(self):
        """An IPv6 address is not inside an IPv4 range."""
        assert contains("::1", "0.0.0.0/0") is False
        assert contains("10.0.0.1", "::/0") is False

    def test_ipv6_ranges(self):
        """IPv6 ranges use the same byte algorithm."""
        assert contains("2001:db8::1", "2001:db8::/32") is True
        assert contains("2001:db9::1", "2001:db8::/32") is False
        assert contains("2001:db8:0:0:ffff::1", "2001:db8::/64") is True

    def test_ipv4_mapped_address_matches_ipv4_range(self):
        """::ffff:a.b.c.d is checked as the IPv4 address it carries."""
        assert contains("::ffff:185.220.101.4", "185.220.101.0/24") is True
        assert contains("::FFFF:B9DC:6504", "185.220.101.0/24") is True
        assert contains("::ffff:185.220.102.4", "185.220.101.0/24") is False

    def test_ipv4_mapped_range_matches_ipv4_address(self):
        """A ::ffff:0:0/96 style range describes IPv4 addresses."""
        assert contains("10.1.2.3", "::ffff:10.0.0.0/104") is True
        assert contains("::ffff:10.1.2.3", "::ffff:0:0/96") is True
        assert parse_cidr("::ffff:10.0.0.0/104") == CidrRange(
            base_address=bytes([10, 0, 0, 0]), prefix_length=8,
        )

    @pytest.mark.parametrize("ip,cidr", [
        ("not-an-ip", "10.0.0.0/8"),
        ("10.0.0.1", "10.0.0.0/33"),
        ("10.0.0.1", "10.0.0.0/abc"),
        ("10.0.0.1", "10.0.0/24"),
        ("10.0.0.1", "10.0.0.0/-1"),
        ("", "10.0.0.0/8"),
        ("10.0.0.1", ""),
    ])
    def test_malformed_input_is_non_match(self, ip, cidr):
        """Malformed addresses or ranges do not raise."""
        assert contains(ip, cidr) is False

    def test_parse_cidr_rejects_out_of_range_prefix(self):
        """Prefix longer than the address raises ValueError."""
        with pytest.raises(ValueError):
            parse_cidr("10.0.0.0/33")

    def test_parse_cidr_returns_range(self):
        """Parsed range exposes packed base and prefix."""
        network = parse_cidr(" 10.0.0.0/8 ")
        assert network == CidrRange(base_address=bytes([10, 0, 0, 0]), prefix_length=8)
        assert network.max_prefix == 32

    def test_contains_bytes_length_mismatch(self):
        """Packed addresses of another length are rejected."""
        network = parse_cidr("10.0.0.0/8")
        assert network.contains_bytes(bytes(16)) is False


class TestRangeLists:
    """find_match / matches_any over configured lists."""

    def test_find_match_returns_first_range(self):
        """The first containing range is returned."""
        ranges = ["192.0.2.0/24", "10.0.0.0/8", "10.1.0.0/16"]
        assert find_match("10.1.2.3", ranges) == "10.0.0.0/8"

    def test_malformed_range_is_skipped(self):
        """A malformed entry does not hide later matches."""
        ranges = ["bogus/99", "10.0.0.0/8"]
        assert matches_any("10.9.9.9", ranges) is True

    def test_invalid_ip_matches_nothing(self):
        """An invalid address never matches."""
        assert find_match("999.1.1.1", ["0.0.0.0/0"]) is None

    def test_empty_list(self):
        """No ranges, no match."""
        assert matches_any("10.0.0.1", []) is False


class TestAddressClassification:
    """Loopback/local detection and normalisation."""

    @pytest.mark.parametrize("ip", ["127.0.0.1", "127.10.20.30", "::1", "localhost", "::ffff:127.0.0.1"])
    def test_loopback(self, ip):
        assert is_loopback_address(ip) is True
        assert is_local_address(ip) is True

    @pytest.mark.parametrize("ip", ["10.1.2.3", "172.16.0.1", "172.31.255.255", "192.168.1.1",
                                    "169.254.10.10", "fe80::1", "fd00::1", "::ffff:192.168.1.1"])
    def test_local_but_not_loopback(self, ip):
        assert is_local_address(ip) is True
        assert is_loopback_address(ip) is False

    @pytest.mark.parametrize("ip", ["203.0.113.5", "8.8.8.8", "172.32.0.1", "2001:db8::1"])
    def test_public(self, ip):
        assert is_local_address(ip) is False
        assert is_loopback_address(ip) is False

    def test_none_and_empty(self):
        assert is_local_address(None) is False
        assert is_loopback_address("") is False

    def test_normalize_ip(self):
        """Keys are stripped and lower-cased."""
        assert normalize_ip("  2001:DB8::1 ") == "2001:db8::1"
        assert normalize_ip("   ") is None
        assert normalize_ip(None) is None

    def test_is_valid_ip(self):
        assert is_valid_ip("1.1.1.1") is True
        assert is_valid_ip("2001:db8::1") is True
        assert is_valid_ip("1.1.1") is False
        assert is_valid_ip(None) is False
