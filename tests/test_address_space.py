"""
Tests for candidate address enumeration and configured range expansion.
"""

from discovery.address_space import (
    compute_candidate_addresses,
    expand_ip_ranges,
    fallback_candidate_addresses,
    resolve_network_info,
)
from discovery.models import NetworkInfo


class TestComputeCandidateAddresses:

    def test_bounded_and_excludes_local_address(self):
        candidates = compute_candidate_addresses("192.168.1.10", "255.255.255.0", 100)

        assert len(candidates) == 100
        assert "192.168.1.10" not in candidates
        assert candidates[0] == "192.168.1.1"
        assert candidates[-1] == "192.168.1.101"

    def test_ascending_order(self):
        candidates = compute_candidate_addresses("10.0.0.200", "255.255.255.0", 50)
        as_ints = [int(c.split(".")[-1]) for c in candidates]
        assert as_ints == sorted(as_ints)

    def test_small_subnet_returns_all_other_hosts(self):
        # /29 has six usable hosts
        candidates = compute_candidate_addresses("192.168.5.1", "255.255.255.248", 100)
        assert candidates == ["192.168.5.2", "192.168.5.3", "192.168.5.4", "192.168.5.5", "192.168.5.6"]

    def test_large_subnet_is_capped(self):
        candidates = compute_candidate_addresses("10.1.0.1", "255.255.0.0", 25)
        assert len(candidates) == 25

    def test_malformed_input_falls_back(self):
        candidates = compute_candidate_addresses("not-an-ip", "255.255.255.0", 100)
        assert candidates == fallback_candidate_addresses(None, 100)
        assert candidates[0] == "192.168.1.1"
        assert candidates[-1] == "192.168.1.100"

    def test_none_input_falls_back(self):
        candidates = compute_candidate_addresses(None, None)
        assert len(candidates) == 100

    def test_single_host_subnet_falls_back(self):
        candidates = compute_candidate_addresses("192.168.1.7", "255.255.255.255", 100)
        assert candidates
        assert "192.168.1.7" not in candidates

    def test_fallback_excludes_local_address(self):
        candidates = fallback_candidate_addresses("192.168.1.5", 100)
        assert "192.168.1.5" not in candidates
        assert len(candidates) == 99


class TestExpandIpRanges:

    def test_dash_range_and_cidr(self):
        ips = expand_ip_ranges(["10.0.60.1-10.0.60.3", "192.168.2.0/30"], 100)
        assert ips == ["10.0.60.1", "10.0.60.2", "10.0.60.3", "192.168.2.1", "192.168.2.2"]

    def test_single_address(self):
        assert expand_ip_ranges(["192.168.1.77"], 10) == ["192.168.1.77"]

    def test_cap_duplicates_and_exclude(self):
        ips = expand_ip_ranges(["192.168.1.1-192.168.1.5", "192.168.1.3-192.168.1.9"], 6,
                               exclude="192.168.1.2")
        assert ips == ["192.168.1.1", "192.168.1.3", "192.168.1.4", "192.168.1.5",
                       "192.168.1.6", "192.168.1.7"]

    def test_invalid_entries_are_skipped(self):
        assert expand_ip_ranges(["bogus", "10.0.0.1-10.0.0.2"], 10) == ["10.0.0.1", "10.0.0.2"]


def test_resolve_network_info_always_returns_values():
    info = resolve_network_info()
    assert isinstance(info, NetworkInfo)
    assert info.local_address and info.subnet_mask and info.gateway
    assert set(info.to_dict()) == {"localAddress", "subnetMask", "gateway"}
