"""
Local network resolution and candidate address enumeration
"""

import socket
import ipaddress
import logging
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import psutil

from .models import NetworkInfo

logger = logging.getLogger(__name__)

DEFAULT_MAX_ADDRESSES = 100

# Used when the host's own network cannot be determined
DEFAULT_NETWORK_INFO = NetworkInfo(
    local_address='192.168.1.2',
    subnet_mask='255.255.255.0',
    gateway='192.168.1.1'
)
FALLBACK_RANGE = ('192.168.1.1', '192.168.1.100')

_ROUTE_TABLE = Path('/proc/net/route')


def resolve_network_info() -> NetworkInfo:
    """
    Determine local address, netmask and gateway of the primary interface
    Falls back to DEFAULT_NETWORK_INFO on any failure
    """
    try:
        local_address = _primary_ipv4_address()
        if not local_address:
            logger.warning("No network interfaces found, using default values")
            return DEFAULT_NETWORK_INFO

        subnet_mask = _netmask_for(local_address) or DEFAULT_NETWORK_INFO.subnet_mask
        gateway = _default_gateway() or _first_host(local_address, subnet_mask) or DEFAULT_NETWORK_INFO.gateway

        return NetworkInfo(local_address=local_address, subnet_mask=subnet_mask, gateway=gateway)

    except Exception as e:
        logger.error(f"Error getting network info, using defaults: {e}")
        return DEFAULT_NETWORK_INFO


def _primary_ipv4_address() -> Optional[str]:
    """Address the OS would use for outbound traffic (no packet is sent)"""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(('10.255.255.255', 1))
            address = sock.getsockname()[0]
            if address and not address.startswith('127.'):
                return address
    except OSError:
        pass

    for addrs in psutil.net_if_addrs().values():
        for addr in addrs:
            if addr.family == socket.AF_INET and not addr.address.startswith('127.'):
                return addr.address
    return None


def _netmask_for(address: str) -> Optional[str]:
    for addrs in psutil.net_if_addrs().values():
        for addr in addrs:
            if addr.family == socket.AF_INET and addr.address == address:
                return addr.netmask
    return None


def _default_gateway() -> Optional[str]:
    """Read the default route from /proc/net/route (Linux only)"""
    if not _ROUTE_TABLE.exists():
        return None
    try:
        for line in _ROUTE_TABLE.read_text().splitlines()[1:]:
            parts = line.split()
            if len(parts) > 2 and parts[1] == '00000000':
                gateway_hex = parts[2]
                return socket.inet_ntoa(bytes.fromhex(gateway_hex)[::-1])
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read default gateway: {e}")
    return None


def _first_host(address: str, subnet_mask: str) -> Optional[str]:
    try:
        network = ipaddress.IPv4Interface(f"{address}/{subnet_mask}").network
        return str(next(network.hosts()))
    except (ValueError, StopIteration):
        return None


def compute_candidate_addresses(local_address: Optional[str], subnet_mask: Optional[str],
                                max_addresses: int = DEFAULT_MAX_ADDRESSES) -> List[str]:
    """
    Bounded, ordered candidate addresses within the local subnet
    Never includes local_address; never raises (falls back to FALLBACK_RANGE)
    """
    max_addresses = max(1, int(max_addresses or DEFAULT_MAX_ADDRESSES))
    try:
        network = ipaddress.IPv4Interface(f"{local_address}/{subnet_mask}").network
        candidates = list(islice(_hosts_excluding(network.hosts(), local_address), max_addresses))
        if candidates:
            return candidates
        logger.warning(f"Subnet {network} has no other hosts, using fallback range")
    except (ValueError, TypeError) as e:
        logger.error(f"Error calculating IP range for {local_address}/{subnet_mask}: {e}")

    return fallback_candidate_addresses(local_address, max_addresses)


def fallback_candidate_addresses(local_address: Optional[str] = None,
                                 max_addresses: int = DEFAULT_MAX_ADDRESSES) -> List[str]:
    """The documented private-range guess: 192.168.1.1 - 192.168.1.100"""
    start, end = (ipaddress.IPv4Address(ip) for ip in FALLBACK_RANGE)
    addresses = (ipaddress.IPv4Address(value) for value in range(int(start), int(end) + 1))
    return list(islice(_hosts_excluding(addresses, local_address), max_addresses))


def expand_ip_ranges(ip_ranges: Iterable[str], max_addresses: int = DEFAULT_MAX_ADDRESSES,
                     exclude: Optional[str] = None) -> List[str]:
    """
    Expand configured ranges ("a.b.c.d-e.f.g.h", CIDR or single IP) in order
    Duplicates and the excluded address are skipped; result capped at max_addresses
    """
    all_ips = []
    seen = set()
    if exclude:
        seen.add(exclude)

    for ip_range in ip_ranges:
        for ip_str in _expand_one(ip_range):
            if ip_str in seen:
                continue
            seen.add(ip_str)
            all_ips.append(ip_str)
            if len(all_ips) >= max_addresses:
                return all_ips

    return all_ips


def _expand_one(ip_range: str) -> Iterator[str]:
    try:
        if '-' in ip_range:
            start_ip, end_ip = ip_range.split('-')
            start = ipaddress.IPv4Address(start_ip.strip())
            end = ipaddress.IPv4Address(end_ip.strip())
            current = start
            while current <= end:
                yield str(current)
                current += 1
        else:
            network = ipaddress.IPv4Network(ip_range.strip(), strict=False)
            if network.num_addresses == 1:
                yield str(network.network_address)
            else:
                for ip in network.hosts():
                    yield str(ip)
    except ValueError:
        logger.warning(f"Invalid IP range format: {ip_range}")


def _hosts_excluding(addresses: Iterable[ipaddress.IPv4Address], local_address: Optional[str]) -> Iterator[str]:
    for address in addresses:
        ip_str = str(address)
        if ip_str != local_address:
            yield ip_str
