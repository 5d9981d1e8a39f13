"""
Discovery of locally bound IPv4 addresses for certificate SAN entries.
"""
import ipaddress
import logging
import socket
from typing import List, Set

import psutil


logger = logging.getLogger(__name__)


def _loopback_interfaces() -> Set[str]:
    """Names of interfaces flagged as loopback by the operating system."""
    try:
        stats = psutil.net_if_stats()
    except OSError as e:
        logger.debug(f"Failed to read network interface flags: {e}")
        return set()

    # Interface flags are not reported on every platform
    return {
        name for name, interface_stats in stats.items()
        if "loopback" in getattr(interface_stats, "flags", "").split(",")
    }


def discover_local_ipv4() -> List[str]:
    """
    Return the IPv4 address of every non-loopback network interface.

    Interfaces flagged as loopback are skipped entirely, as are loopback
    addresses bound elsewhere. Addresses are returned in interface
    enumeration order without duplicates. An environment without
    qualifying interfaces yields an empty list.
    """
    try:
        interfaces = psutil.net_if_addrs()
    except OSError as e:
        logger.debug(f"Failed to enumerate network interfaces: {e}")
        return []

    loopback_interfaces = _loopback_interfaces()

    addresses = []
    for interface_name, interface_addresses in interfaces.items():
        if interface_name in loopback_interfaces:
            continue

        for address in interface_addresses:
            if address.family != socket.AF_INET:
                continue

            try:
                if ipaddress.IPv4Address(address.address).is_loopback:
                    continue
            except ValueError:
                logger.debug(f"Skipping malformed address on {interface_name}: {address.address}")
                continue

            if address.address not in addresses:
                addresses.append(address.address)

    return addresses
