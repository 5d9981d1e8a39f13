"""
Subject Alternative Name list construction.
"""
import re
from typing import Iterable, List

from .models import SANType, SubjectAltName


# Dotted-quad test only; IPv6 literals and malformed addresses fall through to DNS
IPV4_PATTERN = re.compile(r"[0-9]+\.[0-9]+\.[0-9]+\.[0-9]+")

DEFAULT_SAN_ENTRIES = (
    SubjectAltName.dns("localhost"),
    SubjectAltName.ip("127.0.0.1"),
    SubjectAltName.ip("::1"),
)


def classify_alt_name(name: str) -> SubjectAltName:
    """Classify an operator-supplied name as an IP or DNS SAN entry."""
    if IPV4_PATTERN.fullmatch(name):
        return SubjectAltName.ip(name)
    return SubjectAltName.dns(name)


def build_san_list(alt_names: Iterable[str], discovered_ips: Iterable[str]) -> List[SubjectAltName]:
    """
    Build the ordered SAN list for a generated certificate.

    Order is: fixed loopback entries, discovered interface IPs, custom IPs,
    custom DNS names. Duplicates are preserved as supplied.
    """
    classified = [classify_alt_name(name) for name in alt_names]

    san_list = list(DEFAULT_SAN_ENTRIES)
    san_list.extend(SubjectAltName.ip(ip) for ip in discovered_ips)
    san_list.extend(entry for entry in classified if entry.kind is SANType.IP)
    san_list.extend(entry for entry in classified if entry.kind is SANType.DNS)
    return san_list
