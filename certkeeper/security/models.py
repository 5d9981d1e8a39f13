"""
Security models for TLS certificate lifecycle management.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union


DEFAULT_COMMON_NAME = "Hytale Server Manager"
ORGANIZATION_NAME = "Hytale Server Manager"
DEFAULT_VALIDITY_DAYS = 365


class SANType(Enum):
    """Kind of a Subject Alternative Name entry."""
    DNS = "DNS"
    IP = "IP"


@dataclass(frozen=True)
class SubjectAltName:
    """A single DNS-name or IP-address SAN entry."""
    kind: SANType
    value: str

    @classmethod
    def dns(cls, value: str) -> "SubjectAltName":
        return cls(SANType.DNS, value)

    @classmethod
    def ip(cls, value: str) -> "SubjectAltName":
        return cls(SANType.IP, value)

    def __str__(self):
        return f"{self.kind.value}:{self.value}"


@dataclass(frozen=True)
class CertificateOptions:
    """Input for generating or loading the managed certificate pair."""
    certs_directory: Union[str, Path]
    common_name: str = DEFAULT_COMMON_NAME
    alt_names: Tuple[str, ...] = ()
    validity_days: int = DEFAULT_VALIDITY_DAYS

    def __post_init__(self):
        """Validate options after initialization."""
        if not self.certs_directory:
            raise ValueError("certs_directory is required")

        if isinstance(self.validity_days, bool) or not isinstance(self.validity_days, int) \
                or self.validity_days <= 0:
            raise ValueError("validity_days must be a positive integer")

        if isinstance(self.alt_names, (str, bytes)):
            raise ValueError("alt_names must be a sequence of names, not a single string")

        # Keep the dataclass hashable
        object.__setattr__(self, "alt_names", tuple(self.alt_names or ()))


@dataclass(frozen=True)
class CertificateBundle:
    """Certificate and private key material handed to the TLS listener."""
    cert_path: str
    key_path: str
    cert_pem: str
    key_pem: str
    generated: bool


@dataclass
class CertificateInfo:
    """Information about a certificate."""
    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    is_valid: bool
    fingerprint: str
    subject_alt_names: List[str] = field(default_factory=list)


class PermissionOutcome(Enum):
    """Result of the best-effort private key permission step."""
    APPLIED = "applied"
    UNSUPPORTED = "unsupported"
    FAILED = "failed"


class ReadStatus(Enum):
    """Outcome of reading the managed certificate pair from disk."""
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"


@dataclass
class ReadResult:
    """Result of CertificateStore.read_existing()."""
    status: ReadStatus
    bundle: Optional[CertificateBundle] = None
    error: Optional[Exception] = None

    @property
    def found(self) -> bool:
        return self.status is ReadStatus.FOUND


@dataclass
class CertificateEvent:
    """Structured event emitted by the certificate lifecycle manager."""
    name: str
    details: Dict[str, Any] = field(default_factory=dict)
