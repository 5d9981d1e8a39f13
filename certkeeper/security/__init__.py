"""
Security package for TLS certificate lifecycle management.
"""
from .models import (
    CertificateBundle,
    CertificateEvent,
    CertificateInfo,
    CertificateOptions,
    PermissionOutcome,
    SANType,
    SubjectAltName,
)
from .exceptions import (
    CertificateError,
    CertificateFileNotFoundError,
    CertificateGenerationError,
    CertificateUnreadableError,
    InvalidCertificateFormatError,
)
from .generator import CertificateGenerator
from .store import CertificateStore
from .certificate_service import CertificateService

__all__ = [
    'CertificateBundle',
    'CertificateEvent',
    'CertificateInfo',
    'CertificateOptions',
    'PermissionOutcome',
    'SANType',
    'SubjectAltName',
    'CertificateError',
    'CertificateFileNotFoundError',
    'CertificateGenerationError',
    'CertificateUnreadableError',
    'InvalidCertificateFormatError',
    'CertificateGenerator',
    'CertificateStore',
    'CertificateService'
]
