"""
Exceptions raised by the certificate lifecycle manager.
"""
from typing import Optional


class CertificateError(Exception):
    """Base class for certificate lifecycle failures."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class CertificateGenerationError(CertificateError):
    """Key generation or certificate signing failed."""


class CertificateUnreadableError(CertificateError):
    """A certificate or key file exists but could not be read."""


class InvalidCertificateFormatError(CertificateError):
    """A certificate or key file does not contain the expected PEM block."""


class CertificateFileNotFoundError(CertificateError, FileNotFoundError):
    """A required certificate or key file is missing."""
