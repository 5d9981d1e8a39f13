"""
Filesystem storage for the managed certificate and private key.
"""
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Tuple, Union

from .exceptions import (
    CertificateFileNotFoundError,
    CertificateUnreadableError,
    InvalidCertificateFormatError,
)
from .models import CertificateBundle, PermissionOutcome, ReadResult, ReadStatus


CERT_FILENAME = "server.crt"
KEY_FILENAME = "server.key"

CERTIFICATE_MARKER = "-----BEGIN CERTIFICATE-----"
PRIVATE_KEY_MARKER = "-----BEGIN"
PRIVATE_KEY_SUFFIX = "PRIVATE KEY-----"

KEY_FILE_MODE = 0o600
CERT_FILE_MODE = 0o644

_directory_locks: Dict[str, threading.Lock] = {}
_directory_locks_guard = threading.Lock()


def has_certificate_marker(cert_pem: str) -> bool:
    """Check whether text contains a PEM certificate header."""
    return CERTIFICATE_MARKER in cert_pem


def has_private_key_marker(key_pem: str) -> bool:
    """Check whether text contains a PEM private key header of any kind."""
    for line in key_pem.splitlines():
        line = line.strip()
        if line.startswith(PRIVATE_KEY_MARKER) and line.endswith(PRIVATE_KEY_SUFFIX):
            return True
    return False


class CertificateStore:
    """Reads, validates and writes the certificate pair at fixed paths."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def paths_for(self, directory: Union[str, Path]) -> Tuple[str, str]:
        """Return the absolute (cert_path, key_path) for a certs directory."""
        base = os.path.abspath(os.fspath(directory))
        return os.path.join(base, CERT_FILENAME), os.path.join(base, KEY_FILENAME)

    def ensure_directory(self, directory: Union[str, Path]) -> None:
        """Create the certs directory and its parents if missing."""
        os.makedirs(os.fspath(directory), exist_ok=True)

    @contextmanager
    def directory_lock(self, directory: Union[str, Path]) -> Iterator[None]:
        """Serialize check-then-write sequences on one certs directory."""
        key = os.path.realpath(os.fspath(directory))
        with _directory_locks_guard:
            lock = _directory_locks.setdefault(key, threading.Lock())

        with lock:
            yield

    def read_existing(self, cert_path: str, key_path: str) -> ReadResult:
        """
        Read an existing certificate pair.

        Returns NOT_FOUND unless both files exist, UNREADABLE if either read
        fails and FOUND with a bundle otherwise. Content is not validated here.
        """
        if not (os.path.isfile(cert_path) and os.path.isfile(key_path)):
            return ReadResult(status=ReadStatus.NOT_FOUND)

        try:
            cert_pem = self._read_text(cert_path)
            key_pem = self._read_text(key_path)
        except (OSError, UnicodeDecodeError) as e:
            self.logger.debug(f"Failed to read certificate pair: {e}")
            return ReadResult(status=ReadStatus.UNREADABLE, error=e)

        bundle = CertificateBundle(
            cert_path=cert_path,
            key_path=key_path,
            cert_pem=cert_pem,
            key_pem=key_pem,
            generated=False
        )
        return ReadResult(status=ReadStatus.FOUND, bundle=bundle)

    def validate_structure(self, cert_pem: str, key_pem: str) -> bool:
        """
        Sniff both PEM texts for their header markers.

        This does not parse the material or check that the key matches the
        certificate.
        """
        return has_certificate_marker(cert_pem) and has_private_key_marker(key_pem)

    def read_custom(self, cert_path: str, key_path: str) -> CertificateBundle:
        """
        Load an operator-supplied certificate pair.

        Raises:
            CertificateFileNotFoundError: If the certificate or key file is missing
            CertificateUnreadableError: If either file cannot be read
            InvalidCertificateFormatError: If either file lacks its PEM header
        """
        # Certificate is always checked before the key
        if not os.path.isfile(cert_path):
            raise CertificateFileNotFoundError(f"Certificate file not found: {cert_path}", path=cert_path)

        if not os.path.isfile(key_path):
            raise CertificateFileNotFoundError(f"Key file not found: {key_path}", path=key_path)

        cert_pem = self._read_required(cert_path, "certificate")
        key_pem = self._read_required(key_path, "key")

        if not has_certificate_marker(cert_pem):
            raise InvalidCertificateFormatError(f"Invalid certificate file format: {cert_path}", path=cert_path)

        if not has_private_key_marker(key_pem):
            raise InvalidCertificateFormatError(f"Invalid key file format: {key_path}", path=key_path)

        return CertificateBundle(
            cert_path=os.path.abspath(cert_path),
            key_path=os.path.abspath(key_path),
            cert_pem=cert_pem,
            key_pem=key_pem,
            generated=False
        )

    def persist(self, cert_path: str, key_path: str, cert_pem: str, key_pem: str) -> None:
        """
        Write the certificate pair.

        Each file is written to a temporary file beside its target and renamed
        into place, so a reader never sees a partially written file. The key
        is written first.
        """
        self._atomic_write(key_path, key_pem, KEY_FILE_MODE)
        self._atomic_write(cert_path, cert_pem, CERT_FILE_MODE)

    def restrict_key_permissions(self, key_path: str) -> PermissionOutcome:
        """Best-effort owner-only read/write permission on the private key."""
        if os.name != "posix":
            self.logger.debug(f"POSIX permissions not supported, leaving {key_path} as is")
            return PermissionOutcome.UNSUPPORTED

        try:
            os.chmod(key_path, KEY_FILE_MODE)
        except OSError as e:
            self.logger.debug(f"Failed to restrict permissions on {key_path}: {e}")
            return PermissionOutcome.FAILED

        return PermissionOutcome.APPLIED

    def _read_text(self, file_path: str) -> str:
        """Read a PEM file as text."""
        with open(file_path, "r", encoding="utf-8") as f:
            return f.read()

    def _read_required(self, file_path: str, label: str) -> str:
        """Read a file that must be readable."""
        try:
            return self._read_text(file_path)
        except (OSError, UnicodeDecodeError) as e:
            raise CertificateUnreadableError(f"Failed to read {label} file {file_path}: {e}", path=file_path) from e

    def _atomic_write(self, target_path: str, content: str, mode: int) -> None:
        """Write content to a temporary file and rename it over target_path."""
        directory = os.path.dirname(target_path) or "."
        fd, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(target_path)}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

            if os.name == "posix":
                os.chmod(temp_path, mode)

            os.replace(temp_path, target_path)
        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
