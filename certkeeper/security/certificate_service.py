"""
Certificate lifecycle service: generate, load-or-generate and load-custom.
"""
import logging
import ssl
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from .generator import CertificateGenerator
from .models import (
    ORGANIZATION_NAME,
    CertificateBundle,
    CertificateEvent,
    CertificateInfo,
    CertificateOptions,
    ReadStatus,
)
from .network import discover_local_ipv4
from .san_builder import build_san_list
from .store import CertificateStore


EventSink = Callable[[CertificateEvent], None]


def log_event(event: CertificateEvent) -> None:
    """Default event sink: forward the event to the logging system."""
    logger = logging.getLogger(__name__)
    level = logging.WARNING if event.name in ("certificate.invalid", "certificate.unreadable") else logging.INFO
    logger.log(level, f"Certificate event: {event.name}", extra={'extra_data': {'event': event.name, **event.details}})


class CertificateService:
    """Service deciding between reuse and regeneration of the server certificate."""

    def __init__(self, generator: Optional[CertificateGenerator] = None,
                 store: Optional[CertificateStore] = None,
                 discover: Optional[Callable[[], Iterable[str]]] = None,
                 event_sink: Optional[EventSink] = None):
        """Initialize the certificate service with its collaborators."""
        self.generator = generator or CertificateGenerator()
        self.store = store or CertificateStore()
        self.discover = discover or discover_local_ipv4
        self.event_sink = event_sink or log_event
        self.logger = logging.getLogger(__name__)

    def generate(self, options: CertificateOptions) -> CertificateBundle:
        """
        Generate and persist a new certificate pair, overwriting any existing one.

        Raises:
            CertificateGenerationError: If key generation or signing fails
        """
        with self.store.directory_lock(options.certs_directory):
            return self._generate_locked(options)

    def load_or_generate(self, options: CertificateOptions) -> CertificateBundle:
        """
        Reuse the existing certificate pair if it looks valid, otherwise generate one.

        Missing, unreadable or malformed files are regenerated; only a
        generation failure is raised.
        """
        cert_path, key_path = self.store.paths_for(options.certs_directory)

        with self.store.directory_lock(options.certs_directory):
            result = self.store.read_existing(cert_path, key_path)

            if result.status is ReadStatus.FOUND:
                bundle = result.bundle
                if self.store.validate_structure(bundle.cert_pem, bundle.key_pem):
                    self._emit("certificate.loaded", cert_path=cert_path, key_path=key_path)
                    return bundle
                self._emit("certificate.invalid", cert_path=cert_path, key_path=key_path)

            elif result.status is ReadStatus.UNREADABLE:
                self._emit("certificate.unreadable", cert_path=cert_path, key_path=key_path,
                           error=str(result.error))

            return self._generate_locked(options)

    def load_custom(self, cert_path: str, key_path: str) -> CertificateBundle:
        """
        Load an operator-supplied certificate pair without any fallback.

        Raises:
            CertificateFileNotFoundError: If the certificate (checked first) or key is missing
            CertificateUnreadableError: If either file cannot be read
            InvalidCertificateFormatError: If either file fails the PEM header check
        """
        bundle = self.store.read_custom(cert_path, key_path)
        self._emit("certificate.custom_loaded", cert_path=bundle.cert_path, key_path=bundle.key_path)
        return bundle

    def _generate_locked(self, options: CertificateOptions) -> CertificateBundle:
        """Generate and persist a pair; caller holds the directory lock."""
        self.store.ensure_directory(options.certs_directory)
        cert_path, key_path = self.store.paths_for(options.certs_directory)

        discovered_ips = list(self.discover())
        san_list = build_san_list(options.alt_names, discovered_ips)

        self._emit(
            "certificate.generating",
            common_name=options.common_name,
            subject_alt_names=[str(entry) for entry in san_list],
            validity_days=options.validity_days
        )

        cert_pem, key_pem = self.generator.generate(
            common_name=options.common_name,
            organization=ORGANIZATION_NAME,
            san_list=san_list,
            validity_days=options.validity_days
        )

        self.store.persist(cert_path, key_path, cert_pem, key_pem)
        permission_outcome = self.store.restrict_key_permissions(key_path)
        self._emit("certificate.key_permissions", key_path=key_path, outcome=permission_outcome.value)

        self._emit(
            "certificate.generated",
            cert_path=cert_path,
            key_path=key_path,
            validity_days=options.validity_days
        )

        return CertificateBundle(
            cert_path=cert_path,
            key_path=key_path,
            cert_pem=cert_pem,
            key_pem=key_pem,
            generated=True
        )

    def _emit(self, name: str, **details) -> None:
        self.event_sink(CertificateEvent(name=name, details=details))

    def get_certificate_info(self, cert_pem: str) -> CertificateInfo:
        """Get detailed information about a certificate."""
        cert = x509.load_pem_x509_certificate(cert_pem.encode())
        now = datetime.now(timezone.utc)

        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        return CertificateInfo(
            subject=cert.subject.rfc4514_string(),
            issuer=cert.issuer.rfc4514_string(),
            serial_number=str(cert.serial_number),
            not_before=not_before,
            not_after=not_after,
            is_valid=not_before <= now <= not_after,
            fingerprint=cert.fingerprint(hashes.SHA256()).hex(),
            subject_alt_names=self._subject_alt_names(cert)
        )

    def _subject_alt_names(self, cert: x509.Certificate) -> List[str]:
        """Render the SAN extension of a certificate as DNS:/IP: strings."""
        try:
            extension = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            return []

        names = []
        for general_name in extension.value:
            if isinstance(general_name, x509.DNSName):
                names.append(f"DNS:{general_name.value}")
            elif isinstance(general_name, x509.IPAddress):
                names.append(f"IP:{general_name.value}")
        return names

    def create_ssl_context(self, bundle: CertificateBundle) -> ssl.SSLContext:
        """Create a server-side SSL context from a certificate bundle."""
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(certfile=bundle.cert_path, keyfile=bundle.key_path)
        context.minimum_version = ssl.TLSVersion.TLSv1_2

        self.logger.info("SSL context configured for HTTPS")
        return context
