"""
Self-signed certificate generation.
"""
import ipaddress
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .exceptions import CertificateGenerationError
from .models import SANType, SubjectAltName


DEFAULT_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537


def generate_rsa_key(key_size: int = DEFAULT_KEY_SIZE) -> rsa.RSAPrivateKey:
    """Generate an RSA private key with the standard public exponent."""
    return rsa.generate_private_key(public_exponent=RSA_PUBLIC_EXPONENT, key_size=key_size)


class CertificateGenerator:
    """Produces a fresh key pair and a self-signed leaf certificate."""

    def __init__(self, key_factory: Optional[Callable[[int], rsa.RSAPrivateKey]] = None,
                 key_size: int = DEFAULT_KEY_SIZE,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the generator.

        Args:
            key_factory: Callable returning a private key for a key size.
                Defaults to RSA generation from the cryptography package.
            key_size: Key size in bits
            clock: Callable returning the current UTC time
        """
        self.key_factory = key_factory or generate_rsa_key
        self.key_size = key_size
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = logging.getLogger(__name__)

    def generate(self, common_name: str, organization: str,
                 san_list: Sequence[SubjectAltName], validity_days: int) -> Tuple[str, str]:
        """
        Generate a key pair and a self-signed certificate.

        Returns:
            Tuple of (cert_pem, key_pem)

        Raises:
            CertificateGenerationError: If key generation or signing fails
        """
        try:
            general_names = self._build_general_names(san_list)
            key = self.key_factory(self.key_size)

            subject = issuer = x509.Name([
                x509.NameAttribute(NameOID.COMMON_NAME, common_name),
                x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
            ])

            now = self.clock()
            cert = (
                x509.CertificateBuilder()
                .subject_name(subject)
                .issuer_name(issuer)
                .public_key(key.public_key())
                .serial_number(x509.random_serial_number())
                .not_valid_before(now)
                .not_valid_after(now + timedelta(days=validity_days))
                .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
                .add_extension(
                    x509.KeyUsage(
                        digital_signature=True,
                        content_commitment=False,
                        key_encipherment=True,
                        data_encipherment=False,
                        key_agreement=False,
                        key_cert_sign=False,
                        crl_sign=False,
                        encipher_only=False,
                        decipher_only=False,
                    ),
                    critical=True,
                )
                .add_extension(x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False)
                .add_extension(x509.SubjectAlternativeName(general_names), critical=False)
                .sign(private_key=key, algorithm=hashes.SHA256())
            )

            cert_pem = cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
            key_pem = key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.TraditionalOpenSSL,
                encryption_algorithm=serialization.NoEncryption(),
            ).decode("ascii")

        except CertificateGenerationError:
            raise
        except Exception as e:
            self.logger.error(f"Certificate generation failed: {e}")
            raise CertificateGenerationError(f"Failed to generate certificate: {e}") from e

        return cert_pem, key_pem

    def _build_general_names(self, san_list: Sequence[SubjectAltName]) -> List[x509.GeneralName]:
        """Convert SAN entries to cryptography general names."""
        general_names = []
        for entry in san_list:
            if entry.kind is SANType.IP:
                try:
                    general_names.append(x509.IPAddress(ipaddress.ip_address(entry.value)))
                except ValueError as e:
                    raise CertificateGenerationError(
                        f"Invalid IP address in subject alternative names: {entry.value}"
                    ) from e
            else:
                general_names.append(x509.DNSName(entry.value))
        return general_names
