"""
Startup entry point preparing the TLS certificate pair for the server.
Handles configuration loading, logging setup and the choice between
operator-supplied and generated certificates.
"""

import os
import sys
import logging
import argparse
from contextlib import nullcontext
from dataclasses import replace
from typing import Optional, List

from .models.config import Config
from .security.certificate_service import CertificateService
from .security.exceptions import CertificateError
from .security.models import CertificateBundle
from .services.config_service import ConfigService
from .services.logging_service import LoggingService, CONSOLE_FORMAT


DEFAULT_CONFIG_PATHS = [
    "config/certkeeper.properties",
    "certkeeper.properties",
    os.path.expanduser("~/.certkeeper/certkeeper.properties"),
    "/etc/certkeeper/certkeeper.properties"
]


class CertificateManagerApplication:
    """Prepares the server certificate at startup according to configuration."""

    def __init__(self, config_path: Optional[str] = None, config: Optional[Config] = None,
                 certificate_service: Optional[CertificateService] = None):
        """
        Initialize the application.

        Args:
            config_path: Path to configuration file (optional)
            config: Ready configuration, skips file loading when given
            certificate_service: Service used for certificate operations
        """
        self.config_path = config_path
        self.config = config
        self.config_service = ConfigService()
        self.certificate_service = certificate_service or CertificateService()
        self.logging_service = None
        self.bundle: Optional[CertificateBundle] = None
        self.logger = logging.getLogger(__name__)

    def initialize(self) -> bool:
        """
        Load configuration and set up logging.

        Returns:
            True if initialization successful, False otherwise
        """
        if not logging.getLogger().handlers:
            logging.basicConfig(level=logging.INFO, format=CONSOLE_FORMAT, stream=sys.stdout)

        if self.config is None and not self._load_configuration():
            return False

        try:
            self.logging_service = LoggingService(self.config)
        except OSError as e:
            self.logger.error(f"Failed to set up logging: {e}")
            return False

        self.logger.info("Certificate manager initialized")
        return True

    def _load_configuration(self) -> bool:
        """Load configuration from file, or defaults when no file is present."""
        try:
            if self.config_path:
                if not os.path.exists(self.config_path):
                    self.logger.warning(f"Configuration file not found: {self.config_path}")
                    self.config_service.create_default_config_file(self.config_path)
                    self.logger.info("Please edit the configuration file and restart")
                    return False
                self.config = self.config_service.load_config(self.config_path)
            else:
                found_path = self._find_default_config_path()
                if found_path:
                    self.config_path = found_path
                    self.config = self.config_service.load_config(found_path)
                else:
                    self.logger.info("No configuration file found, using defaults")
                    self.config = self.config_service.build_config({})

            self.logger.info("Configuration loaded successfully")
            return True

        except (OSError, ValueError) as e:
            self.logger.error(f"Failed to load configuration: {e}")
            return False

    def _find_default_config_path(self) -> Optional[str]:
        """Return the first existing default configuration path."""
        for path in DEFAULT_CONFIG_PATHS:
            if os.path.exists(path):
                return path
        return None

    def prepare_certificates(self, force_regenerate: bool = False) -> Optional[CertificateBundle]:
        """
        Produce the certificate bundle for the TLS listener.

        Returns:
            CertificateBundle, or None when HTTPS is disabled

        Raises:
            CertificateError: If the certificate pair cannot be loaded or generated
            ValueError: If the configuration does not allow any certificate source
        """
        if self.config is None:
            raise ValueError("Application not initialized. Call initialize() first.")

        if not self.config.https_enabled:
            self.logger.info("HTTPS disabled, skipping certificate preparation")
            return None

        with self._measure("prepare_certificates"):
            if self.config.has_custom_certificates():
                if force_regenerate:
                    raise ValueError("Cannot regenerate operator-supplied certificates")
                bundle = self.certificate_service.load_custom(self.config.cert_path, self.config.key_path)

            elif self.config.auto_generate or force_regenerate:
                options = self.config.to_certificate_options()
                if force_regenerate:
                    bundle = self.certificate_service.generate(options)
                else:
                    bundle = self.certificate_service.load_or_generate(options)

            else:
                raise ValueError("HTTPS is enabled but no certificate is configured and auto-generation is disabled")

        self.bundle = bundle
        self.logger.info(f"Using certificate: {bundle.cert_path} (generated: {bundle.generated})")
        return bundle

    def _measure(self, operation: str):
        if self.logging_service is None:
            return nullcontext()
        return self.logging_service.measure_performance(operation)

    def get_status(self) -> dict:
        """Get certificate status information."""
        status = {
            'config_path': self.config_path,
            'https_enabled': self.config.https_enabled if self.config else False,
            'cert_path': self.bundle.cert_path if self.bundle else None,
            'key_path': self.bundle.key_path if self.bundle else None,
            'generated': self.bundle.generated if self.bundle else None,
        }

        if self.bundle:
            try:
                info = self.certificate_service.get_certificate_info(self.bundle.cert_pem)
                status.update({
                    'subject': info.subject,
                    'not_after': info.not_after.isoformat(),
                    'is_valid': info.is_valid,
                    'fingerprint': info.fingerprint,
                    'subject_alt_names': info.subject_alt_names,
                })
            except ValueError as e:
                # Operator-supplied PEM text passed the header check but does not parse
                self.logger.warning(f"Could not parse certificate details: {e}")

        if self.logging_service:
            status['timings'] = self.logging_service.get_performance_stats()

        return status


def apply_cli_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Return a copy of config with command line settings applied."""
    overrides = {}
    if args.certs_dir:
        overrides['certs_path'] = args.certs_dir
    if args.common_name:
        overrides['common_name'] = args.common_name
    if args.alt_names:
        overrides['alt_names'] = list(config.alt_names) + list(args.alt_names)
    if args.validity_days is not None:
        overrides['validity_days'] = args.validity_days
    if args.cert or args.key:
        overrides['cert_path'] = args.cert
        overrides['key_path'] = args.key
    return replace(config, **overrides) if overrides else config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Prepare the server TLS certificate')
    parser.add_argument('--config', '-c', help='Configuration file path')
    parser.add_argument('--certs-dir', help='Directory for generated certificates')
    parser.add_argument('--common-name', help='Common name of generated certificates')
    parser.add_argument('--alt-name', dest='alt_names', action='append', default=[],
                        help='Additional IP address or DNS name (repeatable)')
    parser.add_argument('--validity-days', type=int, help='Validity of generated certificates in days')
    parser.add_argument('--cert', help='Operator-supplied certificate file')
    parser.add_argument('--key', help='Operator-supplied private key file')
    parser.add_argument('--regenerate', action='store_true', help='Always generate a new certificate')
    parser.add_argument('--info', action='store_true', help='Print certificate details')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the certkeeper command."""
    args = build_parser().parse_args(argv)

    app = CertificateManagerApplication(config_path=args.config)
    if not app.initialize():
        print("Failed to initialize certificate manager", file=sys.stderr)
        return 1

    try:
        app.config = apply_cli_overrides(app.config, args)
        if bool(app.config.cert_path) != bool(app.config.key_path):
            raise ValueError("--cert and --key must be given together")

        bundle = app.prepare_certificates(force_regenerate=args.regenerate)
    except (CertificateError, ValueError, OSError) as e:
        print(f"Certificate preparation failed: {e}", file=sys.stderr)
        return 1

    if bundle is None:
        print("HTTPS disabled, no certificate prepared")
        return 0

    print(f"Certificate: {bundle.cert_path}")
    print(f"Private key: {bundle.key_path}")
    print(f"Generated: {bundle.generated}")

    if args.info:
        status = app.get_status()
        for key in ('subject', 'not_after', 'fingerprint'):
            if key in status:
                print(f"{key}: {status[key]}")
        for name in status.get('subject_alt_names', []):
            print(f"  {name}")
        for operation, stats in status.get('timings', {}).items():
            print(f"{operation}: {stats['last_duration_ms']} ms")

    return 0


if __name__ == '__main__':
    sys.exit(main())
