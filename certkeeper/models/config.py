"""
Configuration data models for the certificate manager.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from ..security.models import DEFAULT_COMMON_NAME, DEFAULT_VALIDITY_DAYS, CertificateOptions


@dataclass
class Config:
    """Main configuration class containing all certificate manager settings."""

    # HTTPS settings
    https_enabled: bool = True
    cert_path: Optional[str] = None
    key_path: Optional[str] = None
    auto_generate: bool = True
    certs_path: str = "data/certs"

    # Generated certificate settings
    common_name: str = DEFAULT_COMMON_NAME
    alt_names: List[str] = field(default_factory=list)
    validity_days: int = DEFAULT_VALIDITY_DAYS

    # Application settings
    log_level: str = "INFO"
    log_file_path: str = "logs/certkeeper.log"

    def __post_init__(self):
        """Validate configuration after initialization."""
        self._validate_types()

    def _validate_types(self):
        """Ensure all configuration values have correct types."""
        if isinstance(self.validity_days, bool) or not isinstance(self.validity_days, int) \
                or self.validity_days <= 0:
            raise ValueError("validity_days must be a positive integer")

        if not self.certs_path:
            raise ValueError("certs_path must not be empty")

        if not isinstance(self.alt_names, list):
            raise ValueError("alt_names must be a list of names")

        if not self.common_name:
            raise ValueError("common_name must not be empty")

        if self.log_level not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            raise ValueError("log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    def has_custom_certificates(self) -> bool:
        """Check if an operator-supplied certificate pair is configured."""
        return bool(self.cert_path and self.key_path)

    def to_certificate_options(self) -> CertificateOptions:
        """Build the options used for generated certificates."""
        return CertificateOptions(
            certs_directory=self.certs_path,
            common_name=self.common_name,
            alt_names=self.alt_names,
            validity_days=self.validity_days
        )


@dataclass
class ConfigValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    severity: str = "error"  # error, warning

    def __str__(self):
        return f"{self.severity.upper()}: {self.field} - {self.message}"


@dataclass
class ConfigValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[ConfigValidationError]
    warnings: List[ConfigValidationError]

    def __post_init__(self):
        """Separate errors and warnings."""
        all_issues = self.errors + self.warnings
        self.errors = [e for e in all_issues if e.severity == "error"]
        self.warnings = [e for e in all_issues if e.severity == "warning"]

    def has_errors(self) -> bool:
        """Check if there are any validation errors."""
        return len(self.errors) > 0

    def has_warnings(self) -> bool:
        """Check if there are any validation warnings."""
        return len(self.warnings) > 0

    def get_error_summary(self) -> str:
        """Get a formatted summary of all errors and warnings."""
        lines = []

        if self.errors:
            lines.append("Configuration Errors:")
            for error in self.errors:
                lines.append(f"  - {error}")

        if self.warnings:
            lines.append("Configuration Warnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")

        return "\n".join(lines) if lines else "Configuration is valid"
