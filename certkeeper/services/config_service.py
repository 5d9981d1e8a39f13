"""
Configuration service for loading and validating certificate manager settings.
"""
import os
import configparser
from typing import Optional, Dict, Any, Mapping
import logging

from ..models.config import Config, ConfigValidationError, ConfigValidationResult


# Environment variables override file settings
ENV_OVERRIDES = {
    "HTTPS_ENABLED": ("https_enabled", bool),
    "SSL_CERT_PATH": ("cert_path", str),
    "SSL_KEY_PATH": ("key_path", str),
    "HTTPS_AUTO_GENERATE": ("auto_generate", bool),
    "CERTS_PATH": ("certs_path", str),
}

LONG_VALIDITY_DAYS = 825


class ConfigService:
    """Service for loading and validating certificate manager configuration."""

    def __init__(self, config_path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        self.logger = logging.getLogger(__name__)
        self.environ = os.environ if environ is None else environ
        self._config = None
        if config_path:
            self._config = self.load_config(config_path)

    def get_config(self) -> Config:
        """
        Get the loaded configuration.

        Raises:
            ValueError: If no configuration has been loaded
        """
        if self._config is None:
            raise ValueError("No configuration loaded. Call load_config() first.")
        return self._config

    def load_config(self, config_path: str) -> Config:
        """
        Load configuration from a property file.

        Args:
            config_path: Path to the configuration file

        Returns:
            Config object with loaded settings

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid or has validation errors
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        config_data = self._load_config_file(config_path)
        return self.build_config(config_data)

    def build_config(self, config_data: Dict[str, Any]) -> Config:
        """
        Build, override from the environment and validate a Config.

        Raises:
            ValueError: If values are invalid or validation reports errors
        """
        config_kwargs = self._map_config_data(config_data)
        config_kwargs.update(self._environment_overrides())

        config = Config(**config_kwargs)

        validation_result = self.validate_config(config)

        if validation_result.has_errors():
            error_summary = validation_result.get_error_summary()
            raise ValueError(f"Configuration validation failed:\n{error_summary}")

        if validation_result.has_warnings():
            warning_summary = validation_result.get_error_summary()
            self.logger.warning(f"Configuration warnings:\n{warning_summary}")

        self._config = config
        return config

    def _load_config_file(self, config_path: str) -> Dict[str, Any]:
        """Load configuration data from file."""
        # Values are taken literally, including any "%"
        config_parser = configparser.ConfigParser(interpolation=None)

        try:
            config_parser.read(config_path)

            # Flatten to section.key names
            config_data = {}
            for section in config_parser.sections():
                for key, value in config_parser.items(section):
                    config_data[f"{section}.{key}"] = value
        except configparser.Error as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

        for key, value in config_parser.defaults().items():
            if key not in config_data:
                config_data[key] = value

        return config_data

    def _map_config_data(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Map configuration keys to Config fields."""
        config_mapping = {
            # HTTPS settings
            "https.enabled": ("https_enabled", bool),
            "https_enabled": ("https_enabled", bool),
            "https.cert_path": ("cert_path", str),
            "cert_path": ("cert_path", str),
            "https.key_path": ("key_path", str),
            "key_path": ("key_path", str),
            "https.auto_generate": ("auto_generate", bool),
            "auto_generate": ("auto_generate", bool),
            "https.certs_path": ("certs_path", str),
            "certs_path": ("certs_path", str),

            # Generated certificate settings
            "https.common_name": ("common_name", str),
            "common_name": ("common_name", str),
            "https.alt_names": ("alt_names", list),
            "alt_names": ("alt_names", list),
            "https.validity_days": ("validity_days", int),
            "validity_days": ("validity_days", int),

            # Application settings
            "app.log_level": ("log_level", str),
            "log_level": ("log_level", str),
            "app.log_file_path": ("log_file_path", str),
            "log_file_path": ("log_file_path", str),
        }

        config_kwargs = {}
        for config_key, raw_value in config_data.items():
            if config_key in config_mapping:
                field_name, field_type = config_mapping[config_key]
                value = self._convert(config_key, raw_value, field_type)
                if value is not None:
                    config_kwargs[field_name] = value

        return config_kwargs

    def _environment_overrides(self) -> Dict[str, Any]:
        """Collect settings from environment variables."""
        overrides = {}
        for env_name, (field_name, field_type) in ENV_OVERRIDES.items():
            raw_value = self.environ.get(env_name)
            if raw_value is None or raw_value == "":
                continue
            overrides[field_name] = self._convert(env_name, raw_value, field_type)
            self.logger.debug(f"Configuration override from environment: {env_name}")
        return overrides

    def _convert(self, config_key: str, raw_value: Any, field_type: type) -> Any:
        """Convert a raw value to the field type."""
        try:
            if field_type == bool:
                return self._parse_bool(raw_value)
            elif field_type == int:
                return int(raw_value)
            elif field_type == list:
                return self._parse_list(raw_value)
            elif field_type == str:
                # Empty values mean "not set"
                value = str(raw_value).strip() if raw_value is not None else ""
                return value or None
            return raw_value
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid value for {config_key}: {raw_value} ({e})")

    def _parse_bool(self, value: Any) -> bool:
        """Parse boolean value from string."""
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in ("true", "yes", "1", "on", "enabled")
        return bool(value)

    def _parse_list(self, value: Any) -> list:
        """Parse a comma separated list."""
        if isinstance(value, (list, tuple)):
            return list(value)
        return [item.strip() for item in str(value).split(",") if item.strip()]

    def validate_config(self, config: Config) -> ConfigValidationResult:
        """
        Validate configuration settings.

        Args:
            config: Configuration object to validate

        Returns:
            ConfigValidationResult with validation results
        """
        errors = []
        warnings = []

        if bool(config.cert_path) != bool(config.key_path):
            missing = "key_path" if config.cert_path else "cert_path"
            errors.append(ConfigValidationError(
                missing,
                "cert_path and key_path must be configured together"
            ))

        if config.https_enabled and not config.has_custom_certificates() and not config.auto_generate:
            errors.append(ConfigValidationError(
                "auto_generate",
                "HTTPS is enabled but no certificate is configured and auto-generation is disabled"
            ))

        # Custom certificates are checked again at load time
        if config.https_enabled and config.has_custom_certificates():
            for field_name, cert_path in (("cert_path", config.cert_path), ("key_path", config.key_path)):
                if not os.path.exists(cert_path):
                    warnings.append(ConfigValidationError(
                        field_name,
                        f"Certificate file does not exist yet: {cert_path}",
                        "warning"
                    ))

        if config.validity_days > LONG_VALIDITY_DAYS:
            warnings.append(ConfigValidationError(
                "validity_days",
                f"Validity over {LONG_VALIDITY_DAYS} days is rejected by some TLS clients",
                "warning"
            ))

        if config.log_file_path:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir and not os.path.exists(log_dir):
                warnings.append(ConfigValidationError(
                    "log_file_path",
                    f"Log directory does not exist: {log_dir}",
                    "warning"
                ))

        all_issues = errors + warnings
        return ConfigValidationResult(
            is_valid=len(errors) == 0,
            errors=all_issues,
            warnings=[]
        )

    def create_default_config_file(self, config_path: str) -> None:
        """
        Create a default configuration file with example settings.

        Args:
            config_path: Path where to create the config file
        """
        config_content = """# Certificate Manager Configuration File

[https]
enabled = true
# Operator-supplied certificate pair (leave empty to use generated certificates)
cert_path =
key_path =
auto_generate = true
certs_path = data/certs
common_name = Hytale Server Manager
# Extra IPs and DNS names, comma separated
alt_names =
validity_days = 365

[app]
log_level = INFO
log_file_path = logs/certkeeper.log
"""

        config_dir = os.path.dirname(config_path)
        if config_dir:
            os.makedirs(config_dir, exist_ok=True)

        with open(config_path, 'w') as f:
            f.write(config_content)

        self.logger.info(f"Created default configuration file: {config_path}")
