"""Configuration validation for vaultpool."""

from typing import Any, Dict, List

import jsonschema
import yaml
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

from vaultpool.utils.errors import ConfigurationError, create_error_suggestions, format_validation_errors

from .schemas import ROTATION_CONFIG_SCHEMA


class ConfigValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__(
            f"Configuration validation failed: {'; '.join(errors)}",
            details=format_validation_errors(errors),
            suggestions=create_error_suggestions("configuration_invalid"),
        )


class ConfigValidator:
    """Validates vaultpool configuration files."""

    def validate_config(self, config: Dict[str, Any]) -> List[str]:
        """
        Validate rotation configuration.

        Args:
            config: Configuration dictionary to validate

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        errors = []

        try:
            jsonschema.validate(config, ROTATION_CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            errors.append(f"Schema validation failed: {e.message}")
        except jsonschema.SchemaError as e:
            errors.append(f"Schema error: {e.message}")

        if "rotation" in config and isinstance(config["rotation"], dict):
            rotation = config["rotation"]

            if isinstance(rotation.get("mount_path"), str):
                errors.extend(self._validate_mount_path(rotation["mount_path"]))

            if isinstance(rotation.get("policy"), dict):
                errors.extend(self._validate_policy(rotation["policy"]))

        if "pool" in config and isinstance(config["pool"], dict):
            if isinstance(config["pool"].get("url"), str):
                errors.extend(self._validate_database_url(config["pool"]["url"]))

        return errors

    def validate_config_file(self, file_path: str) -> List[str]:
        """
        Validate configuration file.

        Args:
            file_path: Path to configuration file

        Returns:
            List[str]: List of validation errors (empty if valid)
        """
        try:
            with open(file_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            return [f"Configuration file not found: {file_path}"]
        except yaml.YAMLError as e:
            return [f"YAML parsing error: {e}"]

        if config is None:
            return ["Configuration file is empty"]

        return self.validate_config(config)

    def _validate_mount_path(self, mount_path: str) -> List[str]:
        """Validate secrets engine mount path."""
        errors = []

        stripped = mount_path.strip("/")
        if not stripped:
            errors.append("Mount path cannot be empty")
        elif "/creds/" in f"/{stripped}/":
            errors.append(f"Mount path must not include the creds segment: {mount_path}")

        return errors

    def _validate_policy(self, policy: Dict[str, Any]) -> List[str]:
        """Validate that the policy carries the parameter its type needs."""
        errors = []

        policy_type = policy.get("type")
        if policy_type == "fraction" and "fraction" not in policy:
            errors.append("Fraction policy requires a 'fraction' value")
        if policy_type == "margin" and "fraction" in policy:
            errors.append("Margin policy does not accept a 'fraction' value")
        if policy_type == "fraction" and "margin_ms" in policy:
            errors.append("Fraction policy does not accept a 'margin_ms' value")

        return errors

    def _validate_database_url(self, url: str) -> List[str]:
        """Validate database URL format; credentials belong to the rotation."""
        errors = []

        try:
            parsed = make_url(url)
        except ArgumentError:
            errors.append(f"Invalid database URL: {url}")
            return errors

        if parsed.password:
            errors.append("Database URL must not embed a password; it is issued by Vault")

        return errors
