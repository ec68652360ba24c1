"""Configuration management for vaultpool."""

import os
from typing import Any, Dict, Mapping, Optional

import yaml

from vaultpool.pool.config import PoolConfig
from vaultpool.rotation.scheduler import DEFAULT_RETRY_DELAY_MS
from vaultpool.secrets.backend import VaultBackendClient, creds_path
from vaultpool.secrets.policy import FractionLeasePolicy, LeasePolicy, MarginLeasePolicy
from vaultpool.utils.errors import ConfigurationError, create_error_suggestions

from .validator import ConfigValidationError, ConfigValidator


class ConfigManager:
    """Loads a rotation configuration file and builds the objects it describes."""

    def __init__(self, config_path: str, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to the YAML configuration file
            environ: Environment used for VAULT_ADDR/VAULT_TOKEN fallbacks (defaults to os.environ)
        """
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.validator = ConfigValidator()
        self._config_cache: Optional[Dict[str, Any]] = None

    def load_config(self, validate: bool = True) -> Dict[str, Any]:
        """
        Load configuration file.

        Args:
            validate: Whether to validate the configuration

        Returns:
            Dict[str, Any]: Loaded configuration

        Raises:
            ConfigValidationError: If validation fails
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If YAML parsing fails
        """
        if self._config_cache is not None:
            return self._config_cache

        try:
            with open(self.config_path, encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Error parsing YAML file {self.config_path}",
                details=str(e),
                suggestions=create_error_suggestions("configuration_invalid"),
            ) from e

        if config is None:
            config = {}

        if validate:
            errors = self.validator.validate_config(config)
            if errors:
                raise ConfigValidationError(errors)

        self._config_cache = config
        return config

    def get_vault_config(self) -> Dict[str, Any]:
        """
        Get Vault connection settings, filling url and token from the environment.

        Returns:
            Dict[str, Any]: Vault settings

        Raises:
            ConfigurationError: If no Vault URL is configured
        """
        vault = dict(self.load_config().get("vault", {}))

        vault.setdefault("url", self.environ.get("VAULT_ADDR"))
        vault.setdefault("token", self.environ.get("VAULT_TOKEN"))
        vault.setdefault("verify", True)
        vault.setdefault("timeout", 30)

        if not vault["url"]:
            raise ConfigurationError(
                "No Vault address configured",
                suggestions=["Set vault.url in the configuration file or export VAULT_ADDR"],
            )

        return vault

    def get_rotation_settings(self) -> Dict[str, Any]:
        """
        Get rotation settings.

        Returns:
            Dict[str, Any]: mount_path, role, secret_path and retry_delay_ms
        """
        rotation = self.load_config()["rotation"]
        return {
            "mount_path": rotation["mount_path"],
            "role": rotation["role"],
            "secret_path": creds_path(rotation["mount_path"], rotation["role"]),
            "retry_delay_ms": rotation.get("retry_delay_ms", DEFAULT_RETRY_DELAY_MS),
        }

    def build_backend(self) -> VaultBackendClient:
        vault = self.get_vault_config()
        return VaultBackendClient(
            url=vault["url"],
            token=vault["token"],
            namespace=vault.get("namespace"),
            verify=vault["verify"],
            timeout=vault["timeout"],
        )

    def build_pool_config(self) -> PoolConfig:
        """Build an unstarted pool configuration; credentials are filled in by rotation."""
        return PoolConfig(**self.load_config()["pool"])

    def build_policy(self) -> LeasePolicy:
        """
        Build the lease policy.

        Returns:
            LeasePolicy: Margin policy unless the configuration asks for a fraction
        """
        policy = self.load_config()["rotation"].get("policy", {"type": "margin"})

        if policy["type"] == "fraction":
            return FractionLeasePolicy(policy["fraction"])

        if "margin_ms" in policy:
            return MarginLeasePolicy(policy["margin_ms"])
        return MarginLeasePolicy()
