"""Tests for configuration management."""

import os
from unittest.mock import patch

import pytest
import yaml

from vaultpool.config.manager import ConfigManager
from vaultpool.config.validator import ConfigValidationError, ConfigValidator
from vaultpool.pool.config import PoolConfig
from vaultpool.secrets.policy import FractionLeasePolicy, MarginLeasePolicy
from vaultpool.utils.errors import ConfigurationError


def write_config(directory, config, name="rotation.yml"):
    path = os.path.join(directory, name)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(config, f)
    return path


class TestConfigValidator:
    """Test configuration validation."""

    def setup_method(self):
        self.validator = ConfigValidator()

    def test_valid_config(self, sample_config):
        assert self.validator.validate_config(sample_config) == []

    def test_missing_rotation_section(self, sample_config):
        del sample_config["rotation"]

        errors = self.validator.validate_config(sample_config)

        assert len(errors) == 1
        assert "rotation" in errors[0]

    def test_unknown_policy_type(self, sample_config):
        sample_config["rotation"]["policy"] = {"type": "random"}

        errors = self.validator.validate_config(sample_config)

        assert any("Schema validation failed" in error for error in errors)

    def test_fraction_policy_requires_fraction(self, sample_config):
        sample_config["rotation"]["policy"] = {"type": "fraction"}

        errors = self.validator.validate_config(sample_config)

        assert "Fraction policy requires a 'fraction' value" in errors

    def test_mount_path_with_creds_segment(self, sample_config):
        sample_config["rotation"]["mount_path"] = "postgresql/creds"

        errors = self.validator.validate_config(sample_config)

        assert any("creds segment" in error for error in errors)

    def test_database_url_with_password(self, sample_config):
        sample_config["pool"]["url"] = "postgresql://admin:secret@db/app"

        errors = self.validator.validate_config(sample_config)

        assert any("must not embed a password" in error for error in errors)

    def test_invalid_database_url(self, sample_config):
        sample_config["pool"]["url"] = "not a url"

        errors = self.validator.validate_config(sample_config)

        assert any("Invalid database URL" in error for error in errors)

    def test_validate_config_file_missing(self):
        errors = self.validator.validate_config_file("missing.yml")

        assert errors == ["Configuration file not found: missing.yml"]

    def test_validate_config_file_empty(self, temp_directory):
        path = os.path.join(temp_directory, "empty.yml")
        open(path, "w").close()

        assert self.validator.validate_config_file(path) == ["Configuration file is empty"]


class TestConfigManager:
    """Test loading configuration and building objects from it."""

    def test_load_config(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)

        config = ConfigManager(path, environ={}).load_config()

        assert config == sample_config

    def test_load_config_is_cached(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)
        manager = ConfigManager(path, environ={})
        manager.load_config()

        with patch("builtins.open") as mock_open_file:
            assert manager.load_config() == sample_config
            mock_open_file.assert_not_called()

    def test_load_config_missing_file(self):
        with pytest.raises(FileNotFoundError):
            ConfigManager("missing.yml").load_config()

    def test_load_config_invalid_yaml(self, temp_directory):
        path = os.path.join(temp_directory, "broken.yml")
        with open(path, "w", encoding="utf-8") as f:
            f.write("rotation: [unclosed")

        with pytest.raises(ConfigurationError):
            ConfigManager(path).load_config()

    def test_load_config_invalid_values(self, temp_directory, sample_config):
        sample_config["pool"]["pool_size"] = 0
        path = write_config(temp_directory, sample_config)

        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigManager(path).load_config()

        assert exc_info.value.suggestions

    def test_vault_settings_fall_back_to_environment(self, temp_directory, sample_config):
        del sample_config["vault"]
        path = write_config(temp_directory, sample_config)
        manager = ConfigManager(path, environ={"VAULT_ADDR": "https://vault.env:8200", "VAULT_TOKEN": "s.env"})

        vault = manager.get_vault_config()

        assert vault["url"] == "https://vault.env:8200"
        assert vault["token"] == "s.env"
        assert vault["verify"] is True

    def test_file_settings_win_over_environment(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)
        manager = ConfigManager(path, environ={"VAULT_ADDR": "https://vault.env:8200"})

        assert manager.get_vault_config()["url"] == "https://vault.internal:8200"

    def test_missing_vault_address(self, temp_directory, sample_config):
        del sample_config["vault"]
        path = write_config(temp_directory, sample_config)

        with pytest.raises(ConfigurationError):
            ConfigManager(path, environ={}).get_vault_config()

    def test_rotation_settings(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)

        settings = ConfigManager(path, environ={}).get_rotation_settings()

        assert settings["secret_path"] == "postgresql/preprod/creds/app-admin"
        assert settings["retry_delay_ms"] == 5000

    def test_rotation_settings_default_retry(self, temp_directory, sample_config):
        del sample_config["rotation"]["retry_delay_ms"]
        path = write_config(temp_directory, sample_config)

        assert ConfigManager(path, environ={}).get_rotation_settings()["retry_delay_ms"] == 5000

    def test_build_pool_config(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)

        pool_config = ConfigManager(path, environ={}).build_pool_config()

        assert isinstance(pool_config, PoolConfig)
        assert pool_config.pool_size == 4
        assert pool_config.username is None

    def test_build_margin_policy(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)

        policy = ConfigManager(path, environ={}).build_policy()

        assert isinstance(policy, MarginLeasePolicy)
        assert policy.margin_ms == 600000

    def test_build_fraction_policy(self, temp_directory, sample_config):
        sample_config["rotation"]["policy"] = {"type": "fraction", "fraction": 0.66}
        path = write_config(temp_directory, sample_config)

        policy = ConfigManager(path, environ={}).build_policy()

        assert isinstance(policy, FractionLeasePolicy)
        assert policy.fraction == 0.66

    def test_build_default_policy(self, temp_directory, sample_config):
        del sample_config["rotation"]["policy"]
        path = write_config(temp_directory, sample_config)

        assert isinstance(ConfigManager(path, environ={}).build_policy(), MarginLeasePolicy)

    def test_build_backend(self, temp_directory, sample_config):
        path = write_config(temp_directory, sample_config)

        with patch("vaultpool.secrets.backend.hvac.Client") as mock_client:
            backend = ConfigManager(path, environ={}).build_backend()

        mock_client.assert_called_once_with(
            url="https://vault.internal:8200",
            token="s.test-token",
            namespace=None,
            verify=True,
            timeout=30,
        )
        assert backend.url == "https://vault.internal:8200"
