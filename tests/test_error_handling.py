"""Tests for error handling system."""

from unittest.mock import patch

import click
from click.testing import CliRunner

from vaultpool.utils.errors import (
    ConfigurationError,
    ErrorHandler,
    FatalConfigError,
    PolicyError,
    SecretBackendError,
    TransientFetchError,
    VaultPoolError,
    create_error_suggestions,
    format_validation_errors,
)


class TestVaultPoolError:
    """Test custom error classes."""

    def test_vaultpool_error_basic(self):
        """Test basic VaultPoolError functionality."""
        error = VaultPoolError("Test error message")

        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details is None
        assert error.suggestions == []

    def test_vaultpool_error_with_details(self):
        """Test VaultPoolError with details and suggestions."""
        suggestions = ["Try this", "Or try that"]
        error = VaultPoolError("Test error", details="Detailed explanation", suggestions=suggestions)

        assert error.details == "Detailed explanation"
        assert error.suggestions == suggestions

    def test_specific_error_types(self):
        """Test specific error type inheritance."""
        for error in (
            ConfigurationError("Config error"),
            FatalConfigError("Fatal"),
            PolicyError("Policy"),
            SecretBackendError("Backend"),
            TransientFetchError("Transient"),
        ):
            assert isinstance(error, VaultPoolError)

    def test_secret_backend_error_auth_denied(self):
        assert SecretBackendError("denied", status_code=403).is_auth_denied
        assert not SecretBackendError("down", status_code=503).is_auth_denied
        assert not SecretBackendError("no status").is_auth_denied

    def test_transient_fetch_error_keeps_flag(self):
        error = TransientFetchError("denied", is_auth_denied=True)

        assert error.is_auth_denied
        assert error.message == "denied"


class TestErrorHandler:
    """Test error handler functionality."""

    def setup_method(self):
        """Setup test environment."""
        self.handler = ErrorHandler(verbose=False)
        self.verbose_handler = ErrorHandler(verbose=True)

    def test_handle_vaultpool_error(self):
        """Test handling vaultpool-specific errors."""
        error = FatalConfigError(
            "Could not fetch initial database credentials",
            details="permission denied",
            suggestions=["Suggestion 1", "Suggestion 2"],
        )

        with patch("click.echo") as mock_echo:
            self.handler.handle_error(error, "Test context")

            assert mock_echo.call_count >= 4
            error_calls = [call for call in mock_echo.call_args_list if "✗" in str(call)]
            assert len(error_calls) > 0

    def test_handle_generic_error_file_not_found(self):
        """Test handling FileNotFoundError."""
        error = FileNotFoundError("rotation.yml not found")

        with patch("click.echo") as mock_echo:
            self.handler.handle_error(error)

            assert "File not found" in str(mock_echo.call_args_list[0])

    def test_handle_connection_error_suggests_vault_checks(self):
        error = ConnectionError("refused")

        with patch("click.echo") as mock_echo:
            self.handler.handle_error(error)

            output = " ".join(str(call) for call in mock_echo.call_args_list)
            assert "VAULT_ADDR" in output

    def test_handle_timeout_uses_vault_hints(self):
        with patch("click.echo") as mock_echo:
            self.handler.handle_error(TimeoutError("read timed out"), "credential check")

            output = " ".join(str(call) for call in mock_echo.call_args_list)
            assert "Timed out: read timed out" in output
            assert "Context: credential check" in output
            assert "Vault is sealed" in output

    def test_handle_error_with_verbose(self):
        """Test error handling with verbose output."""
        error = VaultPoolError("Test error")

        with patch("click.echo"):
            with patch("traceback.print_exc") as mock_traceback:
                self.verbose_handler.handle_error(error)

                mock_traceback.assert_called_once()

    def test_exit_with_error(self):
        """Test exit_with_error functionality."""
        error = VaultPoolError("Fatal error")

        with patch("click.echo"):
            with patch("sys.exit") as mock_exit:
                self.handler.exit_with_error(error, exit_code=2)

                mock_exit.assert_called_once_with(2)


class TestErrorUtilities:
    """Test error utility functions."""

    def test_create_error_suggestions_access_denied(self):
        suggestions = create_error_suggestions("vault_access_denied", role="app-admin")

        assert any("app-admin" in suggestion for suggestion in suggestions)

    def test_create_error_suggestions_unknown(self):
        assert create_error_suggestions("unknown_error_type") == []

    def test_format_validation_errors_single(self):
        result = format_validation_errors(["Field 'role' is required"])

        assert result == "Validation error: Field 'role' is required"

    def test_format_validation_errors_multiple(self):
        result = format_validation_errors(["a", "b", "c"])

        assert result.startswith("Validation errors:")
        assert "3. c" in result

    def test_format_validation_errors_empty(self):
        assert format_validation_errors([]) == "No validation errors"

    def test_format_validation_errors_from_config(self):
        result = format_validation_errors(["Mount path cannot be empty", "Invalid database URL: x"])

        assert result == "Validation errors:\n  1. Mount path cannot be empty\n  2. Invalid database URL: x"


class TestClickIntegration:
    """Test error handling integration with Click commands."""

    def test_cli_error_handling(self):
        @click.command()
        def test_command():
            raise ConfigurationError("Test config error")

        result = CliRunner().invoke(test_command)

        assert result.exit_code != 0
