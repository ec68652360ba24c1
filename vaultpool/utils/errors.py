"""Error handling utilities for vaultpool."""

import sys
import traceback
from typing import Optional

import click


class VaultPoolError(Exception):
    """Base exception for vaultpool errors."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(message)


class ConfigurationError(VaultPoolError):
    """Raised when configuration is invalid or missing."""

    pass


class SecretBackendError(VaultPoolError):
    """Raised when reading credentials from the secret backend fails."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
        suggestions: Optional[list] = None,
    ):
        self.status_code = status_code
        super().__init__(message, details=details, suggestions=suggestions)

    @property
    def is_auth_denied(self) -> bool:
        """True when the backend refused access (HTTP 403)."""
        return self.status_code == 403


class FatalConfigError(VaultPoolError):
    """Raised when the initial credential fetch fails and the pool is not started."""

    pass


class TransientFetchError(VaultPoolError):
    """A background credential refresh failed; rotation keeps retrying."""

    def __init__(self, message: str, is_auth_denied: bool = False, details: Optional[str] = None):
        self.is_auth_denied = is_auth_denied
        super().__init__(message, details=details)


class PolicyError(VaultPoolError):
    """Raised when a lease policy returns an interval that breaks its contract."""

    pass


class PoolError(VaultPoolError):
    """Raised when a connection pool operation fails."""

    pass


# Non-vaultpool exceptions worth a friendlier message: (type, label, suggestion kind or list)
_GENERIC_ERRORS = (
    (FileNotFoundError, "File not found", [
        "Check that the configuration file path is correct",
        "Ensure the file exists and is readable",
    ]),
    (PermissionError, "Permission denied", [
        "Check that the configuration and log files are readable/writable",
    ]),
    (ConnectionError, "Connection failed", "vault_unreachable"),
    (TimeoutError, "Timed out", "vault_unreachable"),
)


class ErrorHandler:
    """Formats errors for the terminal, with hints operators can act on."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def handle_error(self, error: Exception, context: Optional[str] = None) -> None:
        """
        Print an error with its context, details and suggestions.

        Args:
            error: Exception to report
            context: What was being done when it happened
        """
        if isinstance(error, VaultPoolError):
            self._emit(error.message, context, error.details, error.suggestions)
            return

        message = f"{type(error).__name__}: {error}"
        suggestions: list = []
        for exc_type, label, hints in _GENERIC_ERRORS:
            if isinstance(error, exc_type):
                message = f"{label}: {error}"
                suggestions = create_error_suggestions(hints) if isinstance(hints, str) else hints
                break

        self._emit(message, context, None, suggestions)

    def _emit(self, message: str, context: Optional[str], details: Optional[str], suggestions: list) -> None:
        click.echo(f"✗ {message}", err=True)

        if context:
            click.echo(f"Context: {context}", err=True)
        if details:
            click.echo(f"Details: {details}", err=True)

        if suggestions:
            click.echo("\nSuggestions:", err=True)
            for suggestion in suggestions:
                click.echo(f"  • {suggestion}", err=True)

        if self.verbose:
            click.echo("\nFull traceback:", err=True)
            traceback.print_exc()

    def exit_with_error(self, error: Exception, context: Optional[str] = None, exit_code: int = 1) -> None:
        """Report the error and exit the process."""
        self.handle_error(error, context)
        sys.exit(exit_code)


def create_error_suggestions(error_type: str, **kwargs) -> list:
    """
    Create contextual error suggestions based on error type and context.

    Args:
        error_type: Type of error
        **kwargs: Additional context information (``role`` is interpolated when given)

    Returns:
        list: List of suggestion strings
    """
    role = kwargs.get("role", "the role")

    suggestions = {
        "vault_access_denied": [
            f"Check that the Vault token's policy allows reading creds for {role}",
            "Verify the token has not been revoked or expired",
            "Confirm the mount path and role name are spelled correctly",
        ],
        "vault_unreachable": [
            "Check that VAULT_ADDR points to a reachable Vault server",
            "Verify DNS, TLS and firewall settings",
            "Check whether Vault is sealed",
        ],
        "configuration_invalid": [
            "Check YAML syntax in configuration file",
            "Verify all required fields are present",
            "Validate configuration values are correct",
        ],
        "pool_unavailable": [
            "Check the database URL and that the driver is installed",
            "Verify the database accepts the issued credentials",
        ],
    }

    return suggestions.get(error_type, [])


def format_validation_errors(errors: list) -> str:
    """Render validation errors as one line, or a numbered list when there are several."""
    if not errors:
        return "No validation errors"

    if len(errors) == 1:
        return f"Validation error: {errors[0]}"

    lines = [f"  {i}. {error}" for i, error in enumerate(errors, 1)]
    return "Validation errors:\n" + "\n".join(lines)
