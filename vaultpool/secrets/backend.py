"""Secret backend clients that issue dynamic database credentials."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import hvac
import requests
from hvac import exceptions as hvac_exceptions

from vaultpool.utils.errors import SecretBackendError

from .models import Credential, Lease

logger = logging.getLogger(__name__)

# hvac raises one exception class per HTTP status instead of carrying the code
_STATUS_BY_EXCEPTION = (
    (hvac_exceptions.Forbidden, 403),
    (hvac_exceptions.Unauthorized, 401),
    (hvac_exceptions.InvalidPath, 404),
    (hvac_exceptions.InvalidRequest, 400),
    (hvac_exceptions.RateLimitExceeded, 429),
    (hvac_exceptions.InternalServerError, 500),
    (hvac_exceptions.VaultDown, 503),
)


def creds_path(mount_path: str, role: str) -> str:
    """Build the logical path that issues credentials for a database role."""
    return f"{mount_path.strip('/')}/creds/{role}"


class SecretBackendClient(ABC):
    """Reads a credential payload and its lease from a secret backend."""

    @abstractmethod
    def read_credentials(self, path: str) -> Tuple[Credential, Lease]:
        """
        Read a credential from a logical path.

        Args:
            path: Logical secret path, e.g. ``database/creds/app``

        Returns:
            Tuple[Credential, Lease]: The issued credential and its lease

        Raises:
            SecretBackendError: If the read fails for any reason
        """
        pass


class VaultBackendClient(SecretBackendClient):
    """HashiCorp Vault client for the database secrets engine."""

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        namespace: Optional[str] = None,
        verify: bool = True,
        timeout: int = 30,
        client: Optional[hvac.Client] = None,
    ):
        """
        Initialize Vault backend client.

        Args:
            url: Vault server URL
            token: Pre-issued Vault token
            namespace: Optional Vault Enterprise namespace
            verify: Verify TLS certificates
            timeout: HTTP timeout in seconds
            client: Already authenticated hvac client to use instead of building one
        """
        self.url = url
        self.client = client or hvac.Client(
            url=url,
            token=token,
            namespace=namespace,
            verify=verify,
            timeout=timeout,
        )

    def read_credentials(self, path: str) -> Tuple[Credential, Lease]:
        try:
            response = self.client.read(path)
        except hvac_exceptions.VaultError as e:
            raise SecretBackendError(
                f"Vault read failed for {path}: {e}",
                status_code=self._status_code(e),
            ) from e
        except requests.exceptions.RequestException as e:
            raise SecretBackendError(f"Could not reach Vault at {self.url}: {e}") from e

        return self._parse_response(path, response)

    @staticmethod
    def _status_code(error: Exception) -> Optional[int]:
        for exc_type, status in _STATUS_BY_EXCEPTION:
            if isinstance(error, exc_type):
                return status
        return None

    @staticmethod
    def _parse_response(path: str, response: Optional[Dict[str, Any]]) -> Tuple[Credential, Lease]:
        if not response or not response.get("data"):
            raise SecretBackendError(f"Vault returned no data for {path}", status_code=404)

        data = response["data"]
        if not isinstance(data, dict):
            raise SecretBackendError(
                f"Vault response for {path} has malformed data",
                details=f"Expected a mapping, got {type(data).__name__}",
            )

        username = data.get("username")
        password = data.get("password")
        if not username or password is None:
            raise SecretBackendError(
                f"Vault response for {path} is missing username or password",
                details=f"Keys present: {', '.join(sorted(data))}",
            )

        try:
            lease = Lease(
                lease_id=response.get("lease_id") or "",
                duration_seconds=int(response.get("lease_duration") or 0),
            )
        except (TypeError, ValueError) as e:
            raise SecretBackendError(f"Invalid lease in Vault response for {path}: {e}") from e

        return Credential(username=username, password=password), lease
