"""Secret backend access and lease policies for vaultpool."""

from .backend import SecretBackendClient, VaultBackendClient, creds_path
from .models import Credential, Lease, RefreshFailure, RefreshOutcome, RefreshSuccess
from .policy import FractionLeasePolicy, LeasePolicy, MarginLeasePolicy, check_interval, refresh_delay

__all__ = [
    "Credential",
    "Lease",
    "RefreshOutcome",
    "RefreshSuccess",
    "RefreshFailure",
    "SecretBackendClient",
    "VaultBackendClient",
    "creds_path",
    "LeasePolicy",
    "MarginLeasePolicy",
    "FractionLeasePolicy",
    "check_interval",
    "refresh_delay",
]
