"""vaultpool: keep a database connection pool authenticated with leased Vault credentials."""

__version__ = "0.1.0"
__author__ = "vaultpool maintainers"

from vaultpool.pool import LivePoolHandle, PoolConfig, SQLAlchemyPoolHandle  # noqa: E402
from vaultpool.rotation import (  # noqa: E402
    APSchedulerTimer,
    RefreshScheduler,
    RotationState,
    create_pool_with_rotation,
)
from vaultpool.secrets import (  # noqa: E402
    Credential,
    FractionLeasePolicy,
    Lease,
    MarginLeasePolicy,
    VaultBackendClient,
)

__all__ = [
    "RefreshScheduler",
    "RotationState",
    "APSchedulerTimer",
    "create_pool_with_rotation",
    "PoolConfig",
    "LivePoolHandle",
    "SQLAlchemyPoolHandle",
    "Credential",
    "Lease",
    "MarginLeasePolicy",
    "FractionLeasePolicy",
    "VaultBackendClient",
]
