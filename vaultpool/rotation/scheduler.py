"""Credential refresh scheduler for pools authenticated with leased credentials."""

import logging
import threading
from enum import Enum
from typing import Callable, Optional

from vaultpool.pool.config import PoolConfig
from vaultpool.pool.handle import LivePoolHandle, SQLAlchemyPoolHandle
from vaultpool.secrets.backend import SecretBackendClient, creds_path
from vaultpool.secrets.models import Credential, Lease, RefreshFailure, RefreshOutcome, RefreshSuccess
from vaultpool.secrets.policy import LeasePolicy, MarginLeasePolicy, refresh_delay
from vaultpool.utils.errors import (
    ConfigurationError,
    FatalConfigError,
    PoolError,
    SecretBackendError,
    create_error_suggestions,
)

from .task import RotationTask
from .timer import Timer

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY_MS = 5000


class RotationState(Enum):
    """Lifecycle of a scheduler bound to one pool."""

    UNBOUND = "unbound"
    BOUND_SCHEDULED = "bound-scheduled"
    REFRESHING = "refreshing"
    RETRYING = "retrying"
    CLOSED = "closed"


class RefreshScheduler:
    """
    Keeps one connection pool supplied with fresh leased credentials.

    The scheduler fetches a credential synchronously when attached, starts the
    pool only once that succeeds, then refreshes in the background on a shared
    timer. Each background firing arms exactly one successor: at the policy's
    interval after a success, at the fixed retry delay after a failure. Rotation
    stops the first time a firing finds the pool closed.
    """

    def __init__(
        self,
        backend: SecretBackendClient,
        timer: Timer,
        pool_factory: Optional[Callable[[PoolConfig], LivePoolHandle]] = None,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
    ):
        """
        Initialize refresh scheduler.

        Args:
            backend: Authenticated secret backend client
            timer: Delayed-task facility that fires rotation tasks
            pool_factory: Builds and starts a pool from configuration
            retry_delay_ms: Delay before retrying a failed background refresh
        """
        if retry_delay_ms <= 0:
            raise ConfigurationError(f"Retry delay must be positive: {retry_delay_ms}")

        self.backend = backend
        self.timer = timer
        self.pool_factory = pool_factory or SQLAlchemyPoolHandle.from_config
        self.retry_delay_ms = retry_delay_ms

        self.pool_config: Optional[PoolConfig] = None
        self.secret_path: Optional[str] = None
        self.refresh_policy: Optional[LeasePolicy] = None
        self.pool: Optional[LivePoolHandle] = None

        self.last_lease: Optional[Lease] = None
        self.refresh_count = 0
        self.failure_count = 0

        self._state = RotationState.UNBOUND
        self._refresh_lock = threading.Lock()

    @property
    def state(self) -> RotationState:
        return self._state

    def attach(self, pool_config: PoolConfig, secret_path: str, refresh_policy) -> LivePoolHandle:
        """
        Fetch credentials, start the pool and begin background rotation.

        Args:
            pool_config: Configuration of a pool that has not been started yet
            secret_path: Logical backend path that issues the credential
            refresh_policy: LeasePolicy (or callable) turning lease ms into delay ms

        Returns:
            LivePoolHandle: The started pool, owned by the caller

        Raises:
            FatalConfigError: If the first credential fetch fails; no pool is started
            PolicyError: If the policy's first interval breaks the lease contract
            PoolError: If the scheduler is already attached or the pool cannot start
        """
        if self.pool is not None:
            raise PoolError(f"Credential rotation is already attached to a pool for {self.secret_path}")

        self.pool_config = pool_config
        self.secret_path = secret_path
        self.refresh_policy = refresh_policy

        # First fetch is synchronous so a broken setup fails before the pool exists
        outcome = self.refresh_once()
        if not outcome.ok:
            kind = "vault_access_denied" if outcome.is_auth_denied else "vault_unreachable"
            raise FatalConfigError(
                f"Could not fetch initial database credentials from {secret_path}",
                details=str(outcome.cause),
                suggestions=create_error_suggestions(kind, role=secret_path),
            ) from outcome.cause

        delay_ms = refresh_delay(refresh_policy, outcome.lease.duration_ms, self.retry_delay_ms)

        self.pool = self.pool_factory(pool_config)
        self.schedule_next(delay_ms)
        return self.pool

    def refresh_once(self) -> RefreshOutcome:
        """
        Read a new credential from the backend and apply it.

        Returns:
            RefreshOutcome: RefreshSuccess with the applied credential, or
            RefreshFailure when the read failed or the live pool refused the
            credential (neither the pool nor the stored config is changed)
        """
        if self.pool_config is None or self.secret_path is None:
            raise ConfigurationError("Credential rotation has not been attached to a pool configuration")

        with self._refresh_lock:
            if self.pool is not None:
                self._state = RotationState.REFRESHING

            logger.info(f"Renewing database credentials from {self.secret_path}")
            try:
                credential, lease = self.backend.read_credentials(self.secret_path)
            except SecretBackendError as e:
                self.failure_count += 1
                return RefreshFailure(cause=e, is_auth_denied=e.is_auth_denied)
            except Exception as e:
                # A backend outside the SecretBackendError contract, or a malformed payload
                self.failure_count += 1
                return RefreshFailure(cause=e)

            logger.info(
                f"Got new credentials (username={credential.username}, "
                f"lease_id={lease.lease_id}, lease_duration={lease.duration_seconds}s)"
            )
            try:
                self._apply_credentials(credential)
            except PoolError as e:
                self.failure_count += 1
                return RefreshFailure(cause=e, phase="apply")

            self.last_lease = lease
            self.refresh_count += 1
            return RefreshSuccess(credential=credential, lease=lease)

    def _apply_credentials(self, credential: Credential) -> None:
        # The live pool goes first so the stored config never runs ahead of it
        if self.pool is not None:
            try:
                self.pool.set_credentials(credential.username, credential.password)
            except Exception as e:
                raise PoolError(f"Connection pool rejected new credentials for {credential.username}: {e}") from e

        self.pool_config.username = credential.username
        self.pool_config.password = credential.password

        if self.pool is None:
            return

        try:
            self.pool.evict_idle_connections()
        except Exception as e:
            logger.warning(f"Could not evict idle connections after credential refresh: {e}")

    def pool_closed(self) -> bool:
        return self.pool is not None and self.pool.is_closed()

    def mark_closed(self) -> None:
        self._state = RotationState.CLOSED

    def schedule_next(self, delay_ms: int, retrying: bool = False) -> None:
        """
        Arm the single follow-up rotation task.

        Args:
            delay_ms: Delay before the task fires
            retrying: Whether this follows a failed refresh
        """
        if self._state is RotationState.CLOSED:
            return

        self._state = RotationState.RETRYING if retrying else RotationState.BOUND_SCHEDULED
        self.timer.schedule(RotationTask(self), delay_ms)
        logger.debug(f"Next credential refresh for {self.secret_path} in {delay_ms}ms")


def create_pool_with_rotation(
    pool_config: PoolConfig,
    mount_path: str,
    role: str,
    backend: SecretBackendClient,
    timer: Timer,
    policy=None,
    pool_factory: Optional[Callable[[PoolConfig], LivePoolHandle]] = None,
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
) -> LivePoolHandle:
    """
    Start a pool whose credentials are rotated from ``<mount_path>/creds/<role>``.

    Args:
        pool_config: Pool configuration without credentials
        mount_path: Mount path of the database secrets engine
        role: Database role to request credentials for
        backend: Authenticated secret backend client
        timer: Shared timer for background refreshes
        policy: Lease policy (defaults to MarginLeasePolicy())
        pool_factory: Builds and starts a pool from configuration
        retry_delay_ms: Delay before retrying a failed background refresh

    Returns:
        LivePoolHandle: The started pool

    Raises:
        FatalConfigError: If the first credential fetch fails
    """
    scheduler = RefreshScheduler(backend, timer, pool_factory=pool_factory, retry_delay_ms=retry_delay_ms)
    return scheduler.attach(pool_config, creds_path(mount_path, role), policy or MarginLeasePolicy())
