"""Single-shot rotation task that refreshes credentials and arms its successor."""

import logging

from vaultpool.secrets.models import RefreshFailure
from vaultpool.secrets.policy import refresh_delay
from vaultpool.utils.errors import PolicyError, TransientFetchError

logger = logging.getLogger(__name__)


class RotationTask:
    """
    One firing of a credential rotation.

    Each run performs at most one refresh and arms exactly one successor,
    unless the bound pool has been closed, in which case rotation stops.
    """

    def __init__(self, scheduler):
        self.scheduler = scheduler

    @property
    def name(self) -> str:
        return f"rotate-credentials:{self.scheduler.secret_path}"

    def run(self) -> None:
        scheduler = self.scheduler

        if scheduler.pool_closed():
            logger.info(f"Connection pool is closed. Stopping credential rotation for {scheduler.secret_path}")
            scheduler.mark_closed()
            return

        try:
            outcome = scheduler.refresh_once()
        except Exception:
            # Runs on the timer thread
            logger.exception(f"Unexpected error while refreshing credentials from {scheduler.secret_path}")
            self._retry()
            return

        if outcome.ok:
            try:
                delay_ms = refresh_delay(scheduler.refresh_policy, outcome.lease.duration_ms, scheduler.retry_delay_ms)
            except PolicyError as e:
                logger.error(f"{e.message}; retrying in {scheduler.retry_delay_ms}ms")
                self._arm(scheduler.retry_delay_ms, retrying=True)
                return
            self._arm(delay_ms, retrying=False)
            return

        self._log_failure(outcome)
        self._retry()

    def _retry(self) -> None:
        retry_ms = self.scheduler.retry_delay_ms
        logger.warning(f"Waiting {retry_ms / 1000:g} secs before trying to get new credentials")
        self._arm(retry_ms, retrying=True)

    def _log_failure(self, outcome: RefreshFailure) -> None:
        path = self.scheduler.secret_path

        if outcome.phase == "apply":
            message = f"Could not apply new database credentials from {path} to the connection pool"
        elif outcome.is_auth_denied:
            message = f"Vault denied permission to fetch database credentials from {path}"
        else:
            message = f"Could not fetch database credentials from {path}"

        error = TransientFetchError(f"{message}: {outcome.cause}", is_auth_denied=outcome.is_auth_denied)
        # Logged with the backend/pool error as its cause so the traceback shows both
        error.__cause__ = outcome.cause
        logger.error(error.message, exc_info=error)

    def _arm(self, delay_ms: int, retrying: bool) -> None:
        try:
            self.scheduler.schedule_next(delay_ms, retrying=retrying)
        except Exception:
            logger.exception(f"Could not arm next credential rotation for {self.scheduler.secret_path}")
            raise
