"""Credential rotation scheduling for vaultpool."""

from .scheduler import DEFAULT_RETRY_DELAY_MS, RefreshScheduler, RotationState, create_pool_with_rotation
from .task import RotationTask
from .timer import APSchedulerTimer, Timer

__all__ = [
    "RefreshScheduler",
    "RotationState",
    "RotationTask",
    "Timer",
    "APSchedulerTimer",
    "create_pool_with_rotation",
    "DEFAULT_RETRY_DELAY_MS",
]
