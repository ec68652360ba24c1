"""Lease policies that turn a lease duration into a refresh delay.

Every policy must return a delay strictly shorter than the lease it was given
(or 0 for a zero-length lease) so the next refresh fires before the current
credential expires.
"""

from abc import ABC, abstractmethod

from vaultpool.utils.errors import PolicyError

DEFAULT_MARGIN_MS = 10 * 60 * 1000


class LeasePolicy(ABC):
    """Base class for lease-to-refresh-delay policies."""

    @abstractmethod
    def suggested_interval(self, lease_duration_ms: int) -> int:
        """
        Compute the delay before the next refresh.

        Args:
            lease_duration_ms: Lease duration in milliseconds

        Returns:
            int: Delay in milliseconds
        """
        pass

    def __call__(self, lease_duration_ms: int) -> int:
        return self.suggested_interval(lease_duration_ms)


class MarginLeasePolicy(LeasePolicy):
    """Refresh a fixed margin before expiry, or halfway through short leases."""

    def __init__(self, margin_ms: int = DEFAULT_MARGIN_MS):
        if margin_ms <= 0:
            raise PolicyError(f"Refresh margin must be positive: {margin_ms}")
        self.margin_ms = margin_ms

    def suggested_interval(self, lease_duration_ms: int) -> int:
        if lease_duration_ms > 2 * self.margin_ms:
            return lease_duration_ms - self.margin_ms
        return lease_duration_ms // 2

    def __repr__(self) -> str:
        return f"MarginLeasePolicy(margin_ms={self.margin_ms})"


class FractionLeasePolicy(LeasePolicy):
    """Refresh after a fixed fraction of the lease has elapsed."""

    def __init__(self, fraction: float):
        if not 0 < fraction < 1:
            raise PolicyError(f"Refresh fraction must be between 0 and 1 (exclusive): {fraction}")
        self.fraction = fraction

    def suggested_interval(self, lease_duration_ms: int) -> int:
        return int(lease_duration_ms * self.fraction)

    def __repr__(self) -> str:
        return f"FractionLeasePolicy(fraction={self.fraction})"


def check_interval(policy, lease_duration_ms: int) -> int:
    """
    Ask a policy for a refresh delay and verify it honours the lease.

    Args:
        policy: A LeasePolicy or any callable taking and returning milliseconds
        lease_duration_ms: Lease duration in milliseconds

    Returns:
        int: The validated delay in milliseconds

    Raises:
        PolicyError: If the delay is negative or not shorter than the lease
    """
    delay_ms = policy(lease_duration_ms)

    if delay_ms < 0:
        raise PolicyError(f"{policy!r} returned a negative refresh delay: {delay_ms}ms")

    if lease_duration_ms > 0 and delay_ms >= lease_duration_ms:
        raise PolicyError(
            f"{policy!r} returned {delay_ms}ms for a {lease_duration_ms}ms lease",
            details="The refresh delay must be shorter than the lease duration",
        )

    if lease_duration_ms == 0 and delay_ms != 0:
        raise PolicyError(f"{policy!r} returned {delay_ms}ms for a zero-length lease")

    return int(delay_ms)


def refresh_delay(policy, lease_duration_ms: int, fallback_ms: int) -> int:
    """
    Delay before the next refresh for a freshly fetched lease.

    A zero-length lease carries no expiry to plan around, so it is re-read
    after ``fallback_ms`` instead of immediately.

    Raises:
        PolicyError: If the policy breaks the lease contract
    """
    if lease_duration_ms == 0:
        return fallback_ms
    return check_interval(policy, lease_duration_ms)
