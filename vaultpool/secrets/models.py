"""Credential and lease value types."""

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Credential:
    """A database username/password pair issued by the secret backend."""

    username: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class Lease:
    """Lease metadata returned alongside a credential."""

    lease_id: str
    duration_seconds: int

    def __post_init__(self):
        if self.duration_seconds < 0:
            raise ValueError(f"Lease duration cannot be negative: {self.duration_seconds}")

    @property
    def duration_ms(self) -> int:
        return self.duration_seconds * 1000


@dataclass(frozen=True)
class RefreshSuccess:
    """A refresh that fetched and applied a new credential."""

    credential: Credential
    lease: Lease

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class RefreshFailure:
    """
    A refresh that left the pool on its previous credential.

    ``phase`` is ``"fetch"`` when the backend read failed and ``"apply"`` when
    a credential was read but the live pool refused it.
    """

    cause: Exception
    is_auth_denied: bool = False
    phase: str = "fetch"

    @property
    def ok(self) -> bool:
        return False


RefreshOutcome = Union[RefreshSuccess, RefreshFailure]
