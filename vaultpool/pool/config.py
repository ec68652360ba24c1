"""Connection pool configuration."""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class PoolConfig:
    """
    Settings used to build a connection pool.

    ``username`` and ``password`` are rewritten in place on every credential
    refresh so that a pool rebuilt from this object starts with the latest
    credential.
    """

    url: str
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: float = 30.0
    pool_recycle: int = -1
    pool_pre_ping: bool = True
    validate_on_start: bool = False
    connect_args: Dict[str, Any] = field(default_factory=dict)
    # DBAPI connect() keywords that receive the credential (psycopg2, psycopg and
    # pymysql take "user"; None leaves that part of the credential out)
    username_key: Optional[str] = "user"
    password_key: Optional[str] = "password"

    def engine_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``sqlalchemy.create_engine``."""
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_recycle": self.pool_recycle,
            "pool_pre_ping": self.pool_pre_ping,
            "connect_args": dict(self.connect_args),
        }
