"""Connection pool configuration and live handles."""

from .config import PoolConfig
from .handle import LivePoolHandle, SQLAlchemyPoolHandle

__all__ = ["PoolConfig", "LivePoolHandle", "SQLAlchemyPoolHandle"]
