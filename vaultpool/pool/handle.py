"""Handles to running connection pools that accept credential updates."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from vaultpool.secrets.models import Credential
from vaultpool.utils.errors import PoolError, create_error_suggestions

from .config import PoolConfig

logger = logging.getLogger(__name__)


class LivePoolHandle(ABC):
    """A running pool whose credentials can be swapped without a restart."""

    @abstractmethod
    def set_credentials(self, username: str, password: str) -> None:
        """Use this credential for every connection opened from now on."""
        pass

    @abstractmethod
    def evict_idle_connections(self) -> None:
        """Close idle connections; connections in use finish under the old credential."""
        pass

    @abstractmethod
    def is_closed(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class SQLAlchemyPoolHandle(LivePoolHandle):
    """
    LivePoolHandle backed by a SQLAlchemy engine.

    The current credential is injected into every new DBAPI connection through
    the engine's ``do_connect`` event, so the database URL does not need to
    carry a username or password. The connect keywords default to the
    ``user``/``password`` pair psycopg2, psycopg and pymysql expect; drivers
    that name them differently set ``username_key``/``password_key``.
    """

    def __init__(
        self,
        engine: Engine,
        credential: Credential,
        username_key: Optional[str] = "user",
        password_key: Optional[str] = "password",
    ):
        """
        Initialize pool handle.

        Args:
            engine: Engine owning the connection pool
            credential: Credential for the first connections
            username_key: DBAPI connect keyword for the username, or None to skip it
            password_key: DBAPI connect keyword for the password, or None to skip it
        """
        self.engine = engine
        self._credential = credential
        self.username_key = username_key
        self.password_key = password_key
        self._lock = threading.Lock()
        self._closed = False
        event.listen(engine, "do_connect", self._inject_credentials)

    @classmethod
    def from_config(cls, config: PoolConfig) -> "SQLAlchemyPoolHandle":
        """
        Build and start a pool from configuration.

        Args:
            config: Pool configuration carrying the fetched credential

        Returns:
            SQLAlchemyPoolHandle: Handle to the running pool

        Raises:
            PoolError: If the engine cannot be created or the first connection fails
        """
        try:
            engine = create_engine(config.url, **config.engine_options())
        except (SQLAlchemyError, ImportError, TypeError) as e:
            raise PoolError(
                f"Could not create connection pool: {e}",
                suggestions=create_error_suggestions("pool_unavailable"),
            ) from e

        handle = cls(
            engine,
            Credential(username=config.username or "", password=config.password or ""),
            username_key=config.username_key,
            password_key=config.password_key,
        )

        if config.validate_on_start:
            try:
                with engine.connect():
                    pass
            except SQLAlchemyError as e:
                engine.dispose()
                raise PoolError(
                    f"Connection pool could not open its first connection: {e}",
                    suggestions=create_error_suggestions("pool_unavailable"),
                ) from e

        logger.info(f"Started connection pool (username={handle.username})")
        return handle

    @property
    def username(self) -> str:
        return self._credential.username

    @property
    def credential(self) -> Credential:
        return self._credential

    def _inject_credentials(self, dialect, conn_rec, cargs, cparams) -> None:
        with self._lock:
            credential = self._credential
        if self.username_key:
            cparams[self.username_key] = credential.username
        if self.password_key:
            cparams[self.password_key] = credential.password

    def set_credentials(self, username: str, password: str) -> None:
        with self._lock:
            self._credential = Credential(username=username, password=password)

    def evict_idle_connections(self) -> None:
        # dispose() closes checked-in connections and detaches checked-out ones,
        # which are closed when their holders return them
        self.engine.dispose()
        logger.debug("Evicted idle pool connections")

    def is_closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.engine.dispose()
        logger.info("Connection pool closed")
