"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
import threading
import time

import pytest

from vaultpool.pool.config import PoolConfig
from vaultpool.pool.handle import LivePoolHandle
from vaultpool.rotation.timer import Timer
from vaultpool.secrets.backend import SecretBackendClient
from vaultpool.secrets.models import Credential, Lease


class ManualTimer(Timer):
    """Timer driven by the test: nothing fires until fire_next() is called."""

    def __init__(self):
        self.now_ms = 0
        self.armed = []
        self._pending = []

    def schedule(self, task, delay_ms):
        self.armed.append((delay_ms, task))
        self._pending.append((self.now_ms + delay_ms, len(self.armed), task))

    @property
    def pending_count(self):
        return len(self._pending)

    @property
    def last_delay(self):
        return self.armed[-1][0]

    def fire_next(self):
        self._pending.sort(key=lambda item: (item[0], item[1]))
        fire_at, _, task = self._pending.pop(0)
        self.now_ms = fire_at
        task.run()
        return fire_at


class ScriptedBackend(SecretBackendClient):
    """Backend returning queued responses; exceptions in the queue are raised."""

    def __init__(self, responses=None, delay=0.0):
        self.responses = list(responses or [])
        self.calls = []
        self.delay = delay
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def queue(self, *responses):
        self.responses.extend(responses)

    def read_credentials(self, path):
        with self._lock:
            self.calls.append(path)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            response = self.responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            with self._lock:
                self.active -= 1


class FakePoolHandle(LivePoolHandle):
    """In-memory pool handle recording every interaction."""

    def __init__(self, config=None, evict_error=None, set_error=None):
        self.username = config.username if config else None
        self.password = config.password if config else None
        self.credential_updates = []
        self.evictions = 0
        self.evict_error = evict_error
        self.set_error = set_error
        self.closed = False

    def set_credentials(self, username, password):
        if self.set_error:
            raise self.set_error
        self.username = username
        self.password = password
        self.credential_updates.append(username)

    def evict_idle_connections(self):
        self.evictions += 1
        if self.evict_error:
            raise self.evict_error

    def is_closed(self):
        return self.closed

    def close(self):
        self.closed = True


def make_response(username="v-app-1", password="pw-1", lease_id="database/creds/app/1", duration=3600):
    """Build a (Credential, Lease) pair as a backend would return it."""
    return Credential(username=username, password=password), Lease(lease_id=lease_id, duration_seconds=duration)


@pytest.fixture
def temp_directory():
    """Create a temporary directory for testing."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolate_filesystem(temp_directory, monkeypatch):
    """Isolate filesystem operations to temporary directory."""
    monkeypatch.chdir(temp_directory)
    return temp_directory


@pytest.fixture
def manual_timer():
    return ManualTimer()


@pytest.fixture
def backend():
    return ScriptedBackend()


@pytest.fixture
def pool_config():
    return PoolConfig(url="postgresql+psycopg2://db.internal:5432/app")


@pytest.fixture
def pool_factory():
    """Factory building FakePoolHandles; built handles are kept on ``factory.pools``."""

    def factory(config):
        handle = FakePoolHandle(config)
        factory.pools.append(handle)
        return handle

    factory.pools = []
    return factory


@pytest.fixture
def sample_config():
    """Sample rotation configuration for testing."""
    return {
        "vault": {
            "url": "https://vault.internal:8200",
            "token": "s.test-token",
        },
        "rotation": {
            "mount_path": "postgresql/preprod",
            "role": "app-admin",
            "retry_delay_ms": 5000,
            "policy": {"type": "margin", "margin_ms": 600000},
        },
        "pool": {
            "url": "postgresql+psycopg2://db.internal:5432/app",
            "pool_size": 4,
            "max_overflow": 2,
        },
    }
