import httpx
import pytest

from apichain.client import HttpExecutor
from apichain.config import Settings
from apichain.engine import ChainExecutor
from apichain.sessions import SessionStore


@pytest.fixture
def settings(tmp_path):
    return Settings(report_dir=tmp_path / "reports", default_timeout_ms=5000)


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def make_executor(store, settings):
    """Build a ChainExecutor whose HTTP calls are answered by ``handler``."""
    clients = []

    def _make_executor(handler) -> ChainExecutor:
        client = HttpExecutor(settings.user_agent, transport=httpx.MockTransport(handler))
        clients.append(client)
        return ChainExecutor(store, client, settings)

    yield _make_executor

    for client in clients:
        client.close()
