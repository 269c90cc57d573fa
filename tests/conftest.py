import pytest
from typer.testing import CliRunner
from typing import Any, Callable, Dict, List, Optional

from bitrefill.core.client import BitrefillClient
from bitrefill.domain.interfaces.transport import Transport, TransportResponse
from bitrefill.domain.models.common import PaginationConfig, PollingConfig
from bitrefill.infrastructure.config import settings
from bitrefill.infrastructure.http.basic_auth import BasicAuthEncoder


class FakeTransport(Transport):
    """Transport double driven by a handler(method, path, params, json).

    The handler returns a TransportResponse or an exception instance to raise.
    Every call is recorded in `calls`.
    """

    def __init__(self, handler: Callable[..., Any]):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def request(self, method, path, headers, params=None, json=None):
        self.calls.append({"method": method, "path": path, "headers": headers, "params": params, "json": json})
        result = self.handler(method, path, params, json)
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


def ok(data: Any, headers: Optional[Dict[str, str]] = None) -> TransportResponse:
    return TransportResponse(status=200, headers=headers or {}, body={"meta": {}, "data": data}, reason="OK")


@pytest.fixture
def respond():
    """Builds 200 responses wrapping `data` the way the API does."""
    return ok


@pytest.fixture
def make_client():
    """Returns a factory building a BitrefillClient around a FakeTransport."""

    def _make(handler: Callable[..., Any], pagination: Optional[PaginationConfig] = None, polling: Optional[PollingConfig] = None):
        transport = FakeTransport(handler)
        client = BitrefillClient(
            transport=transport,
            credentials=BasicAuthEncoder("test_api_key", "test_api_secret"),
            pagination=pagination,
            polling=polling or PollingConfig(delay_seconds=0),
        )
        return client, transport

    return _make


@pytest.fixture
def sleeps():
    """Records requested sleep durations without sleeping."""
    recorded: List[float] = []

    async def _sleep(seconds: float) -> None:
        recorded.append(seconds)

    _sleep.recorded = recorded
    return _sleep


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def fresh_configuration():
    """Each test starts with nothing loaded."""
    settings.reset_configuration()
    yield
    settings.reset_configuration()
