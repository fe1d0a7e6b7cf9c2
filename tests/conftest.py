"""Shared test fixtures for all test modules."""

import io
from collections.abc import AsyncGenerator, Generator

import pytest

try:
    import httpx
except ImportError:
    httpx = None

from runtimectl.adapters.logging import StdlibLoggingBackend
from runtimectl.core.api import ControlPlane
from runtimectl.core.logger_config import LoggerConfig

from tests.fakes import TEST_LOGGER, StaticTelemetryCollector


@pytest.fixture
def collector() -> StaticTelemetryCollector:
    return StaticTelemetryCollector()


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logging_backend(log_stream: io.StringIO) -> Generator[StdlibLoggingBackend]:
    """Logging backend bound to a dedicated logger, removed after the test."""
    backend = StdlibLoggingBackend(logger_name=TEST_LOGGER, stream=log_stream)
    yield backend
    backend.close()


@pytest.fixture
def control_plane(
    collector: StaticTelemetryCollector, logging_backend: StdlibLoggingBackend
) -> ControlPlane:
    return ControlPlane.create(
        collector,
        logging_backend,
        logger_config=LoggerConfig(log_level="INFO"),
    )


# === ASGI Test Fixtures ===


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            app = create_asgi_app(control_plane)
            async with asgi_test_client(app) as client:
                response = await client.get("/healthz")
    """
    if httpx is None:
        pytest.skip("httpx not installed")

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client


@pytest.fixture
async def asgi_client(
    control_plane: ControlPlane, asgi_test_client
) -> AsyncGenerator:
    """Fixture combining a control plane and an ASGI test client.

    Returns a tuple of (client, control_plane).
    """
    from runtimectl.adapters.frameworks.asgi import create_asgi_app

    app = create_asgi_app(control_plane)
    async with asgi_test_client(app) as client:
        yield client, control_plane
