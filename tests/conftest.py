"""Shared fixtures: a fake migration service and clients pointed at it."""

import httpx
import pytest
import pytest_asyncio

from fake_backend import BackendState, create_app
from migrascope.client import MigrationClient
from migrascope.config import Settings
from migrascope.core.notifications import Notifier
from migrascope.core.scheduler import VirtualScheduler


@pytest.fixture
def backend():
    return BackendState()


@pytest_asyncio.fixture
async def client(backend):
    """MigrationClient talking to the fake service in-process."""
    rc = MigrationClient("http://testserver", transport=httpx.ASGITransport(app=create_app(backend)))
    yield rc
    await rc.aclose()


@pytest_asyncio.fixture
async def offline_client():
    """MigrationClient whose every request fails before reaching a server."""

    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    rc = MigrationClient("http://testserver", transport=httpx.MockTransport(refuse))
    yield rc
    await rc.aclose()


@pytest.fixture
def scheduler():
    return VirtualScheduler()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def settings():
    return Settings(config_cache_path="", _env_file=None)
