# quickfix/conftest.py
import random

import httpx
import pytest
import pytest_asyncio

from quickfix.api.client import ApiClient
from quickfix.app import QuickFixApp
from quickfix.core.config import Settings
from quickfix.core.navigation import Navigator
from quickfix.core.notices import NoticeCenter
from quickfix.tests.fake_backend import FakeBackend

BASE_URL = "http://testserver/api"
USER_EMAIL = "asha@example.com"
USER_PASSWORD = "Secret#123"


@pytest.fixture
def cfg():
    """Settings for tests: fake backend URL and a short session redirect delay."""
    return Settings(
        ENV="test",
        API_BASE_URL=BASE_URL,
        SESSION_REDIRECT_DELAY_SECONDS=0.01,
    )


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def rng():
    return random.Random(20240611)


@pytest_asyncio.fixture
async def app(backend, cfg):
    """QuickFixApp wired to the in-process fake backend."""
    qf = QuickFixApp(cfg=cfg, transport=httpx.ASGITransport(app=backend.app))
    try:
        yield qf
    finally:
        await qf.aclose()


@pytest_asyncio.fixture
async def signed_in_app(app, backend):
    """App started with a verified, non-premium user already holding a session."""
    backend.add_user(email=USER_EMAIL, password=USER_PASSWORD)
    backend.sign_in(USER_EMAIL)
    await app.start()
    return app


@pytest.fixture
def notices():
    return NoticeCenter()


@pytest.fixture
def navigator():
    return Navigator("/profile")


@pytest_asyncio.fixture
async def mock_client(notices, navigator, cfg):
    """Factory for an ApiClient whose responses come from ``handler``."""
    clients = []

    def make(handler) -> ApiClient:
        client = ApiClient(
            BASE_URL,
            notices=notices,
            navigator=navigator,
            transport=httpx.MockTransport(handler),
            cfg=cfg,
        )
        clients.append(client)
        return client

    yield make
    for client in clients:
        await client.aclose()
