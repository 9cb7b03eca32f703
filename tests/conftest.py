"""Shared pytest fixtures for all test suites."""

import uuid
from collections.abc import AsyncGenerator, Callable, Iterator
from typing import Any

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine

from tests.helpers import make_settings
from travelhelper.app.api.dependencies import (
    get_feed,
    get_gateway,
    get_generator,
    get_identity_service,
    get_orchestrator,
    get_profile_repository,
    get_session_store,
)
from travelhelper.app.config import Settings
from travelhelper.app.db.changes import ChangeFeed
from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.engine import create_async_engine_from_url
from travelhelper.app.db.inmemory import InMemoryProfileRepository, InMemorySessionStore
from travelhelper.app.db.models import Base
from travelhelper.app.identity.service import IdentityService
from travelhelper.app.main import app
from travelhelper.app.orchestration.conversation import ConversationOrchestrator
from travelhelper.app.orchestration.itinerary import ItineraryGenerator
from travelhelper.app.orchestration.state import AppState
from travelhelper.app.providers.executor import BreakerRegistry, ProviderExecutor
from travelhelper.app.providers.gateway import ProviderGateway


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def ctx() -> RequestContext:
    return RequestContext(user_id=uuid.uuid4())


@pytest.fixture
def other_ctx() -> RequestContext:
    return RequestContext(user_id=uuid.uuid4())


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def store(feed: ChangeFeed) -> InMemorySessionStore:
    return InMemorySessionStore(feed)


@pytest.fixture
def app_state() -> AppState:
    return AppState()


@pytest.fixture
def executor() -> ProviderExecutor:
    """Executor with its own breaker registry so tests never share breaker state."""
    return ProviderExecutor(registry=BreakerRegistry())


@pytest.fixture
def make_gateway(
    settings: Settings, executor: ProviderExecutor
) -> Callable[..., ProviderGateway]:
    """Factory for gateways; pass ``text_generator`` to script generative output."""

    def _make(**kwargs: Any) -> ProviderGateway:
        kwargs.setdefault("executor", executor)
        return ProviderGateway(kwargs.pop("settings", settings), **kwargs)

    return _make


@pytest.fixture
def gateway(make_gateway: Callable[..., ProviderGateway]) -> ProviderGateway:
    """Gateway with no credentials: every data kind serves its fallback."""
    return make_gateway()


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Any) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine with the full schema created."""
    engine = create_async_engine_from_url(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def profile_repo() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def api_client(
    settings: Settings,
    store: InMemorySessionStore,
    profile_repo: InMemoryProfileRepository,
    gateway: ProviderGateway,
    app_state: AppState,
    feed: ChangeFeed,
) -> Iterator[TestClient]:
    """TestClient wired to in-memory services through dependency overrides."""
    generator = ItineraryGenerator(store, gateway, app_state, settings)
    orchestrator = ConversationOrchestrator(store, gateway, generator, app_state, settings)
    identity = IdentityService(profile_repo, iterations=1_000)

    app.dependency_overrides.update(
        {
            get_session_store: lambda: store,
            get_profile_repository: lambda: profile_repo,
            get_identity_service: lambda: identity,
            get_gateway: lambda: gateway,
            get_generator: lambda: generator,
            get_orchestrator: lambda: orchestrator,
            get_feed: lambda: feed,
        }
    )
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(api_client: TestClient) -> dict[str, str]:
    """Sign up a fresh account and return its bearer header."""
    response = api_client.post(
        "/auth/signup",
        json={"email": "traveler@example.com", "password": "longenough", "name": "Traveler"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
