"""Service wiring for route dependencies.

Each getter builds its service once per process; tests replace them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from travelhelper.app.config import get_settings
from travelhelper.app.db.changes import ChangeFeed, get_change_feed
from travelhelper.app.db.engine import create_session_factory, get_async_engine
from travelhelper.app.db.inmemory import InMemoryProfileRepository, InMemorySessionStore
from travelhelper.app.db.repositories import ProfileRepository, SessionStore
from travelhelper.app.db.sql_repositories import SqlProfileRepository, SqlSessionStore
from travelhelper.app.identity.service import IdentityService
from travelhelper.app.orchestration.conversation import ConversationOrchestrator
from travelhelper.app.orchestration.itinerary import ItineraryGenerator
from travelhelper.app.orchestration.state import get_app_state
from travelhelper.app.providers.gateway import ProviderGateway, get_provider_gateway


@lru_cache
def get_session_store() -> SessionStore:
    """Session Store for the configured backend ("sql" or "memory")."""
    if get_settings().store_backend == "memory":
        return InMemorySessionStore()
    return SqlSessionStore(create_session_factory(get_async_engine()))


@lru_cache
def get_profile_repository() -> ProfileRepository:
    if get_settings().store_backend == "memory":
        return InMemoryProfileRepository()
    return SqlProfileRepository(create_session_factory(get_async_engine()))


def get_identity_service() -> IdentityService:
    return IdentityService(get_profile_repository())


def get_gateway() -> ProviderGateway:
    return get_provider_gateway()


@lru_cache
def get_generator() -> ItineraryGenerator:
    return ItineraryGenerator(get_session_store(), get_gateway(), get_app_state(), get_settings())


@lru_cache
def get_orchestrator() -> ConversationOrchestrator:
    return ConversationOrchestrator(
        get_session_store(), get_gateway(), get_generator(), get_app_state(), get_settings()
    )


def get_feed() -> ChangeFeed:
    return get_change_feed()
