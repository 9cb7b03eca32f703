"""Provider Gateway - one uniform ``call(kind, params)`` over every external provider.

Data kinds never raise past this boundary: when a provider is unconfigured,
unreachable, or answers with an unreadable payload, the caller receives the
deterministic fallback payload for that kind instead. Action kinds (payments)
have no safe fallback and raise ActionFailedError.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

import httpx
from pydantic import BaseModel

from travelhelper.app.adapters import fixtures, maps, places, safety, stripe, weather
from travelhelper.app.adapters.amadeus import AmadeusClient
from travelhelper.app.adapters.provenance import Sourced, provenance_for_fixture
from travelhelper.app.config import Settings, get_settings, secret_value
from travelhelper.app.errors import ActionFailedError, CredentialsMissingError, ProviderError
from travelhelper.app.llm.client import TextGenerator, get_text_generator
from travelhelper.app.models.common import Location, Provenance
from travelhelper.app.models.providers import (
    Attraction,
    CheckoutParams,
    FlightOffer,
    FlightSearchParams,
    GeneratedText,
    GeocodeParams,
    HotelOffer,
    HotelSearchParams,
    PlaceSearchParams,
    PortalParams,
    RedirectSession,
    Restaurant,
    RouteParams,
    RoutePlan,
    SafetyParams,
    SafetyReport,
    TextGenerationParams,
    WeatherParams,
    WeatherReport,
)
from travelhelper.app.providers.executor import CallConfig, ProviderExecutor
from travelhelper.app.utils.logging import StructuredProviderLogger
from travelhelper.app.utils.metrics import PrometheusProviderMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderKind(str, Enum):
    """Every external capability the gateway fronts."""

    flights = "flights"
    hotels = "hotels"
    weather = "weather"
    safety = "safety"
    restaurants = "restaurants"
    attractions = "attractions"
    geocode = "geocode"
    routing = "routing"
    generative_chat = "generative-chat"
    generative_itinerary = "generative-itinerary"
    checkout = "checkout"
    billing_portal = "billing-portal"

    @property
    def is_action(self) -> bool:
        return self in ACTION_KINDS


ACTION_KINDS = frozenset({ProviderKind.checkout, ProviderKind.billing_portal})
DATA_KINDS = frozenset(ProviderKind) - ACTION_KINDS


@dataclass
class ProviderResult(Generic[T]):
    """Outcome of a gateway call.

    ``source`` tells live data from fallback data; ``fallback_reason`` is set
    only for fallbacks ("credentials_missing", "upstream_unavailable",
    "malformed_response").
    """

    kind: ProviderKind
    data: T
    source: Literal["live", "fallback"]
    provenance: Provenance
    fallback_reason: str | None = None

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


@dataclass(frozen=True)
class _Route:
    params_model: type[BaseModel]
    live: Callable[[Any], Awaitable[Sourced[Any]]]
    fallback: Callable[[Any], Any] | None
    timeout_ms: int


class ProviderGateway:
    """Uniform request/response wrapper around all external providers."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        text_generator: TextGenerator | None = None,
        executor: ProviderExecutor | None = None,
    ) -> None:
        """Initialize gateway.

        Args:
            settings: Credentials, timeouts and breaker config (default: get_settings())
            http_client: Shared httpx client for all adapters (optional, for mocks)
            text_generator: Generative text implementation (default: built from settings)
            executor: Call executor (default: Prometheus metrics + structured logging)
        """
        self._settings = settings or get_settings()
        self._http = http_client
        self._generator = (
            text_generator if text_generator is not None else get_text_generator(self._settings)
        )
        self._logger = StructuredProviderLogger()
        self._metrics = PrometheusProviderMetrics()
        self._executor = executor or ProviderExecutor(metrics=self._metrics, logger=self._logger)

        self._amadeus: AmadeusClient | None = None
        amadeus_key = secret_value(self._settings.amadeus_api_key)
        amadeus_secret = secret_value(self._settings.amadeus_api_secret)
        if amadeus_key and amadeus_secret:
            self._amadeus = AmadeusClient(
                amadeus_key, amadeus_secret, self._settings.amadeus_base_url, client=self._http
            )

        data_ms = self._settings.provider_timeout_ms
        llm_ms = self._settings.llm_timeout_ms
        self._routes: dict[ProviderKind, _Route] = {
            ProviderKind.flights: _Route(
                FlightSearchParams, self._live_flights, fixtures.fallback_flights, data_ms
            ),
            ProviderKind.hotels: _Route(
                HotelSearchParams, self._live_hotels, fixtures.fallback_hotels, data_ms
            ),
            ProviderKind.weather: _Route(
                WeatherParams, self._live_weather, fixtures.fallback_weather, data_ms
            ),
            ProviderKind.safety: _Route(
                SafetyParams, self._live_safety, fixtures.fallback_safety, data_ms
            ),
            ProviderKind.restaurants: _Route(
                PlaceSearchParams, self._live_restaurants, fixtures.fallback_restaurants, data_ms
            ),
            ProviderKind.attractions: _Route(
                PlaceSearchParams, self._live_attractions, fixtures.fallback_attractions, data_ms
            ),
            ProviderKind.geocode: _Route(
                GeocodeParams, self._live_geocode, fixtures.fallback_geocode, data_ms
            ),
            ProviderKind.routing: _Route(
                RouteParams, self._live_route, fixtures.fallback_route, data_ms
            ),
            ProviderKind.generative_chat: _Route(
                TextGenerationParams, self._live_text, fixtures.fallback_chat_reply, llm_ms
            ),
            ProviderKind.generative_itinerary: _Route(
                TextGenerationParams, self._live_text, fixtures.fallback_itinerary_text, llm_ms
            ),
            ProviderKind.checkout: _Route(CheckoutParams, self._live_checkout, None, data_ms),
            ProviderKind.billing_portal: _Route(PortalParams, self._live_portal, None, data_ms),
        }

    @property
    def amadeus(self) -> AmadeusClient | None:
        return self._amadeus

    async def call(
        self, kind: ProviderKind | str, params: Mapping[str, Any] | BaseModel
    ) -> ProviderResult[Any]:
        """Call a provider.

        Args:
            kind: Provider kind
            params: Provider-specific primitive fields (mapping or params model)

        Returns:
            ProviderResult with live or fallback data

        Raises:
            pydantic.ValidationError: If params do not fit the kind's params model
            ActionFailedError: Action kinds only, on any failure
        """
        kind = ProviderKind(kind)
        route = self._routes[kind]
        parsed = (
            params
            if isinstance(params, route.params_model)
            else route.params_model.model_validate(
                params.model_dump() if isinstance(params, BaseModel) else dict(params)
            )
        )

        config = CallConfig(
            hard_timeout_ms=route.timeout_ms,
            breaker_failure_threshold=self._settings.circuit_breaker_failures,
            breaker_window_seconds=self._settings.circuit_breaker_window_sec,
            breaker_half_open_seconds=self._settings.circuit_breaker_half_open_sec,
        )

        try:
            sourced = await self._executor.execute(kind.value, config, lambda: route.live(parsed))
        except ProviderError as e:
            if route.fallback is None:
                raise ActionFailedError(f"{kind.value} failed: {e}") from e
            return self._fallback(kind, route, parsed, e.reason)

        return ProviderResult(
            kind=kind, data=sourced.value, source="live", provenance=sourced.provenance
        )

    def _fallback(
        self, kind: ProviderKind, route: _Route, params: BaseModel, reason: str
    ) -> ProviderResult[Any]:
        assert route.fallback is not None
        self._metrics.inc_fallback(kind.value, reason)
        self._logger.log_fallback(kind.value, reason)
        return ProviderResult(
            kind=kind,
            data=route.fallback(params),
            source="fallback",
            provenance=provenance_for_fixture(f"fallback.{kind.value}"),
            fallback_reason=reason,
        )

    # --- Credentials ---------------------------------------------------------

    def _require(self, name: str, value: str | None) -> str:
        if not value:
            raise CredentialsMissingError(f"{name} is not configured")
        return value

    # --- Live calls ------------------------------------------------------------

    async def _live_flights(self, params: FlightSearchParams) -> Sourced[list[FlightOffer]]:
        if self._amadeus is None:
            raise CredentialsMissingError("amadeus credentials are not configured")
        return await self._amadeus.search_flights(params)

    async def _live_hotels(self, params: HotelSearchParams) -> Sourced[list[HotelOffer]]:
        if self._amadeus is None:
            raise CredentialsMissingError("amadeus credentials are not configured")
        return await self._amadeus.search_hotels(params)

    async def _live_weather(self, params: WeatherParams) -> Sourced[WeatherReport]:
        key = self._require("openweather_api_key", secret_value(self._settings.openweather_api_key))
        return await weather.fetch_weather(params, key, client=self._http)

    async def _live_safety(self, params: SafetyParams) -> Sourced[SafetyReport]:
        key = self._require("crimeometer_api_key", secret_value(self._settings.crimeometer_api_key))
        return await safety.fetch_safety(params, key, client=self._http)

    async def _live_restaurants(self, params: PlaceSearchParams) -> Sourced[list[Restaurant]]:
        key = self._require("foursquare_api_key", secret_value(self._settings.foursquare_api_key))
        return await places.fetch_restaurants(params, key, client=self._http)

    async def _live_attractions(self, params: PlaceSearchParams) -> Sourced[list[Attraction]]:
        key = self._require("tripadvisor_api_key", secret_value(self._settings.tripadvisor_api_key))
        return await places.fetch_attractions(params, key, client=self._http)

    async def _live_geocode(self, params: GeocodeParams) -> Sourced[list[Location]]:
        key = self._require("google_maps_api_key", secret_value(self._settings.google_maps_api_key))
        return await maps.geocode(params, key, client=self._http)

    async def _live_route(self, params: RouteParams) -> Sourced[RoutePlan]:
        key = self._require("google_maps_api_key", secret_value(self._settings.google_maps_api_key))
        return await maps.route(params, key, client=self._http)

    async def _live_text(self, params: TextGenerationParams) -> Sourced[GeneratedText]:
        if self._generator is None:
            raise CredentialsMissingError(f"{self._settings.llm_provider} API key is not configured")
        text = await self._generator.generate(params.prompt)
        if not text.strip():
            raise ProviderError("generative provider returned empty text")
        return Sourced(
            value=GeneratedText(text=text, model=self._generator.model),
            provenance=Provenance(
                source=f"provider.generative.{self._settings.llm_provider}",
                ref_id=self._generator.model,
                fetched_at=datetime.now(UTC),
            ),
        )

    async def _live_checkout(self, params: CheckoutParams) -> Sourced[RedirectSession]:
        key = self._require("stripe_secret_key", secret_value(self._settings.stripe_secret_key))
        return await stripe.create_checkout_session(
            params, key, self._settings.app_base_url, client=self._http
        )

    async def _live_portal(self, params: PortalParams) -> Sourced[RedirectSession]:
        key = self._require("stripe_secret_key", secret_value(self._settings.stripe_secret_key))
        return await stripe.create_portal_session(
            params, key, self._settings.app_base_url, client=self._http
        )

    # --- Typed helpers -----------------------------------------------------------

    async def search_flights(
        self, origin: str, destination: str, departure_date: str, return_date: str | None = None
    ) -> ProviderResult[list[FlightOffer]]:
        """Search flights between two IATA codes on a date."""
        return await self.call(
            ProviderKind.flights,
            {
                "origin": origin,
                "destination": destination,
                "departure_date": departure_date,
                "return_date": return_date,
            },
        )

    async def search_hotels(
        self, city_code: str, check_in: str, check_out: str
    ) -> ProviderResult[list[HotelOffer]]:
        return await self.call(
            ProviderKind.hotels,
            {"city_code": city_code, "check_in": check_in, "check_out": check_out},
        )

    async def get_restaurants(self, location: str) -> ProviderResult[list[Restaurant]]:
        return await self.call(ProviderKind.restaurants, {"location": location})

    async def get_attractions(self, location: str) -> ProviderResult[list[Attraction]]:
        return await self.call(ProviderKind.attractions, {"location": location})

    async def get_weather(self, location: str) -> ProviderResult[WeatherReport]:
        return await self.call(ProviderKind.weather, {"location": location})

    async def get_safety(self, location: str) -> ProviderResult[SafetyReport]:
        return await self.call(ProviderKind.safety, {"location": location})

    async def geocode(self, address: str) -> ProviderResult[list[Location]]:
        return await self.call(ProviderKind.geocode, {"address": address})

    async def route(
        self, origin: str, destination: str, waypoints: list[str] | None = None, mode: str = "driving"
    ) -> ProviderResult[RoutePlan]:
        return await self.call(
            ProviderKind.routing,
            {
                "origin": origin,
                "destination": destination,
                "waypoints": waypoints or [],
                "mode": mode,
            },
        )

    async def generate_chat_reply(
        self, prompt: str, message: str, destination: str = ""
    ) -> ProviderResult[GeneratedText]:
        return await self.call(
            ProviderKind.generative_chat,
            {"prompt": prompt, "message": message, "destination": destination},
        )

    async def generate_itinerary_text(
        self, prompt: str, destination: str = ""
    ) -> ProviderResult[GeneratedText]:
        return await self.call(
            ProviderKind.generative_itinerary, {"prompt": prompt, "destination": destination}
        )

    async def create_checkout_session(
        self,
        price_id: str,
        user_id: str,
        customer_email: str | None = None,
        customer_id: str | None = None,
    ) -> RedirectSession:
        """Create a hosted checkout session.

        Raises:
            ActionFailedError: On any failure, including missing credentials
        """
        result: ProviderResult[RedirectSession] = await self.call(
            ProviderKind.checkout,
            {
                "price_id": price_id,
                "user_id": user_id,
                "customer_email": customer_email,
                "customer_id": customer_id,
            },
        )
        return result.data

    async def create_portal_session(self, customer_id: str) -> RedirectSession:
        """Create a billing-portal session.

        Raises:
            ActionFailedError: On any failure, including missing credentials
        """
        result: ProviderResult[RedirectSession] = await self.call(
            ProviderKind.billing_portal, {"customer_id": customer_id}
        )
        return result.data


# Global gateway instance
_gateway: ProviderGateway | None = None


def get_provider_gateway() -> ProviderGateway:
    """Get global provider gateway instance."""
    global _gateway
    if _gateway is None:
        _gateway = ProviderGateway(get_settings())
    return _gateway
