"""Unit tests for provider result digests."""

import pytest

from travelhelper.app.adapters.provenance import provenance_for_fixture
from travelhelper.app.models.providers import FlightEndpoint, FlightOffer, Restaurant
from travelhelper.app.orchestration.digests import build_digest
from travelhelper.app.providers.gateway import ProviderGateway, ProviderKind, ProviderResult


def _offer(n: int) -> FlightOffer:
    return FlightOffer(
        id=f"f{n}",
        price=f"{400 + n}.00",
        currency="EUR",
        airline="AF",
        departure=FlightEndpoint(iata_code="JFK", at="2024-03-15T08:00:00"),
        arrival=FlightEndpoint(iata_code="CDG", at="2024-03-15T20:00:00"),
        duration="PT7H",
    )


def _result(kind: ProviderKind, data: object) -> ProviderResult[object]:
    return ProviderResult(
        kind=kind,
        data=data,
        source="live",
        provenance=provenance_for_fixture("test"),
    )


class TestBuildDigest:
    def test_flights_top_n(self) -> None:
        digest = build_digest(_result(ProviderKind.flights, [_offer(n) for n in range(5)]), "Paris")

        assert digest is not None
        lines = digest.content.splitlines()
        assert lines[0] == "✈️ Flight options for Paris:"
        assert len(lines) == 4
        assert "JFK -> CDG" in lines[1]
        assert "400.00 EUR" in lines[1]
        assert digest.metadata == {
            "kind": "flights",
            "source": "live",
            "fallback_reason": None,
            "results": 3,
        }

    def test_empty_result_yields_none(self) -> None:
        assert build_digest(_result(ProviderKind.hotels, []), "Paris") is None

    def test_restaurant_without_rating_or_price(self) -> None:
        place = Restaurant(id="r1", name="Chez Nous", category="French")

        digest = build_digest(_result(ProviderKind.restaurants, [place]), "Paris")

        assert digest is not None
        assert digest.content.splitlines()[1] == "- Chez Nous: French"

    @pytest.mark.asyncio
    async def test_fallback_weather(self, gateway: ProviderGateway) -> None:
        result = await gateway.get_weather("Paris")

        digest = build_digest(result, "Paris", top_n=2)

        assert digest is not None
        assert digest.metadata["fallback_reason"] == "credentials_missing"
        assert digest.content.splitlines()[1].startswith("- Now: 22°C")
        assert len(digest.content.splitlines()) == 3

    def test_unsupported_kind_raises(self) -> None:
        result = _result(ProviderKind.safety, None)
        with pytest.raises(ValueError):
            build_digest(result, "Paris")
