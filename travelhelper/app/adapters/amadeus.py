"""Amadeus self-service API adapter (flight and hotel offers).

Amadeus requires an OAuth client-credentials exchange. The bearer token is
cached in memory for the life of the process and dropped after any failed
call, so the next call fetches a fresh one.
"""

import logging

import httpx

from travelhelper.app.adapters.http import http_client, parsing
from travelhelper.app.adapters.provenance import Sourced, provenance_for_http
from travelhelper.app.errors import MalformedResponseError
from travelhelper.app.models.providers import (
    FlightEndpoint,
    FlightOffer,
    FlightSearchParams,
    HotelOffer,
    HotelSearchParams,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://test.api.amadeus.com"


class AmadeusClient:
    """Amadeus client holding the process-wide bearer token cache."""

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        base_url: str = DEFAULT_BASE_URL,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize client.

        Args:
            api_key: Amadeus client id
            api_secret: Amadeus client secret
            base_url: API host (test or production)
            client: Optional httpx client (for testing with mocks)
        """
        self._api_key = api_key
        self._api_secret = api_secret
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._token: str | None = None

    @property
    def has_token(self) -> bool:
        return self._token is not None

    def clear_token(self) -> None:
        """Forget the cached token; the next call re-authenticates."""
        self._token = None

    async def get_token(self) -> str:
        """Return the cached bearer token, fetching it on first use."""
        if self._token is not None:
            return self._token

        url = f"{self._base_url}/v1/security/oauth2/token"
        async with http_client(self._client) as client:
            response = await client.post(
                url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._api_key,
                    "client_secret": self._api_secret,
                },
            )
            response.raise_for_status()
            with parsing("amadeus.token"):
                token = response.json()["access_token"]
                if not isinstance(token, str) or not token:
                    raise ValueError("empty access_token")

        logger.info("Fetched Amadeus access token")
        self._token = token
        return token

    async def _get(self, path: str, params: dict[str, str | int]) -> tuple[dict, str]:
        url = f"{self._base_url}{path}"
        try:
            token = await self.get_token()
            async with http_client(self._client) as client:
                response = await client.get(
                    url, params=params, headers={"Authorization": f"Bearer {token}"}
                )
                response.raise_for_status()
                with parsing("amadeus"):
                    body = response.json()
        except Exception:
            self.clear_token()
            raise
        if not isinstance(body, dict):
            self.clear_token()
            raise MalformedResponseError("amadeus: response body is not an object")
        return body, str(response.request.url)

    async def search_flights(self, params: FlightSearchParams) -> Sourced[list[FlightOffer]]:
        """Search flight offers.

        Args:
            params: Route, departure date, optional return date and adult count

        Returns:
            Sourced list of FlightOffer objects

        Raises:
            httpx.HTTPError: On network or HTTP errors
            MalformedResponseError: If the offers cannot be read
        """
        query: dict[str, str | int] = {
            "originLocationCode": params.origin,
            "destinationLocationCode": params.destination,
            "departureDate": params.departure_date,
            "adults": params.adults,
        }
        if params.return_date:
            query["returnDate"] = params.return_date

        body, url = await self._get("/v2/shopping/flight-offers", query)

        try:
            with parsing("amadeus.flights"):
                offers = []
                for offer in body["data"]:
                    segment = offer["itineraries"][0]["segments"][0]
                    offers.append(
                        FlightOffer(
                            id=str(offer["id"]),
                            price=str(offer["price"]["total"]),
                            currency=offer["price"]["currency"],
                            airline=segment["carrierCode"],
                            departure=FlightEndpoint(
                                iata_code=segment["departure"]["iataCode"],
                                at=segment["departure"]["at"],
                            ),
                            arrival=FlightEndpoint(
                                iata_code=segment["arrival"]["iataCode"],
                                at=segment["arrival"]["at"],
                            ),
                            duration=offer["itineraries"][0]["duration"],
                            booking_url=f"https://www.amadeus.com/booking/{offer['id']}",
                        )
                    )
        except Exception:
            self.clear_token()
            raise

        return Sourced(value=offers, provenance=provenance_for_http("flights.amadeus", url))

    async def search_hotels(self, params: HotelSearchParams) -> Sourced[list[HotelOffer]]:
        """Search hotel offers in a city.

        Raises:
            httpx.HTTPError: On network or HTTP errors
            MalformedResponseError: If the offers cannot be read
        """
        query: dict[str, str | int] = {
            "cityCode": params.city_code,
            "checkInDate": params.check_in,
            "checkOutDate": params.check_out,
            "adults": params.adults,
        }
        body, url = await self._get("/v2/shopping/hotel-offers", query)

        try:
            with parsing("amadeus.hotels"):
                hotels = []
                for item in body["data"]:
                    hotel = item["hotel"]
                    first_offer = (item.get("offers") or [{}])[0]
                    price = first_offer.get("price") or {}
                    address = hotel.get("address") or {}
                    lines = address.get("lines") or []
                    hotels.append(
                        HotelOffer(
                            id=str(hotel["hotelId"]),
                            name=hotel["name"],
                            rating=float(hotel.get("rating") or 4),
                            price=str(price.get("total", "100")),
                            currency=price.get("currency", "USD"),
                            address=", ".join([*lines, address.get("cityName", "")]).strip(", "),
                            amenities=list(hotel.get("amenities") or []),
                            booking_url=f"https://www.booking.com/hotel/{hotel['hotelId']}",
                        )
                    )
        except Exception:
            self.clear_token()
            raise

        return Sourced(value=hotels, provenance=provenance_for_http("hotels.amadeus", url))
