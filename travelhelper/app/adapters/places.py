"""Place search adapters: Foursquare (restaurants) and TripAdvisor (attractions)."""

import httpx

from travelhelper.app.adapters.http import http_client, parsing
from travelhelper.app.adapters.provenance import Sourced, provenance_for_http
from travelhelper.app.models.providers import Attraction, PlaceSearchParams, Restaurant

FOURSQUARE_URL = "https://api.foursquare.com/v3/places/search"
TRIPADVISOR_URL = "https://api.content.tripadvisor.com/api/v1/location/search"


async def fetch_restaurants(
    params: PlaceSearchParams,
    api_key: str,
    base_url: str = FOURSQUARE_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[list[Restaurant]]:
    """Search restaurants near a location via Foursquare Places v3.

    Args:
        params: Location text and result limit
        api_key: Foursquare API key
        base_url: Places search endpoint
        client: Optional httpx client (for testing with mocks)

    Returns:
        Sourced list of Restaurant objects

    Raises:
        httpx.HTTPError: On network or HTTP errors
        MalformedResponseError: If the results cannot be read
    """
    query: dict[str, str | int] = {
        "query": "restaurant",
        "near": params.location,
        "limit": params.limit,
    }

    async with http_client(client) as http:
        response = await http.get(base_url, params=query, headers={"Authorization": api_key})
        response.raise_for_status()

        with parsing("restaurants.foursquare"):
            restaurants = []
            for place in response.json()["results"]:
                categories = place.get("categories") or []
                location = place.get("location") or {}
                restaurants.append(
                    Restaurant(
                        id=str(place["fsq_id"]),
                        name=place["name"],
                        category=categories[0]["name"] if categories else "Restaurant",
                        rating=place.get("rating"),
                        price_level=place.get("price"),
                        address=location.get("formatted_address", ""),
                        photos=[
                            f"{photo['prefix']}300x300{photo['suffix']}"
                            for photo in place.get("photos") or []
                        ],
                    )
                )

    return Sourced(
        value=restaurants,
        provenance=provenance_for_http("restaurants.foursquare", str(response.request.url)),
    )


async def fetch_attractions(
    params: PlaceSearchParams,
    api_key: str,
    base_url: str = TRIPADVISOR_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[list[Attraction]]:
    """Search attractions via the TripAdvisor content API.

    Raises:
        httpx.HTTPError: On network or HTTP errors
        MalformedResponseError: If the results cannot be read
    """
    query = {"key": api_key, "searchQuery": params.location, "category": "attractions"}

    async with http_client(client) as http:
        response = await http.get(base_url, params=query)
        response.raise_for_status()

        with parsing("attractions.tripadvisor"):
            attractions = []
            for item in response.json()["data"][: params.limit]:
                address = item.get("address_obj") or {}
                photo_url = (
                    ((item.get("photo") or {}).get("images") or {}).get("medium") or {}
                ).get("url")
                attractions.append(
                    Attraction(
                        id=str(item["location_id"]),
                        name=item["name"],
                        rating=float(item["rating"]) if item.get("rating") else None,
                        description=item.get("description") or "",
                        address=address.get("address_string", ""),
                        photos=[photo_url] if photo_url else [],
                    )
                )

    # The API key travels as a query parameter; keep it out of provenance.
    return Sourced(
        value=attractions,
        provenance=provenance_for_http("attractions.tripadvisor", base_url),
    )
