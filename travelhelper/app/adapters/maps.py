"""Google Maps adapters: geocoding and directions."""

import httpx

from travelhelper.app.adapters.http import http_client, parsing
from travelhelper.app.adapters.provenance import Sourced, provenance_for_http
from travelhelper.app.errors import UpstreamUnavailableError
from travelhelper.app.models.common import Location
from travelhelper.app.models.providers import GeocodeParams, RouteLeg, RouteParams, RoutePlan

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

# Statuses that mean "answered, nothing found" rather than a failure
_EMPTY_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


def _check_status(source: str, body: dict) -> bool:
    """Return False for empty answers; raise for provider-side errors."""
    status = body["status"]
    if status == "OK":
        return True
    if status in _EMPTY_STATUSES:
        return False
    raise UpstreamUnavailableError(f"{source}: status {status}")


async def geocode(
    params: GeocodeParams,
    api_key: str,
    base_url: str = GEOCODE_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[list[Location]]:
    """Geocode a free-text address.

    Raises:
        httpx.HTTPError: On network or HTTP errors
        UpstreamUnavailableError: On a provider error status (quota, denied)
        MalformedResponseError: If the results cannot be read
    """
    async with http_client(client) as http:
        response = await http.get(base_url, params={"address": params.address, "key": api_key})
        response.raise_for_status()

        with parsing("maps.geocode"):
            body = response.json()
            results = body["results"] if _check_status("maps.geocode", body) else []
            locations = [
                Location(
                    name=params.address,
                    address=result["formatted_address"],
                    latitude=result["geometry"]["location"]["lat"],
                    longitude=result["geometry"]["location"]["lng"],
                    place_id=result.get("place_id"),
                )
                for result in results
            ]

    return Sourced(value=locations, provenance=provenance_for_http("maps.geocode", base_url))


async def route(
    params: RouteParams,
    api_key: str,
    base_url: str = DIRECTIONS_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[RoutePlan]:
    """Calculate a route through the given waypoints.

    Raises:
        httpx.HTTPError: On network or HTTP errors
        UpstreamUnavailableError: On a provider error status or when no route exists
        MalformedResponseError: If the route cannot be read
    """
    query = {
        "origin": params.origin,
        "destination": params.destination,
        "mode": params.mode,
        "key": api_key,
    }
    if params.waypoints:
        query["waypoints"] = "|".join(params.waypoints)

    async with http_client(client) as http:
        response = await http.get(base_url, params=query)
        response.raise_for_status()

        with parsing("maps.directions"):
            body = response.json()
            if not _check_status("maps.directions", body):
                raise UpstreamUnavailableError("maps.directions: no route found")
            best = body["routes"][0]
            legs = [
                RouteLeg(
                    start=leg["start_address"],
                    end=leg["end_address"],
                    distance_meters=leg["distance"]["value"],
                    duration_seconds=leg["duration"]["value"],
                )
                for leg in best["legs"]
            ]
            plan = RoutePlan(
                mode=params.mode,
                distance_meters=sum(leg.distance_meters for leg in legs),
                duration_seconds=sum(leg.duration_seconds for leg in legs),
                legs=legs,
                polyline=(best.get("overview_polyline") or {}).get("points"),
            )

    return Sourced(value=plan, provenance=provenance_for_http("maps.directions", base_url))
