"""Safety adapter using Crimeometer incident data."""

from datetime import UTC, datetime, timedelta

import httpx

from travelhelper.app.adapters.fixtures import parse_coordinates
from travelhelper.app.adapters.http import http_client, parsing
from travelhelper.app.adapters.provenance import Sourced, provenance_for_http
from travelhelper.app.errors import UpstreamUnavailableError
from travelhelper.app.models.providers import SafetyAlert, SafetyParams, SafetyReport

CRIMEOMETER_URL = "https://api.crimeometer.com/v1/incidents/raw-data"

LOOKBACK_DAYS = 30
MAX_ALERTS = 5

RECOMMENDATIONS = [
    "Avoid walking alone at night",
    "Keep valuables secure",
    "Stay in well-lit areas",
    "Use official transportation",
]


def safety_level_for(incident_count: int) -> int:
    """Map a 30-day incident count onto a 1-10 safety level (10 = safest)."""
    if incident_count <= 0:
        return 9
    return max(1, 9 - incident_count // 25)


async def fetch_safety(
    params: SafetyParams,
    api_key: str,
    base_url: str = CRIMEOMETER_URL,
    client: httpx.AsyncClient | None = None,
    now: datetime | None = None,
) -> Sourced[SafetyReport]:
    """Fetch recent incidents around a location and summarize them.

    Args:
        params: Location text and optional coordinates
        api_key: Crimeometer API key
        base_url: Incidents endpoint
        client: Optional httpx client (for testing with mocks)
        now: Reference time for the lookback window (default: now UTC)

    Returns:
        Sourced SafetyReport

    Raises:
        UpstreamUnavailableError: If the location cannot be resolved to coordinates
        httpx.HTTPError: On network or HTTP errors
        MalformedResponseError: If the incidents cannot be read
    """
    if params.latitude is not None and params.longitude is not None:
        coords = (params.latitude, params.longitude)
    else:
        coords = parse_coordinates(params.location)
    if coords is None:
        raise UpstreamUnavailableError(f"safety: no coordinates for {params.location!r}")

    end = now or datetime.now(UTC)
    query = {
        "lat": coords[0],
        "lon": coords[1],
        "distance": "10mi",
        "datetime_ini": (end - timedelta(days=LOOKBACK_DAYS)).isoformat(),
        "datetime_end": end.isoformat(),
    }

    async with http_client(client) as http:
        response = await http.get(base_url, params=query, headers={"x-api-key": api_key})
        response.raise_for_status()

        with parsing("safety.crimeometer"):
            body = response.json()
            incidents = body.get("incidents") or []
            total = int(body.get("total_incidents", len(incidents)))
            report = SafetyReport(
                safety_level=safety_level_for(total),
                alerts=[
                    SafetyAlert(
                        type=incident["incident_type"],
                        severity="medium",
                        location=incident.get("incident_address") or "",
                        description=incident.get("incident_description") or "",
                        timestamp=incident.get("incident_datetime"),
                    )
                    for incident in incidents[:MAX_ALERTS]
                ],
                recommendations=list(RECOMMENDATIONS),
            )

    return Sourced(
        value=report,
        provenance=provenance_for_http("safety.crimeometer", str(response.request.url)),
    )
