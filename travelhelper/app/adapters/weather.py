"""Weather adapter using the OpenWeatherMap 5-day forecast API."""

import httpx

from travelhelper.app.adapters.http import http_client, parsing
from travelhelper.app.adapters.provenance import Sourced, provenance_for_http
from travelhelper.app.models.providers import (
    ForecastEntry,
    WeatherParams,
    WeatherReport,
    WeatherSnapshot,
)

OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/forecast"

# The forecast is reported in 3-hour steps; the digest only needs the first few.
FORECAST_ENTRIES = 5


async def fetch_weather(
    params: WeatherParams,
    api_key: str,
    base_url: str = OPENWEATHER_URL,
    client: httpx.AsyncClient | None = None,
) -> Sourced[WeatherReport]:
    """Fetch current conditions and a short forecast for a location.

    Args:
        params: Free-text location (city name)
        api_key: OpenWeatherMap app id
        base_url: Forecast endpoint
        client: Optional httpx client (for testing with mocks)

    Returns:
        Sourced WeatherReport (metric units)

    Raises:
        httpx.HTTPError: On network or HTTP errors
        MalformedResponseError: If the forecast cannot be read
    """
    query = {"q": params.location, "appid": api_key, "units": "metric"}

    async with http_client(client) as http:
        response = await http.get(base_url, params=query)
        response.raise_for_status()

        # Response structure: {list: [{dt_txt, main: {temp, humidity}, weather: [...], ...}]}
        with parsing("weather.openweather"):
            entries = response.json()["list"]
            first = entries[0]
            report = WeatherReport(
                current=WeatherSnapshot(
                    temperature_c=first["main"]["temp"],
                    condition=first["weather"][0]["description"],
                    humidity=first["main"]["humidity"],
                    wind_speed=first["wind"]["speed"],
                ),
                forecast=[
                    ForecastEntry(
                        date=item["dt_txt"],
                        temperature_c=item["main"]["temp"],
                        condition=item["weather"][0]["description"],
                        precipitation=(item.get("rain") or {}).get("3h", 0),
                    )
                    for item in entries[:FORECAST_ENTRIES]
                ],
            )

    return Sourced(
        value=report,
        provenance=provenance_for_http("weather.openweather", base_url),
    )
