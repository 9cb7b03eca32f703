"""Test doubles and builders shared across test suites."""

from typing import Any

from travelhelper.app.config import Settings

CREDENTIAL_FIELDS = (
    "gemini_api_key",
    "openai_api_key",
    "amadeus_api_key",
    "amadeus_api_secret",
    "foursquare_api_key",
    "tripadvisor_api_key",
    "openweather_api_key",
    "crimeometer_api_key",
    "google_maps_api_key",
    "stripe_secret_key",
)


def make_settings(**overrides: Any) -> Settings:
    """Settings with every provider credential unset unless overridden."""
    values: dict[str, Any] = {name: None for name in CREDENTIAL_FIELDS}
    values["store_backend"] = "memory"
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


class StubTextGenerator:
    """Scripted generative provider.

    Each call takes the next scripted response, repeating the last one once
    the script runs out. An exception instance is raised instead of returned.
    """

    def __init__(self, *responses: str | Exception, model: str = "stub-model") -> None:
        self.model = model
        self._responses = list(responses) or [""]
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if isinstance(response, Exception):
            raise response
        return response
