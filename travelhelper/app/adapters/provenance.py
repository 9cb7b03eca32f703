"""Provenance helpers for provider adapters."""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, TypeVar

from travelhelper.app.models.common import Provenance

T = TypeVar("T")


@dataclass
class Sourced(Generic[T]):
    """Adapter output with provenance metadata attached."""

    value: T
    provenance: Provenance


def provenance_for_fixture(source: str, ref_id: str | None = None) -> Provenance:
    """Create provenance for fallback payloads built from fixtures.

    Args:
        source: Source identifier (e.g., "fallback.flights")
        ref_id: Optional reference ID (e.g., "NYC_ROM")

    Returns:
        Provenance with source=provider-specific string, fetched_at=now(UTC)
    """
    return Provenance(
        source=f"provider.{source}",
        ref_id=f"{source}/{ref_id}" if ref_id else source,
        source_url=f"fixtures://{source}/{ref_id}" if ref_id else f"fixtures://{source}",
        fetched_at=datetime.now(UTC),
    )


def provenance_for_http(source: str, url: str) -> Provenance:
    """Create provenance for HTTP-based provider results.

    Args:
        source: Source identifier (e.g., "weather.openweather")
        url: URL of the HTTP request, without credentials

    Returns:
        Provenance with source=provider-specific string, fetched_at=now(UTC)
    """
    return Provenance(
        source=f"provider.{source}",
        ref_id=source,
        source_url=url,
        fetched_at=datetime.now(UTC),
    )
