"""Shared HTTP plumbing for provider adapters."""

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager

import httpx

from travelhelper.app.errors import MalformedResponseError

DEFAULT_TIMEOUT_SEC = 4.0


@asynccontextmanager
async def http_client(
    client: httpx.AsyncClient | None, timeout: float = DEFAULT_TIMEOUT_SEC
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the given client, or a short-lived one that is closed afterwards."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout) as owned:
        yield owned


@contextmanager
def parsing(source: str) -> Iterator[None]:
    """Translate shape errors while reading a provider payload into MalformedResponseError."""
    try:
        yield
    except (KeyError, IndexError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"{source}: unexpected response shape ({e})") from e
