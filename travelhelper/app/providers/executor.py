"""Async provider call executor with hard timeout, circuit breaker, metrics and logging.

Each call:
- runs under a hard timeout
- is rejected up front while the provider's circuit breaker is open
- records latency/outcome metrics and a structured log line
- is never retried; a failed call surfaces as a ProviderError subclass

Missing credentials are a configuration state rather than an upstream fault,
so they do not count towards the breaker.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TypeVar

import httpx

from travelhelper.app.errors import (
    CredentialsMissingError,
    MalformedResponseError,
    ProviderError,
    UpstreamUnavailableError,
)

T = TypeVar("T")


@dataclass(frozen=True)
class CallConfig:
    """Configuration for one provider call."""

    hard_timeout_ms: int
    breaker_failure_threshold: int = 5
    breaker_window_seconds: int = 60
    breaker_half_open_seconds: int = 30


class BreakerState(str, Enum):
    """Circuit breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Per-provider circuit breaker.

    Tracks failures within a time window and opens after threshold.
    """

    name: str
    failure_threshold: int
    window_seconds: int
    half_open_seconds: int
    state: BreakerState = BreakerState.CLOSED
    failure_times: list[datetime] = field(default_factory=list)
    opened_at: datetime | None = None

    def record_success(self) -> None:
        """Record successful execution."""
        if self.state == BreakerState.HALF_OPEN:
            # Success in half-open -> reset to closed
            self.state = BreakerState.CLOSED
            self.failure_times.clear()
            self.opened_at = None

    def record_failure(self, now: datetime) -> None:
        """Record failed execution."""
        cutoff = now - timedelta(seconds=self.window_seconds)
        self.failure_times = [t for t in self.failure_times if t > cutoff]
        self.failure_times.append(now)

        # A failed probe while half-open re-opens immediately
        if self.state == BreakerState.HALF_OPEN or len(self.failure_times) >= self.failure_threshold:
            self.state = BreakerState.OPEN
            self.opened_at = now

    def check_and_update_state(self, now: datetime) -> BreakerState:
        """Check if breaker should transition states."""
        if self.state == BreakerState.OPEN:
            if self.opened_at and (now - self.opened_at).total_seconds() >= self.half_open_seconds:
                self.state = BreakerState.HALF_OPEN

        return self.state

    def is_open(self, now: datetime) -> bool:
        """Check if breaker is currently open (rejecting calls)."""
        return self.check_and_update_state(now) == BreakerState.OPEN


class BreakerRegistry:
    """Registry of per-provider circuit breakers with shared state."""

    def __init__(self) -> None:
        self._by_name: dict[str, CircuitBreaker] = {}

    def get_or_create(
        self,
        name: str,
        failure_threshold: int,
        window_seconds: int,
        half_open_seconds: int,
    ) -> CircuitBreaker:
        """Get existing breaker for a provider or create one with the given config."""
        if name not in self._by_name:
            self._by_name[name] = CircuitBreaker(
                name=name,
                failure_threshold=failure_threshold,
                window_seconds=window_seconds,
                half_open_seconds=half_open_seconds,
            )
        return self._by_name[name]

    def states(self, now: datetime) -> dict[str, BreakerState]:
        """Current state of every known breaker."""
        return {name: b.check_and_update_state(now) for name, b in self._by_name.items()}

    def clear(self) -> None:
        """Clear all breakers (useful for testing)."""
        self._by_name.clear()


# Global registry instance for shared breaker state
_global_breaker_registry = BreakerRegistry()


def get_breaker_registry() -> BreakerRegistry:
    """Get the global breaker registry instance."""
    return _global_breaker_registry


class ProviderMetrics:
    """Interface for provider call metrics (no-op by default)."""

    def record_latency(self, kind: str, outcome: str, latency_ms: float) -> None:
        pass

    def inc_error(self, kind: str, reason: str) -> None:
        pass


class ProviderLogger:
    """Interface for structured provider call logging (no-op by default)."""

    def log_call(
        self,
        kind: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        pass


class ProviderExecutor:
    """Runs provider calls through the timeout / breaker / observability pipeline."""

    def __init__(
        self,
        metrics: ProviderMetrics | None = None,
        logger: ProviderLogger | None = None,
        registry: BreakerRegistry | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            metrics: Metrics recorder (optional, defaults to no-op)
            logger: Structured logger (optional, defaults to no-op)
            registry: Breaker registry (optional, defaults to the global registry)
            clock: Injectable wall clock for breaker windows (default: datetime.now)
        """
        self._metrics = metrics or ProviderMetrics()
        self._logger = logger or ProviderLogger()
        self._registry = registry or get_breaker_registry()
        self._clock = clock or datetime.now

    async def execute(
        self,
        kind: str,
        config: CallConfig,
        fn: Callable[[], Awaitable[T]],
    ) -> T:
        """Execute one provider call.

        Args:
            kind: Provider kind, used for breaker, metrics and log labels
            config: Timeout and breaker configuration
            fn: Zero-argument coroutine factory performing the call

        Returns:
            Whatever ``fn`` returns

        Raises:
            CredentialsMissingError: Provider is not configured
            UpstreamUnavailableError: Breaker open, timeout, network/HTTP error,
                or any unexpected failure
            MalformedResponseError: Provider answered with an unreadable payload
        """
        breaker = self._registry.get_or_create(
            name=kind,
            failure_threshold=config.breaker_failure_threshold,
            window_seconds=config.breaker_window_seconds,
            half_open_seconds=config.breaker_half_open_seconds,
        )

        start = time.monotonic()
        if breaker.is_open(self._clock()):
            self._finish(kind, "breaker_open", start, "breaker_open")
            raise UpstreamUnavailableError(f"Circuit breaker open for {kind}")

        try:
            result = await asyncio.wait_for(fn(), timeout=config.hard_timeout_ms / 1000)
        except CredentialsMissingError as e:
            self._finish(kind, "credentials_missing", start, e.reason)
            raise
        except TimeoutError as e:
            breaker.record_failure(self._clock())
            self._finish(kind, "timeout", start, "timeout")
            raise UpstreamUnavailableError(f"{kind} timed out") from e
        except MalformedResponseError as e:
            breaker.record_failure(self._clock())
            self._finish(kind, "malformed", start, e.reason)
            raise
        except ProviderError as e:
            breaker.record_failure(self._clock())
            self._finish(kind, "error", start, e.reason)
            raise
        except httpx.HTTPError as e:
            breaker.record_failure(self._clock())
            self._finish(kind, "error", start, type(e).__name__)
            raise UpstreamUnavailableError(f"{kind} request failed: {e}") from e
        except Exception as e:
            breaker.record_failure(self._clock())
            self._finish(kind, "error", start, type(e).__name__)
            raise UpstreamUnavailableError(f"{kind} failed: {type(e).__name__}") from e

        breaker.record_success()
        self._finish(kind, "success", start)
        return result

    def _finish(
        self, kind: str, outcome: str, start: float, error_reason: str | None = None
    ) -> None:
        elapsed_ms = (time.monotonic() - start) * 1000
        self._metrics.record_latency(kind, outcome, elapsed_ms)
        if error_reason is not None:
            self._metrics.inc_error(kind, error_reason)
        self._logger.log_call(kind, outcome, elapsed_ms, error_reason=error_reason)
