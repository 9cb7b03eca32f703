"""Logging setup and structured logging for provider calls."""

import logging
from typing import Any

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class StructuredProviderLogger:
    """Structured logger for provider calls."""

    def log_call(
        self,
        kind: str,
        outcome: str,
        latency_ms: float,
        error_reason: str | None = None,
    ) -> None:
        """Log a provider call with structured data."""
        log_data: dict[str, Any] = {
            "kind": kind,
            "outcome": outcome,
            "latency_ms": round(latency_ms, 2),
        }

        if error_reason:
            log_data["error_reason"] = error_reason

        log_msg = f"Provider call: {kind} - {outcome}"

        if outcome == "success":
            logger.info(log_msg, extra={"structured": log_data})
        elif outcome == "credentials_missing":
            logger.debug(log_msg, extra={"structured": log_data})
        else:
            logger.warning(log_msg, extra={"structured": log_data})

    def log_fallback(self, kind: str, reason: str) -> None:
        """Log that a fallback payload was served."""
        logger.info(
            f"Serving fallback payload for {kind} ({reason})",
            extra={"structured": {"kind": kind, "fallback_reason": reason}},
        )
