"""Domain exception taxonomy shared by the gateway, store, and orchestration layers."""


class ProviderError(Exception):
    """Base class for failures talking to an external provider."""

    reason = "upstream_unavailable"


class CredentialsMissingError(ProviderError):
    """The provider is not configured (no API key or secret)."""

    reason = "credentials_missing"


class UpstreamUnavailableError(ProviderError):
    """Network failure, timeout, non-2xx response, or open circuit breaker."""

    reason = "upstream_unavailable"


class MalformedResponseError(ProviderError):
    """The provider answered but the payload did not match the expected shape."""

    reason = "malformed_response"


class ActionFailedError(Exception):
    """A payment action (checkout, billing portal) could not be completed."""


class NotAuthenticatedError(Exception):
    """No owning user could be resolved for the operation."""


class NotFoundError(Exception):
    """A referenced trip, session, or profile does not exist for the caller."""


class AuthenticationError(Exception):
    """Sign-up or sign-in was rejected."""


class GenerationFailedError(Exception):
    """Generated itinerary text could not be turned into day plans."""


class GenerationInProgressError(Exception):
    """An itinerary regeneration is already running for this trip."""

    def __init__(self, trip_id: object) -> None:
        super().__init__(f"Itinerary generation already in progress for trip {trip_id}")
        self.trip_id = trip_id


class TripNotReadyError(Exception):
    """The trip lacks the fields needed to generate an itinerary."""


class TurnInProgressError(Exception):
    """The chat session is still awaiting the assistant reply to a previous turn."""

    def __init__(self, session_id: object) -> None:
        super().__init__(f"Chat session {session_id} is still awaiting a reply")
        self.session_id = session_id
