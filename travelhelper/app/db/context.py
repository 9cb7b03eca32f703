"""Request context for ownership enforcement."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller.

    Every Session Store operation scopes reads and writes to ``user_id``.
    """

    user_id: UUID
