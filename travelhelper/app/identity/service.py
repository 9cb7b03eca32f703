"""Identity service - email/password accounts and opaque bearer tokens.

Passwords are stored as salted PBKDF2-SHA256 hashes. Tokens are random
URL-safe strings handed to the client once; only their sha256 digest is kept.
"""

import hashlib
import hmac
import logging
import secrets
from datetime import UTC, datetime
from typing import Any

from travelhelper.app.db.context import RequestContext
from travelhelper.app.db.repositories import ProfileRepository, require_context
from travelhelper.app.errors import AuthenticationError, NotAuthenticatedError, NotFoundError
from travelhelper.app.models.user import Profile

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 260_000
MIN_PASSWORD_LENGTH = 8


def hash_password(password: str, *, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


class IdentityService:
    """Sign-up, sign-in and token resolution over a ProfileRepository."""

    def __init__(
        self, profiles: ProfileRepository, *, iterations: int = PBKDF2_ITERATIONS
    ) -> None:
        """Initialize service.

        Args:
            profiles: Profile and token storage
            iterations: PBKDF2 work factor (tests lower it)
        """
        self._profiles = profiles
        self._iterations = iterations

    async def sign_up(self, email: str, password: str, name: str = "") -> tuple[Profile, str]:
        """Create an account and issue its first token.

        Raises:
            AuthenticationError: Invalid email, short password, or email taken
        """
        email = email.strip().lower()
        if "@" not in email:
            raise AuthenticationError("A valid email address is required")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthenticationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )

        profile = await self._profiles.create_profile(
            email, hash_password(password, iterations=self._iterations), name.strip()
        )
        logger.info("Profile created", extra={"structured": {"user_id": str(profile.id)}})
        return profile, await self._issue_token(profile)

    async def sign_in(self, email: str, password: str) -> tuple[Profile, str]:
        """Verify credentials and issue a new token.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        record = await self._profiles.get_by_email(email.strip().lower())
        if record is None or not verify_password(password, record.password_hash):
            raise AuthenticationError("Invalid email or password")
        return record.profile, await self._issue_token(record.profile)

    async def sign_out(self, token: str) -> None:
        await self._profiles.revoke_token(hash_token(token))

    async def resolve(self, token: str) -> RequestContext:
        """Resolve a bearer token to the caller's context.

        Raises:
            NotAuthenticatedError: Unknown or revoked token
        """
        user_id = await self._profiles.resolve_token(hash_token(token))
        if user_id is None:
            raise NotAuthenticatedError("Invalid or revoked token")
        return RequestContext(user_id=user_id)

    async def current_user(self, ctx: RequestContext | None) -> Profile:
        ctx = require_context(ctx)
        profile = await self._profiles.get_profile(ctx.user_id)
        if profile is None:
            raise NotFoundError(f"Profile {ctx.user_id} not found")
        return profile

    async def update_profile(self, changes: dict[str, Any], ctx: RequestContext | None) -> Profile:
        ctx = require_context(ctx)
        return await self._profiles.update_profile(ctx.user_id, changes)

    async def _issue_token(self, profile: Profile) -> str:
        token = secrets.token_urlsafe(32)
        await self._profiles.store_token(hash_token(token), profile.id, datetime.now(UTC))
        return token
