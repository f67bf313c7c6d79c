"""Bearer token handling for authenticated principals.

Tokens are issued by the identity service. This module decodes them into
a ``Principal`` (a provider or requester id). ``create_access_token``
exists for operators and tests that need to mint a token locally.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal

from jose import JWTError, jwt

from medislot.core.config import settings

ActorType = Literal["provider", "requester"]
ACTOR_TYPES = ("provider", "requester")


@dataclass(frozen=True)
class Principal:
    """Authenticated caller resolved from a bearer token."""

    id: str
    actor_type: ActorType

    @property
    def is_provider(self) -> bool:
        return self.actor_type == "provider"

    @property
    def is_requester(self) -> bool:
        return self.actor_type == "requester"


def create_access_token(
    subject: str,
    actor_type: ActorType,
    expires_delta: timedelta | None = None,
    additional_claims: dict | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        subject: Provider or requester id
        actor_type: Role of the subject
        expires_delta: Optional custom expiration time
        additional_claims: Optional additional claims to include

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": subject,
        "actor_type": actor_type,
        "type": "access",
        "exp": now + expires_delta,
        "iat": now,
    }

    if additional_claims:
        to_encode.update(additional_claims)

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict | None:
    """Decode and validate a JWT access token.

    Args:
        token: The JWT token string

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


def resolve_principal(token: str) -> Principal | None:
    """Map a bearer token to a principal, or None if it is unusable."""
    payload = decode_access_token(token)
    if not payload:
        return None

    subject = payload.get("sub")
    actor_type = payload.get("actor_type")
    if not subject or actor_type not in ACTOR_TYPES:
        return None

    return Principal(id=str(subject), actor_type=actor_type)
