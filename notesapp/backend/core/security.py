"""
Security Utilities.

Verification of bearer tokens issued by the external identity provider.
The provider owns login, logout and password flows; this module only turns
a presented token into a SessionUser (subject id, email, display name).

Symmetric algorithms (HS256/384/512) are verified with IDENTITY_JWT_SECRET
from config/.env. Asymmetric algorithms (RS256, ...) are verified against the
provider's JWKS document, fetched with httpx and cached for
security.yaml identity.jwks_cache_seconds.
"""

import time
from dataclasses import dataclass
from typing import Any

import httpx
from jose import JWTError, jwt

from notesapp.backend.core.concurrency import get_semaphore
from notesapp.backend.core.config import get_app_config, get_settings
from notesapp.backend.core.exceptions import AuthenticationError, ExternalServiceError
from notesapp.backend.core.logging import get_logger

logger = get_logger(__name__)

_jwks_cache: dict[str, Any] | None = None
_jwks_fetched_at: float = 0.0


@dataclass(frozen=True)
class SessionUser:
    """The acting user as asserted by the identity provider."""

    sub: str
    email: str | None = None
    name: str | None = None


async def fetch_jwks(force: bool = False) -> dict[str, Any]:
    """
    Return the provider's JWKS document, using the cache while it is fresh.

    A stale cached document is served when the refresh fails.

    Raises:
        ExternalServiceError: If no JWKS URL is configured or the first fetch fails
    """
    global _jwks_cache, _jwks_fetched_at

    identity = get_app_config().security.identity
    if not identity.jwks_url:
        raise ExternalServiceError("Identity provider JWKS URL is not configured")

    now = time.monotonic()
    if (
        not force
        and _jwks_cache is not None
        and now - _jwks_fetched_at < identity.jwks_cache_seconds
    ):
        return _jwks_cache

    try:
        async with get_semaphore("identity"):
            async with httpx.AsyncClient(timeout=10.0) as client:
                response = await client.get(identity.jwks_url)
                response.raise_for_status()
                document = response.json()
    except (httpx.HTTPError, ValueError) as e:
        if _jwks_cache is not None:
            logger.warning(
                "JWKS refresh failed, serving cached key set",
                extra={"error": str(e)},
            )
            return _jwks_cache
        logger.error("JWKS fetch failed", extra={"url": identity.jwks_url, "error": str(e)})
        raise ExternalServiceError("Could not load identity provider keys") from e

    _jwks_cache = document
    _jwks_fetched_at = now
    logger.info("JWKS cached", extra={"key_count": len(document.get("keys", []))})
    return document


def clear_jwks_cache() -> None:
    """Forget the cached key set."""
    global _jwks_cache, _jwks_fetched_at
    _jwks_cache = None
    _jwks_fetched_at = 0.0


async def _resolve_key(algorithm: str, kid: str | None) -> Any:
    if algorithm.startswith("HS"):
        secret = get_settings().identity_jwt_secret
        if not secret:
            raise AuthenticationError("Invalid or expired token")
        return secret

    jwks = await fetch_jwks()
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key

    # Key rotation: the provider may have published a key we have not seen yet
    jwks = await fetch_jwks(force=True)
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return key

    logger.warning("No matching signing key", extra={"kid": kid})
    raise AuthenticationError("Invalid or expired token")


async def decode_identity_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a bearer token from the identity provider.

    Args:
        token: JWT token string

    Returns:
        Decoded token claims

    Raises:
        AuthenticationError: If the token is malformed, signed with an
            unexpected algorithm or key, expired, or issued for another
            audience or issuer
    """
    identity = get_app_config().security.identity

    try:
        header = jwt.get_unverified_header(token)
    except JWTError as e:
        logger.warning("Token header unreadable", extra={"error": str(e)})
        raise AuthenticationError("Invalid or expired token") from e

    algorithm = header.get("alg")
    if algorithm not in identity.algorithms:
        logger.warning("Token algorithm rejected", extra={"alg": algorithm})
        raise AuthenticationError("Invalid or expired token")

    key = await _resolve_key(algorithm, header.get("kid"))

    try:
        return jwt.decode(
            token,
            key,
            algorithms=[algorithm],
            audience=identity.audience,
            issuer=identity.issuer,
            options={"verify_aud": identity.audience is not None},
        )
    except JWTError as e:
        logger.warning("Token decode failed", extra={"error": str(e)})
        raise AuthenticationError("Invalid or expired token") from e


def session_from_claims(claims: dict[str, Any]) -> SessionUser:
    """
    Build the SessionUser from verified token claims.

    Raises:
        AuthenticationError: If the token carries no subject
    """
    sub = claims.get("sub")
    if not sub:
        raise AuthenticationError("Invalid or expired token")
    return SessionUser(
        sub=str(sub),
        email=claims.get("email") or None,
        name=claims.get("name") or None,
    )
