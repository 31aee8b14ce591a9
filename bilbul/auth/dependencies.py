"""
Bearer token dependencies for Bilbul routes.

Supabase Auth issues ES256-signed JWTs; they are checked against the
project's published JWKS (P-256 public keys).

- get_authenticated_user(): the route needs a signed-in user (401 otherwise)
- get_optional_user(): split routes, where anonymous callers are allowed.
  No Authorization header means anonymous; a header that is present but
  does not verify is still a 401.
"""

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional

from fastapi import Header, HTTPException, status
from jwt import PyJWKClient, decode
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError, PyJWKClientError

from bilbul.config import settings

logger = logging.getLogger(__name__)

# Built on first use; PyJWKClient keeps fetched keys cached across requests
_jwks_client: Optional[PyJWKClient] = None


@dataclass
class AuthenticatedUser:
    """
    Identity proven by a verified access token.

    Attributes:
        user_id: Supabase user UUID (`sub` claim)
        access_token: The raw JWT, needed to act as the user against Supabase
        email: The `email` claim, when the token carries one
    """
    user_id: str
    access_token: str
    email: Optional[str] = None


def get_jwks_client() -> PyJWKClient:
    """
    Return the process-wide JWKS client, creating it on first call.

    Raises:
        ValueError: If SUPABASE_URL is empty (no JWKS endpoint to query)
    """
    global _jwks_client

    if _jwks_client is None:
        jwks_url = settings.SUPABASE_JWKS_URL
        if not jwks_url:
            raise ValueError("SUPABASE_URL must be set to verify access tokens.")

        logger.info(f"Creating JWKS client for {jwks_url}")
        _jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,  # default TTL is 300 seconds
            max_cached_keys=16,
        )

    return _jwks_client


def _unauthorized(error: str, details: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": error, "details": details},
    )


def _parse_bearer(authorization: str) -> str:
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        logger.warning("Malformed Authorization header")
        raise _unauthorized("unauthorized", "Invalid Authorization header format")
    return token


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Check signature, expiry, audience and issuer of a Supabase access token.

    Returns:
        The token claims.

    Raises:
        HTTPException: 401 with error token_expired, jwks_error, invalid_token
            or unauthorized
    """
    # Supabase puts the /auth/v1 path in the issuer claim
    expected_issuer = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1"

    try:
        key = get_jwks_client().get_signing_key_from_jwt(token).key
        return decode(
            token,
            key,
            algorithms=["ES256"],
            audience="authenticated",
            issuer=expected_issuer,
            options={"require": ["exp", "sub"]},
        )

    except ExpiredSignatureError:
        logger.warning("Rejected expired access token")
        raise _unauthorized("token_expired", "Authentication token has expired")

    except PyJWKClientError as e:
        logger.error(f"Could not load signing key: {e}")
        raise _unauthorized("jwks_error", "Unable to verify token signature")

    except InvalidTokenError as e:
        logger.warning(f"Rejected access token: {e}")
        raise _unauthorized("invalid_token", "Invalid authentication token")

    except Exception as e:
        logger.error(f"Token verification failed: {e}", exc_info=True)
        raise _unauthorized("unauthorized", "Token verification failed")


def _user_from_token(token: str) -> AuthenticatedUser:
    claims = decode_access_token(token)

    subject = claims.get("sub")
    if not subject:
        logger.error("Verified token has an empty 'sub' claim")
        raise _unauthorized("unauthorized", "Invalid token: missing user ID")

    logger.info(f"Authenticated request for user_id={subject}")
    email = claims.get("email")
    return AuthenticatedUser(
        user_id=str(subject),
        access_token=token,
        email=str(email) if email is not None else None,
    )


async def get_authenticated_user(
    authorization: Annotated[Optional[str], Header()] = None
) -> AuthenticatedUser:
    """
    Require a valid Bearer token.

    Raises:
        HTTPException: 401 when the header is missing or the token does not verify

    Usage:
        @router.get("/auth/me")
        async def me(auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]):
            ...
    """
    if not authorization:
        logger.warning("Request without Authorization header on a protected route")
        raise _unauthorized("unauthorized", "Missing Authorization header")

    return _user_from_token(_parse_bearer(authorization))


async def get_optional_user(
    authorization: Annotated[Optional[str], Header()] = None
) -> Optional[AuthenticatedUser]:
    """Like get_authenticated_user(), but returns None for anonymous callers."""
    if not authorization:
        return None

    return _user_from_token(_parse_bearer(authorization))
