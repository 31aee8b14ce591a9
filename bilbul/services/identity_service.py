"""
Identity service backed by Supabase Auth.

Wraps the Supabase Auth calls the app needs: email/password sign-in and
sign-up, OAuth start, and sign-out. The split workflow itself only consumes
the verified user id (see bilbul/auth/dependencies.py).

Credential problems reported by Supabase (4xx) are raised as ValueError so
routes can answer 400/401; anything else propagates unchanged.
"""

import logging
from typing import Any, Dict, NoReturn, Optional

from supabase import Client

logger = logging.getLogger(__name__)

SUPPORTED_OAUTH_PROVIDERS = ("google",)


def _raise_for_auth_error(action: str, error: Exception) -> NoReturn:
    # supabase-auth API errors carry the HTTP status of the Auth server
    status_code = getattr(error, "status", None)
    if isinstance(status_code, int) and 400 <= status_code < 500:
        logger.warning(f"{action} rejected by Supabase Auth: status={status_code}")
        raise ValueError(getattr(error, "message", None) or str(error)) from error
    logger.error(f"{action} failed: {error}", exc_info=True)
    raise error


def _session_payload(response: Any) -> Dict[str, Any]:
    user = response.user
    session = response.session
    return {
        "user_id": str(user.id) if user is not None else None,
        "email": getattr(user, "email", None),
        "access_token": session.access_token if session is not None else None,
        "refresh_token": session.refresh_token if session is not None else None,
        "expires_in": session.expires_in if session is not None else None,
    }


async def sign_in_with_password(
    supabase_client: Client,
    email: str,
    password: str,
) -> Dict[str, Any]:
    """
    Sign in with email and password.

    Returns:
        Dict with user_id, email, access_token, refresh_token, expires_in

    Raises:
        ValueError: If Supabase rejects the credentials
    """
    logger.info("Email/password sign-in requested")
    try:
        response = supabase_client.auth.sign_in_with_password(
            {"email": email, "password": password}
        )
    except Exception as e:
        _raise_for_auth_error("Sign-in", e)

    if response.session is None:
        raise ValueError("Invalid email or password")

    payload = _session_payload(response)
    logger.info(f"Sign-in succeeded for user_id={payload['user_id']}")
    return payload


async def sign_up(
    supabase_client: Client,
    email: str,
    password: str,
) -> Dict[str, Any]:
    """
    Create a new account.

    When the project requires email confirmation Supabase returns no session;
    `confirmation_required` tells the frontend to ask the user to check their inbox.
    """
    logger.info("Sign-up requested")
    try:
        response = supabase_client.auth.sign_up({"email": email, "password": password})
    except Exception as e:
        _raise_for_auth_error("Sign-up", e)

    if response.user is None:
        raise ValueError("Failed to create user")

    payload = _session_payload(response)
    payload["confirmation_required"] = response.session is None
    logger.info(f"Sign-up succeeded for user_id={payload['user_id']}")
    return payload


async def get_oauth_url(
    supabase_client: Client,
    provider: str,
    redirect_to: Optional[str],
) -> str:
    """
    Build the provider authorization URL for an OAuth sign-in.

    Raises:
        ValueError: If the provider is not supported
    """
    if provider not in SUPPORTED_OAUTH_PROVIDERS:
        raise ValueError(f"Unsupported OAuth provider: {provider}")

    options: Dict[str, Any] = {}
    if redirect_to:
        options["redirect_to"] = redirect_to

    try:
        response = supabase_client.auth.sign_in_with_oauth(
            {"provider": provider, "options": options}  # type: ignore[typeddict-item]
        )
    except Exception as e:
        _raise_for_auth_error("OAuth start", e)

    logger.info(f"OAuth sign-in started with provider={provider}")
    return response.url


async def sign_out(supabase_client: Client) -> None:
    """Revoke the session the client was created with."""
    try:
        supabase_client.auth.sign_out()
    except Exception as e:
        _raise_for_auth_error("Sign-out", e)
    logger.info("Sign-out completed")
