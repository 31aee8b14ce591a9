"""
Auth API endpoints.

Bilbul lets a client finish one split anonymously; after that it must sign
in. These endpoints front Supabase Auth:
- POST /auth/signin - email/password sign-in
- POST /auth/signup - create an account
- GET /auth/oauth/{provider} - provider URL for an OAuth sign-in (Google)
- POST /auth/signout - revoke the current session (Bearer token required)
- GET /auth/me - identity behind the Bearer token
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from bilbul.auth.dependencies import AuthenticatedUser, get_authenticated_user
from bilbul.config import settings
from bilbul.db.client import get_anon_supabase_client, get_supabase_client
from bilbul.schemas.auth import (
    AuthMeResponse,
    AuthSessionResponse,
    OAuthStartResponse,
    SignInRequest,
    SignOutResponse,
    SignUpRequest,
    SignUpResponse,
)
from bilbul.services import get_oauth_url, sign_in_with_password, sign_out, sign_up

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _auth_service_error(action: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "auth_service_error",
            "details": f"Failed to {action}"
        }
    )


@router.post(
    "/signin",
    response_model=AuthSessionResponse,
    summary="Sign in with email and password"
)
async def signin(body: SignInRequest) -> AuthSessionResponse:
    supabase_client = get_anon_supabase_client()

    try:
        payload = await sign_in_with_password(supabase_client, body.email, body.password)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "invalid_credentials", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Sign-in error: {e}", exc_info=True)
        raise _auth_service_error("sign in")

    return AuthSessionResponse(**payload)


@router.post(
    "/signup",
    response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
    description="If email confirmation is enabled no tokens are returned; sign in after confirming."
)
async def signup(body: SignUpRequest) -> SignUpResponse:
    supabase_client = get_anon_supabase_client()

    try:
        payload = await sign_up(supabase_client, body.email, body.password)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "signup_failed", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Sign-up error: {e}", exc_info=True)
        raise _auth_service_error("create account")

    return SignUpResponse(**payload)


@router.get(
    "/oauth/{provider}",
    response_model=OAuthStartResponse,
    summary="Start an OAuth sign-in",
    description="""
    Returns the provider authorization URL. The frontend redirects the browser
    there; after consent Supabase sends it to `redirect_to` with the session
    tokens in the URL fragment.
    """
)
async def start_oauth(
    provider: str,
    redirect_to: Optional[str] = Query(None, description="Override for OAUTH_REDIRECT_URL"),
) -> OAuthStartResponse:
    supabase_client = get_anon_supabase_client()

    try:
        url = await get_oauth_url(
            supabase_client,
            provider,
            redirect_to or settings.OAUTH_REDIRECT_URL,
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "unsupported_provider", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"OAuth start error: {e}", exc_info=True)
        raise _auth_service_error("start OAuth sign-in")

    return OAuthStartResponse(provider=provider, url=url)


@router.post(
    "/signout",
    response_model=SignOutResponse,
    summary="Sign out the current user"
)
async def signout(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> SignOutResponse:
    supabase_client = get_supabase_client(auth_user.access_token)

    try:
        await sign_out(supabase_client)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "unauthorized", "details": str(e)}
        )
    except Exception as e:
        logger.error(f"Sign-out error for user_id={auth_user.user_id}: {e}", exc_info=True)
        raise _auth_service_error("sign out")

    return SignOutResponse(status="SIGNED_OUT", message="Signed out successfully")


@router.get(
    "/me",
    response_model=AuthMeResponse,
    summary="Get authenticated user identity",
    description="Returns the user id and email from a valid Bearer token."
)
async def get_me(
    auth_user: Annotated[AuthenticatedUser, Depends(get_authenticated_user)]
) -> AuthMeResponse:
    logger.debug(f"GET /auth/me for user_id={auth_user.user_id}")
    return AuthMeResponse(user_id=auth_user.user_id, email=auth_user.email)
