"""
Pydantic schemas for authentication endpoints.

Bilbul only needs an identity: there is no profile. Tokens returned here are
Supabase Auth tokens; the frontend sends the access token back as
`Authorization: Bearer <token>`.
"""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class SignInRequest(BaseModel):
    """Request body for POST /auth/signin."""
    email: str = Field(
        ...,
        min_length=3,
        max_length=254,
        pattern=r"^[^@\s]+@[^@\s]+$",
        examples=["user@example.com"]
    )
    password: str = Field(..., min_length=6, max_length=128)

    model_config = {
        "str_strip_whitespace": True,
        "extra": "forbid"
    }


class SignUpRequest(SignInRequest):
    """Request body for POST /auth/signup. Same fields as sign-in."""


class AuthSessionResponse(BaseModel):
    """Tokens for a freshly signed-in user."""
    user_id: str = Field(..., description="User UUID")
    email: Optional[str] = None
    access_token: str = Field(..., description="Supabase Auth JWT (Bearer token)")
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = Field(None, description="Access token lifetime in seconds")


class SignUpResponse(BaseModel):
    """
    Response for POST /auth/signup.

    When the Supabase project requires email confirmation no tokens are
    returned and `confirmation_required` is true.
    """
    user_id: str
    email: Optional[str] = None
    confirmation_required: bool = Field(
        ...,
        description="True when the user must confirm their email before signing in"
    )
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None


class OAuthStartResponse(BaseModel):
    """Where to send the browser to continue an OAuth sign-in."""
    provider: str = Field(..., examples=["google"])
    url: str = Field(..., description="Provider authorization URL")


class AuthMeResponse(BaseModel):
    """
    Response for GET /auth/me - Authenticated user identity.

    Used on app boot to confirm token validity.
    """
    user_id: str = Field(..., description="User UUID (from JWT 'sub' claim)")
    email: Optional[str] = Field(
        None,
        description="User's email (from JWT 'email' claim, if present)"
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "user_id": "38f7d540-23fa-497a-8df2-3ab9cbe13da5",
                    "email": "user@example.com"
                }
            ]
        }
    }


class SignOutResponse(BaseModel):
    status: Literal["SIGNED_OUT"] = "SIGNED_OUT"
    message: str = Field(..., examples=["Signed out successfully"])
