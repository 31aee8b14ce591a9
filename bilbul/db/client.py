"""
Supabase client factories.

Bilbul uses Supabase only as its identity provider. Two kinds of clients:

1. get_supabase_client(access_token): bound to a signed-in user's session
   (sign-out, user lookups)
2. get_anon_supabase_client(): publishable key only, for the flows that
   happen before a session exists (sign-in, sign-up, OAuth start)

CRITICAL SECURITY RULES:
1. NEVER use the service_role key
2. Clients are created per request; no user session is shared between requests
"""

import logging

from supabase import Client, create_client
from supabase.client import ClientOptions

from bilbul.config import settings

logger = logging.getLogger(__name__)


def get_anon_supabase_client() -> Client:
    """
    Create a Supabase client with no user session.

    OAuth uses the implicit flow: the provider redirects the browser to
    OAUTH_REDIRECT_URL with the tokens in the URL fragment, so no PKCE
    verifier has to survive between requests.
    """
    return create_client(
        supabase_url=settings.SUPABASE_URL,
        supabase_key=settings.SUPABASE_PUBLISHABLE_KEY,
        options=ClientOptions(flow_type="implicit", auto_refresh_token=False, persist_session=False),
    )


def get_supabase_client(access_token: str) -> Client:
    """
    Create a Supabase client acting as a specific user.

    Args:
        access_token: The user's JWT access token from Supabase Auth, as
                      verified in bilbul/auth/dependencies.py.

    Returns:
        A Supabase client whose auth session is the user's.
    """
    client: Client = get_anon_supabase_client()

    # The refresh token is never sent to this API; the access token stands in
    # for it and is only used until it expires
    client.auth.set_session(access_token, access_token)

    logger.debug("Created authenticated Supabase client with user token")

    return client
