"""
Service layer for Bilbul backend.

Glue between routes (HTTP layer) and the split core / external services:
- session_store: server-held SplitSessions with per-session locks
- usage_service: one-free-split metering for anonymous clients
- identity_service: Supabase Auth sign-in, sign-up, OAuth and sign-out
"""

from .identity_service import (
    SUPPORTED_OAUTH_PROVIDERS,
    get_oauth_url,
    sign_in_with_password,
    sign_out,
    sign_up,
)
from .session_store import SessionStore, get_session_store
from .usage_service import UsageTracker

__all__ = [
    "SessionStore",
    "get_session_store",
    "UsageTracker",
    "SUPPORTED_OAUTH_PROVIDERS",
    "sign_in_with_password",
    "sign_up",
    "get_oauth_url",
    "sign_out",
]
