"""
Supabase access layer for Bilbul backend.

Supabase is the identity provider only: no receipts, images or splits are
persisted. Split sessions live in process memory (bilbul/services/session_store.py).
"""

from .client import get_anon_supabase_client, get_supabase_client

__all__ = ["get_anon_supabase_client", "get_supabase_client"]
