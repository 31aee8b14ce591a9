"""
Pytest configuration for Bilbul backend tests.

Sets up test environment and shared fixtures.
"""
import os
import pytest
from unittest.mock import AsyncMock, MagicMock

# Disable config validation during tests
# This allows tests to run without requiring real environment variables
os.environ["VALIDATE_CONFIG"] = "false"

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SUPABASE_URL", "http://localhost:54321")
os.environ.setdefault("SUPABASE_PUBLISHABLE_KEY", "test-publishable-key")
os.environ.setdefault("GOOGLE_API_KEY", "test-google-api-key")

from bilbul.services.usage_service import UsageTracker  # noqa: E402
from bilbul.split.session import SplitSession  # noqa: E402


COFFEE_RECEIPT = {
    "items": [{"name": "Coffee", "price": 10.00, "quantity": 2}],
    "totalAmount": 10.00,
}

DINNER_RECEIPT = {
    "items": [
        {"name": "Pizza", "price": 24.00, "quantity": 1},
        {"name": "Beer", "price": 18.00, "quantity": 3},
        {"name": "Salad", "price": 9.50, "quantity": 1},
    ],
    "totalAmount": 51.50,
}


@pytest.fixture
def supabase_client():
    """
    Mock Supabase client.
    Returns a MagicMock that simulates Supabase client behavior.
    """
    return MagicMock()


@pytest.fixture
def coffee_receipt():
    return {"items": [dict(item) for item in COFFEE_RECEIPT["items"]], "totalAmount": 10.00}


@pytest.fixture
def dinner_receipt():
    return {"items": [dict(item) for item in DINNER_RECEIPT["items"]], "totalAmount": 51.50}


@pytest.fixture
def usage():
    return UsageTracker()


@pytest.fixture
def extractor(coffee_receipt):
    """Async extraction stub returning the single-line Coffee receipt."""
    return AsyncMock(return_value=coffee_receipt)


@pytest.fixture
def suggester():
    return AsyncMock(return_value="Person 1: $5.00\nPerson 2: $5.00\n")


@pytest.fixture
def make_session(extractor, suggester, usage):
    """Factory for SplitSessions wired to the stub collaborators."""
    def _make(**overrides) -> SplitSession:
        kwargs = {
            "session_id": "test-session",
            "extractor": extractor,
            "suggester": suggester,
            "usage": usage,
            "timeout_seconds": 1.0,
        }
        kwargs.update(overrides)
        return SplitSession(**kwargs)

    return _make
