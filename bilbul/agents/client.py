"""
Shared Gemini client for the AI agents.

One google-genai Client per process, created on first use so the app can be
imported (and tested) without a GOOGLE_API_KEY.
"""

import logging
from typing import Optional

from google import genai

from bilbul.config import settings
from bilbul.split.errors import ExternalServiceFailure

logger = logging.getLogger(__name__)

_gemini_client: Optional[genai.Client] = None


def get_gemini_client(service: str) -> genai.Client:
    """
    Lazy initialization of the Gemini client.

    Args:
        service: Name of the calling agent, used in the error raised when
                 the API key is missing

    Raises:
        ExternalServiceFailure: If GOOGLE_API_KEY is not configured
    """
    global _gemini_client

    if _gemini_client is not None:
        return _gemini_client

    if not settings.GOOGLE_API_KEY:
        logger.error("GOOGLE_API_KEY not configured")
        raise ExternalServiceFailure(
            service,
            f"The {service} service is not configured. Please try again later.",
        )

    _gemini_client = genai.Client(api_key=settings.GOOGLE_API_KEY)
    logger.info("Gemini client initialized successfully")
    return _gemini_client
