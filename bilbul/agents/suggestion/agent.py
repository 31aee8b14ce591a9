"""
SuggestionAgent Runner

Single-shot Gemini call returning a free-text suggested split for the
"simple" mode. The text is passed through untouched.
"""

import json
import logging

from google.genai import types
from pydantic import BaseModel, Field

from bilbul.agents.client import get_gemini_client
from bilbul.agents.suggestion.prompts import (
    SUGGESTION_AGENT_SYSTEM_PROMPT,
    build_suggestion_user_prompt,
)
from bilbul.config import settings
from bilbul.split.errors import ExternalServiceFailure

logger = logging.getLogger(__name__)

SERVICE_NAME = "suggestion"


class SuggestionResponseSchema(BaseModel):
    """Schema for the suggestion response (Gemini response_schema)."""
    suggestedSplit: str = Field(..., description="The suggested split of the bill for each person.")


async def run_suggestion_agent(receipt_data: str, number_of_people: int) -> str:
    """
    Ask Gemini for a fair split of the bill.

    Args:
        receipt_data: JSON-serialized receipt
        number_of_people: People sharing the bill (>= 1)

    Returns:
        The suggested split text, verbatim.

    Raises:
        ExternalServiceFailure: If Gemini fails or returns no usable text
    """
    logger.info(f"SuggestionAgent invoked for number_of_people={number_of_people}")

    client = get_gemini_client(SERVICE_NAME)

    config = types.GenerateContentConfig(
        system_instruction=SUGGESTION_AGENT_SYSTEM_PROMPT,
        temperature=0.2,
        response_mime_type="application/json",
        response_schema=SuggestionResponseSchema,
    )

    try:
        response = await client.aio.models.generate_content(
            model=settings.GEMINI_MODEL,
            contents=build_suggestion_user_prompt(receipt_data, number_of_people),
            config=config,
        )
    except Exception as e:
        logger.error(f"SuggestionAgent error: {e}", exc_info=True)
        raise ExternalServiceFailure(
            SERVICE_NAME, "Could not suggest split. Please try again."
        ) from e

    response_text = (response.text or "").strip()
    try:
        result = json.loads(response_text) if response_text else {}
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {e}")
        raise ExternalServiceFailure(SERVICE_NAME, "Failed to parse model response.") from e

    suggested_split = result.get("suggestedSplit") if isinstance(result, dict) else None
    if not isinstance(suggested_split, str) or not suggested_split.strip():
        logger.error("Model returned no suggested split")
        raise ExternalServiceFailure(SERVICE_NAME, "Could not suggest split. Please try again.")

    logger.info("SuggestionAgent completed")
    return suggested_split
