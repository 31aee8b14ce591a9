"""
ExtractionAgent Package

Reads a receipt photo with Google Gemini and returns its line items and
total. The receipt model validates the returned payload.

Main Components:
- types: TypedDict contracts and the Pydantic response schema
- prompts: System and user prompts
- agent: Runner that loads the image and calls Gemini

Usage:
    from bilbul.agents.extraction import run_extraction_agent

    raw = await run_extraction_agent("data:image/jpeg;base64,/9j/4AAQ...")
"""

from bilbul.agents.extraction.agent import decode_data_url, load_image, run_extraction_agent
from bilbul.agents.extraction.types import (
    ExtractedItem,
    ExtractionAgentOutput,
    ExtractionResponseSchema,
)

__all__ = [
    "run_extraction_agent",
    "load_image",
    "decode_data_url",
    "ExtractedItem",
    "ExtractionAgentOutput",
    "ExtractionResponseSchema",
]
