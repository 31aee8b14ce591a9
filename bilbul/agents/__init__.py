"""
AI Components for Bilbul backend.

1. ExtractionAgent (Single-Shot Multimodal Workflow)
   - Uses Gemini vision to read line items and totals from a receipt photo

2. SuggestionAgent (Single-Shot Text Workflow)
   - Uses Gemini to propose a free-text fair split ("simple" mode)

Both are plain google-genai calls, not ADK agents. Timeouts are applied by
the calling split session.
"""

from bilbul.agents.extraction import ExtractionAgentOutput, run_extraction_agent
from bilbul.agents.suggestion import run_suggestion_agent

__all__ = [
    "run_extraction_agent",
    "run_suggestion_agent",
    "ExtractionAgentOutput",
]
