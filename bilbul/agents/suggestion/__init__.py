"""
SuggestionAgent Package

Asks Google Gemini for a free-text fair split ("simple" mode). The result is
displayed verbatim; no local calculation is involved.

Usage:
    from bilbul.agents.suggestion import run_suggestion_agent

    text = await run_suggestion_agent(receipt_json, number_of_people=3)
"""

from bilbul.agents.suggestion.agent import SuggestionResponseSchema, run_suggestion_agent
from bilbul.agents.suggestion.prompts import (
    SUGGESTION_AGENT_SYSTEM_PROMPT,
    build_suggestion_user_prompt,
)

__all__ = [
    "run_suggestion_agent",
    "SuggestionResponseSchema",
    "SUGGESTION_AGENT_SYSTEM_PROMPT",
    "build_suggestion_user_prompt",
]
