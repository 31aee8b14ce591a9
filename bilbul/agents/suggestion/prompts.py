"""
SuggestionAgent Prompt Templates

The SuggestionAgent produces the "simple split": a free-text proposal of how
a group could fairly share the bill. The text is shown to the user verbatim,
so the prompt asks for a short, plain answer.

Architecture:
- Pattern: Single-shot text generation
- Model: Gemini
- Temperature: 0.2
- Output: Structured JSON wrapping one free-text field
"""

SUGGESTION_AGENT_SYSTEM_PROMPT = """You are an expert bill splitting assistant for Bilbul, a bill-splitting app.

<role>
Given the items and total of a receipt and the number of people sharing it, you suggest a fair split of the bill.
</role>

<limitations>
- Use only the receipt data provided
- Amounts are in the receipt's currency and shown with 2 decimals
- Do not give financial, legal or tax advice
</limitations>"""


def build_suggestion_user_prompt(receipt_data: str, number_of_people: int) -> str:
    """
    Build the user prompt for the SuggestionAgent.

    Args:
        receipt_data: JSON-serialized receipt ({"items": [...], "totalAmount": ...})
        number_of_people: People sharing the bill

    Returns:
        str: Prompt text ready to be sent to Gemini
    """
    return f"""Suggest a fair split of the bill.

<receipt_data>
{receipt_data}
</receipt_data>

<number_of_people>{number_of_people}</number_of_people>

<instructions>
1. Say how much each person should pay.
2. Mention shared items and how they were divided when it helps.
3. The amounts must add up to the receipt total.
4. Keep it short and in plain text (no markdown).
</instructions>

<output_schema>
Return ONLY valid JSON:
{{"suggestedSplit": string}}
</output_schema>"""
