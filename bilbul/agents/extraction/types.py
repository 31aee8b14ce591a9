"""
ExtractionAgent Type Definitions

Input/output contracts for the receipt extraction call. The output keeps the
wire names the frontend has always used (`totalAmount`), so it can be passed
straight to bilbul.split.receipt.load_from_extraction().
"""

from typing import List, TypedDict

from pydantic import BaseModel, Field


class ExtractedItem(TypedDict):
    """Single receipt line as returned by the model."""
    name: str
    price: float  # total price for all units of the line
    quantity: float


class ExtractionAgentOutput(TypedDict):
    """Raw extraction payload (validated later by the receipt model)."""
    items: List[ExtractedItem]
    totalAmount: float


# =============================================================================
# PYDANTIC MODELS FOR STRUCTURED OUTPUT
# =============================================================================

class ExtractedItemSchema(BaseModel):
    """Schema for a single line item (Gemini response_schema)."""
    name: str = Field(..., description="The name of the item.")
    price: float = Field(..., description="The price of the item (all units of the line).")
    quantity: float = Field(..., description="The quantity of the item.")


class ExtractionResponseSchema(BaseModel):
    """Schema for the complete extraction response (Gemini response_schema)."""
    items: List[ExtractedItemSchema] = Field(..., description="The list of items on the receipt.")
    totalAmount: float = Field(..., description="The total amount on the receipt.")
