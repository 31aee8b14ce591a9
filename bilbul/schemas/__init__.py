"""
Pydantic schemas for API request and response validation.

All FastAPI endpoints use strict Pydantic models with explicit types.
Money amounts leave the API as floats rounded to cents; the exact summary
text is built from Decimal values in bilbul.split.calculator.
"""
