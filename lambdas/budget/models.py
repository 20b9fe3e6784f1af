"""Pydantic models for budget settings API request validation."""

from decimal import Decimal

from pydantic import BaseModel, Field

MAX_HISTORY_DAYS = 90


class DailyLimitRequest(BaseModel):
    """Request body for changing the daily limit."""

    daily_limit: Decimal = Field(..., gt=0, le=Decimal("100000"), allow_inf_nan=False)


class EstimateRequest(BaseModel):
    """Request body for estimating an operation's cost."""

    service: str = Field(..., min_length=1, max_length=50)
    operation: str = Field(..., min_length=1, max_length=50)
    text_length: int = Field(default=100, ge=0)
    input_length: int = Field(default=1000, ge=0)
    output_length: int = Field(default=500, ge=0)
