"""Request body for creating a checkout payment intent."""
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    total: Decimal = Field(..., gt=0)
    promo_code: Optional[str] = Field(None, alias='promoCode', max_length=64)
    billing_details: Dict[str, Any] = Field(default_factory=dict, alias='billingDetails')

    @field_validator('billing_details', mode='before')
    @classmethod
    def default_billing_details(cls, value):
        return value or {}
