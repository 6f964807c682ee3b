# -*- coding: utf-8 -*-
"""
Typed views over Stripe webhook payloads.

Only the fields fulfillment reads are declared; everything else Stripe sends
is ignored.
"""
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator

PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"


class EventData(BaseModel):
    model_config = ConfigDict(extra='ignore')

    object: Dict[str, Any] = Field(default_factory=dict)


class WebhookEvent(BaseModel):
    """A verified webhook event: discriminator ``type`` plus its payload."""
    model_config = ConfigDict(extra='ignore')

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    data: EventData = Field(default_factory=EventData)


class PaymentIntentPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    id: str = Field(..., min_length=1)
    amount: int = Field(..., ge=0, description="Captured amount in minor units")
    currency: str = ""
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator('metadata', mode='before')
    @classmethod
    def stringify_metadata(cls, value):
        # Stripe metadata values are always strings; tolerate nulls and numbers.
        if not value:
            return {}
        return {str(k): "" if v is None else str(v) for k, v in dict(value).items()}
