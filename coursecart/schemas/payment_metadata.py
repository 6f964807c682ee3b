# -*- coding: utf-8 -*-
"""
Payment intent metadata contract.

Checkout writes this metadata onto the payment intent and the webhook reads it
back, so both sides go through ``PaymentMetadata.encode`` / ``decode``. Stripe
metadata is a flat string map, hence the comma-joined course ids and the JSON
string for the billing details.
"""
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from coursecart.services.errors import MetadataError

USER_ID = "userId"
COURSE_IDS = "courseIds"
PROMO_CODE = "promoCode"
BILLING_DETAILS = "billingDetails"
DISCOUNT_SNAPSHOT = "discountSnapshot"


def split_course_ids(raw: Optional[str]) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def parse_billing_details(raw: Optional[str]) -> Dict[str, Any]:
    """Billing details JSON; anything unusable becomes an empty mapping."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return value if isinstance(value, dict) else {}


class PaymentMetadata(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: str = Field(..., min_length=1)
    course_ids: List[str] = Field(..., min_length=1)
    promo_code: Optional[str] = None
    billing_details: Dict[str, Any] = Field(default_factory=dict)
    discount_snapshot: Optional[Decimal] = None

    def encode(self) -> Dict[str, str]:
        data = {
            USER_ID: self.user_id,
            COURSE_IDS: ",".join(self.course_ids),
            PROMO_CODE: self.promo_code or "",
            BILLING_DETAILS: json.dumps(self.billing_details or {}),
        }
        if self.discount_snapshot is not None:
            data[DISCOUNT_SNAPSHOT] = str(self.discount_snapshot)
        return data

    @classmethod
    def decode(cls, metadata: Optional[Mapping[str, str]]) -> "PaymentMetadata":
        metadata = metadata or {}
        user_id = (metadata.get(USER_ID) or "").strip()
        course_ids = split_course_ids(metadata.get(COURSE_IDS))
        if not user_id or not course_ids:
            missing = [name for name, ok in ((USER_ID, user_id), (COURSE_IDS, course_ids)) if not ok]
            raise MetadataError("Missing metadata", details={'missing': missing})

        snapshot = None
        raw_snapshot = (metadata.get(DISCOUNT_SNAPSHOT) or "").strip()
        if raw_snapshot:
            try:
                snapshot = Decimal(raw_snapshot)
            except InvalidOperation:
                snapshot = None
            if snapshot is not None and (not snapshot.is_finite() or snapshot < 0):
                snapshot = None

        return cls(
            user_id=user_id,
            course_ids=course_ids,
            promo_code=(metadata.get(PROMO_CODE) or "").strip() or None,
            billing_details=parse_billing_details(metadata.get(BILLING_DETAILS)),
            discount_snapshot=snapshot,
        )
