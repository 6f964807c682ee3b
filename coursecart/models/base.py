"""Column helpers shared by the storefront models."""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the DateTime columns store."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def money(value) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal("0.01")))


def iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
