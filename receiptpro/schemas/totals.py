from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class TotalsResult(BaseModel):
    """Monetary totals derived from line items and the two rates."""

    model_config = ConfigDict(frozen=True)

    subtotal: float = 0.0
    discount_amount: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
