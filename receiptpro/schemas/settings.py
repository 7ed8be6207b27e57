from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from receiptpro.schemas.documents import TemplateId
from receiptpro.services.formatting import DEFAULT_DATE_FORMAT, to_strftime


class Preferences(BaseModel):
    """User defaults applied to new drafts."""

    currency: str = "USD"
    tax_rate: float = Field(0.0, ge=0, le=100)
    language: str = "en"
    date_format: str = DEFAULT_DATE_FORMAT
    default_template: TemplateId = TemplateId.MODERN
    default_notes: str = ""
    default_terms: str = ""
    default_due_days: int = Field(30, ge=0)

    @field_validator("date_format")
    @classmethod
    def _known_tokens(cls, value: str) -> str:
        to_strftime(value)
        return value
