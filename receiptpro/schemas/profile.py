from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class BusinessProfile(BaseModel):
    """Sender identity copied into every document at save time."""

    id: str
    name: str
    email: str
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    website: str = ""
    logo: Optional[str] = Field(None, description="Logo image as a data URL")
    tax_number: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BusinessProfileRequest(BaseModel):
    id: Optional[str] = Field(None, description="Existing profile to update")
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""
    website: str = ""
    logo: Optional[str] = None
    tax_number: Optional[str] = None


class BusinessProfileListResponse(BaseModel):
    total: int
    current_profile_id: Optional[str] = None
    items: List[BusinessProfile]
