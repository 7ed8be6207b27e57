from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from receiptpro.schemas.documents import Invoice, Receipt
from receiptpro.schemas.profile import BusinessProfile
from receiptpro.schemas.settings import Preferences

EXPORT_VERSION = "1.0"


class DataExport(BaseModel):
    receipts: List[Receipt]
    invoices: List[Invoice]
    business_profiles: List[BusinessProfile]
    current_profile: Optional[BusinessProfile] = None
    settings: Preferences
    export_date: str
    version: str = EXPORT_VERSION
