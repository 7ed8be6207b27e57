from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Union
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field

from receiptpro.schemas.profile import BusinessProfile
from receiptpro.schemas.totals import TotalsResult
from receiptpro.services.totals import line_amount


class DocumentType(str, Enum):
    RECEIPT = "receipt"
    INVOICE = "invoice"


class TemplateId(str, Enum):
    MODERN = "modern"
    CLASSIC = "classic"
    MINIMAL = "minimal"
    PROFESSIONAL = "professional"
    CORPORATE = "corporate"
    ELEGANT = "elegant"
    CREATIVE = "creative"


class ReceiptStatus(str, Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"
    PARTIAL_REFUND = "partial_refund"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    MOBILE_MONEY = "mobile_money"
    CHECK = "check"
    OTHER = "other"


def new_item_id() -> str:
    return uuid4().hex[:12]


class LineItem(BaseModel):
    """One row of a document. ``amount`` is derived and cannot be set."""

    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)

    id: str = Field(default_factory=new_item_id)
    description: str = ""
    quantity: float = Field(1.0, ge=0)
    unit_price: float = Field(
        0.0,
        ge=0,
        validation_alias=AliasChoices("unit_price", "price", "rate"),
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def amount(self) -> float:
        return line_amount(self.quantity, self.unit_price)


class Party(BaseModel):
    """Counterparty snapshot: the customer of a receipt, the client of an invoice."""

    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class DocumentRecord(BaseModel):
    """Fields shared by finalized receipts and invoices."""

    document_type: ClassVar[DocumentType]

    id: str
    business_profile: BusinessProfile
    items: List[LineItem]
    tax_rate: float = 0.0
    discount_rate: float = 0.0
    totals: TotalsResult
    currency: str = "USD"
    template: TemplateId = TemplateId.MODERN
    notes: str = ""
    created_at: datetime
    updated_at: datetime

    @property
    def number(self) -> str:
        raise NotImplementedError

    @property
    def counterparty(self) -> Party:
        raise NotImplementedError

    @property
    def document_date(self) -> datetime:
        raise NotImplementedError


class Receipt(DocumentRecord):
    document_type: ClassVar[DocumentType] = DocumentType.RECEIPT

    receipt_number: str
    customer: Party
    payment_method: PaymentMethod = PaymentMethod.CASH
    transaction_date: datetime
    status: ReceiptStatus = ReceiptStatus.COMPLETED

    @property
    def number(self) -> str:
        return self.receipt_number

    @property
    def counterparty(self) -> Party:
        return self.customer

    @property
    def document_date(self) -> datetime:
        return self.transaction_date


class Invoice(DocumentRecord):
    document_type: ClassVar[DocumentType] = DocumentType.INVOICE

    invoice_number: str
    client: Party
    terms: str = ""
    issue_date: datetime
    due_date: datetime
    status: InvoiceStatus = InvoiceStatus.DRAFT

    @property
    def number(self) -> str:
        return self.invoice_number

    @property
    def counterparty(self) -> Party:
        return self.client

    @property
    def document_date(self) -> datetime:
        return self.issue_date


class DocumentDraft(BaseModel):
    """Editable, partially filled document as submitted by a form."""

    id: Optional[str] = Field(None, description="Existing document to overwrite")
    business_profile_id: Optional[str] = Field(
        None, description="Profile to snapshot; the current profile when omitted"
    )
    items: List[LineItem] = Field(default_factory=list)
    tax_rate: Optional[float] = None
    discount_rate: float = 0.0
    currency: Optional[str] = None
    template: Optional[TemplateId] = None
    notes: Optional[str] = None


class ReceiptDraft(DocumentDraft):
    receipt_number: Optional[str] = None
    customer: Party = Field(default_factory=Party)
    payment_method: PaymentMethod = PaymentMethod.CASH
    transaction_date: Optional[datetime] = None
    status: ReceiptStatus = ReceiptStatus.COMPLETED


class InvoiceDraft(DocumentDraft):
    invoice_number: Optional[str] = None
    client: Party = Field(default_factory=Party)
    terms: Optional[str] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT


AnyDraft = Union[ReceiptDraft, InvoiceDraft]
AnyDocument = Union[Receipt, Invoice]


class TotalsRequest(BaseModel):
    items: List[LineItem] = Field(default_factory=list)
    tax_rate: float = 0.0
    discount_rate: float = 0.0


class TotalsResponse(BaseModel):
    items: List[LineItem]
    totals: TotalsResult


class ReceiptListResponse(BaseModel):
    total: int
    items: List[Receipt]


class InvoiceListResponse(BaseModel):
    total: int
    items: List[Invoice]


class DocumentStats(BaseModel):
    document_type: DocumentType
    total_documents: int
    revenue: float
    currency_breakdown: Dict[str, float] = Field(default_factory=dict)
    status_counts: Dict[str, int] = Field(default_factory=dict)
    payment_method_counts: Dict[str, int] = Field(default_factory=dict)
