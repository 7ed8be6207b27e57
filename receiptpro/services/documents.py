from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Type
from uuid import uuid4

from receiptpro.schemas.documents import (
    AnyDocument,
    AnyDraft,
    DocumentStats,
    DocumentType,
    Invoice,
    InvoiceDraft,
    InvoiceStatus,
    PaymentMethod,
    Receipt,
    ReceiptDraft,
    ReceiptStatus,
    TemplateId,
    TotalsRequest,
    TotalsResponse,
)
from receiptpro.schemas.profile import BusinessProfile
from receiptpro.schemas.settings import Preferences
from receiptpro.services.exceptions import DocumentValidationError, NotFoundError
from receiptpro.services.preferences import PreferenceService
from receiptpro.services.profiles import ProfileService
from receiptpro.services.storage import CollectionRepository
from receiptpro.services.store import DataStore, get_store
from receiptpro.services.totals import calculate_totals

logger = logging.getLogger(__name__)

MIN_RATE = 0.0
MAX_RATE = 100.0
_NUMBER_ATTEMPTS = 20


@dataclass(frozen=True)
class DocumentKind:
    document_type: DocumentType
    prefix: str
    label: str
    counterparty_label: str
    record_model: Type[AnyDocument]
    draft_model: Type[AnyDraft]
    statuses: Type[ReceiptStatus] | Type[InvoiceStatus]
    revenue_status: ReceiptStatus | InvoiceStatus


DOCUMENT_KINDS: Dict[DocumentType, DocumentKind] = {
    DocumentType.RECEIPT: DocumentKind(
        document_type=DocumentType.RECEIPT,
        prefix="RCP",
        label="Receipt",
        counterparty_label="customer",
        record_model=Receipt,
        draft_model=ReceiptDraft,
        statuses=ReceiptStatus,
        revenue_status=ReceiptStatus.COMPLETED,
    ),
    DocumentType.INVOICE: DocumentKind(
        document_type=DocumentType.INVOICE,
        prefix="INV",
        label="Invoice",
        counterparty_label="client",
        record_model=Invoice,
        draft_model=InvoiceDraft,
        statuses=InvoiceStatus,
        revenue_status=InvoiceStatus.PAID,
    ),
}


@dataclass(frozen=True)
class _Fallback:
    """Values a draft inherits when it leaves a field unset."""

    tax_rate: float
    currency: str
    template: TemplateId
    notes: str
    terms: str

    @classmethod
    def from_preferences(cls, preferences: Preferences) -> "_Fallback":
        return cls(
            tax_rate=preferences.tax_rate,
            currency=preferences.currency,
            template=preferences.default_template,
            notes=preferences.default_notes,
            terms=preferences.default_terms,
        )

    @classmethod
    def from_record(cls, record: AnyDocument) -> "_Fallback":
        return cls(
            tax_rate=record.tax_rate,
            currency=record.currency,
            template=record.template,
            notes=record.notes,
            terms=record.terms if isinstance(record, Invoice) else "",
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_document_number(prefix: str, now: datetime, rng: random.Random | None = None) -> str:
    """``RCP-20240101-007`` style number: prefix, date and three random digits."""

    rng = rng or random.Random()
    return f"{prefix}-{now:%Y%m%d}-{rng.randrange(1000):03d}"


def compute_totals(request: TotalsRequest) -> TotalsResponse:
    """Live recomputation used while a form is being edited."""

    return TotalsResponse(
        items=request.items,
        totals=calculate_totals(request.items, request.tax_rate, request.discount_rate),
    )


class DocumentService:
    """Drafting, finalizing and storing receipts or invoices."""

    def __init__(
        self,
        document_type: DocumentType,
        *,
        store: DataStore | None = None,
        clock: Callable[[], datetime] = _utc_now,
        rng: random.Random | None = None,
    ) -> None:
        self._kind = DOCUMENT_KINDS[document_type]
        self._store = store or get_store()
        self._profiles = ProfileService(self._store)
        self._preferences = PreferenceService(self._store)
        self._clock = clock
        self._rng = rng or random.Random()

    @property
    def kind(self) -> DocumentKind:
        return self._kind

    @property
    def _repository(self) -> CollectionRepository:
        if self._kind.document_type is DocumentType.RECEIPT:
            return self._store.receipts
        if self._kind.document_type is DocumentType.INVOICE:
            return self._store.invoices
        raise ValueError(f"Unsupported document type {self._kind.document_type}")

    async def generate_number(self) -> str:
        taken = {record.number for record in await self._repository.get_all()}
        number = generate_document_number(self._kind.prefix, self._clock(), self._rng)
        for _ in range(_NUMBER_ATTEMPTS):
            if number not in taken:
                break
            number = generate_document_number(self._kind.prefix, self._clock(), self._rng)
        return number

    async def new_draft(self) -> AnyDraft:
        """Blank draft prefilled from preferences and the default profile."""

        preferences = await self._preferences.get()
        profile = await self._profiles.default_profile()
        now = self._clock()
        common = {
            "business_profile_id": profile.id if profile else None,
            "tax_rate": preferences.tax_rate,
            "currency": preferences.currency,
            "template": preferences.default_template,
            "notes": preferences.default_notes,
        }
        number = await self.generate_number()
        if self._kind.document_type is DocumentType.RECEIPT:
            return ReceiptDraft(receipt_number=number, transaction_date=now, **common)
        if self._kind.document_type is DocumentType.INVOICE:
            return InvoiceDraft(
                invoice_number=number,
                terms=preferences.default_terms,
                issue_date=now,
                due_date=now + timedelta(days=preferences.default_due_days),
                **common,
            )
        raise ValueError(f"Unsupported document type {self._kind.document_type}")

    async def _resolve_profile(
        self, draft: AnyDraft, existing: Optional[AnyDocument], errors: List[str]
    ) -> Optional[BusinessProfile]:
        if draft.business_profile_id:
            try:
                return await self._profiles.get(draft.business_profile_id)
            except NotFoundError:
                errors.append("Selected business profile does not exist")
                return None
        if existing is not None:
            # an edit without a new selection keeps the stored snapshot
            return existing.business_profile
        profile = await self._profiles.default_profile()
        if profile is None:
            errors.append("Please select a business profile")
        return profile

    async def finalize(self, draft: AnyDraft) -> AnyDocument:
        """Validate a draft and turn it into a finalized record.

        Raises ``DocumentValidationError`` listing every problem; nothing is
        stored here.
        """

        if not isinstance(draft, self._kind.draft_model):
            raise TypeError(f"Expected {self._kind.draft_model.__name__}, got {type(draft).__name__}")

        errors: List[str] = []
        existing = await self._repository.get(draft.id) if draft.id else None
        profile = await self._resolve_profile(draft, existing, errors)
        preferences = await self._preferences.get()
        # an edit falls back to the stored record, a new draft to the preferences
        fallback = _Fallback.from_record(existing) if existing else _Fallback.from_preferences(preferences)

        party = draft.customer if isinstance(draft, ReceiptDraft) else draft.client
        who = self._kind.counterparty_label
        if not party.name.strip():
            errors.append(f"Please enter the {who} name")
        if not party.email.strip():
            errors.append(f"Please enter the {who} email")
        if not draft.items:
            errors.append("Please add at least one item")

        tax_rate = fallback.tax_rate if draft.tax_rate is None else draft.tax_rate
        for label, rate in (("Tax rate", tax_rate), ("Discount rate", draft.discount_rate)):
            if not MIN_RATE <= rate <= MAX_RATE:
                errors.append(f"{label} must be between {MIN_RATE:g} and {MAX_RATE:g} percent")

        if errors:
            logger.info("Rejected %s draft: %s", self._kind.label.lower(), "; ".join(errors))
            raise DocumentValidationError(errors)

        now = self._clock()
        items = [item.model_copy(deep=True) for item in draft.items]
        common = {
            "id": existing.id if existing else (draft.id or await self._new_id(now)),
            "business_profile": profile.model_copy(deep=True),
            "items": items,
            "tax_rate": tax_rate,
            "discount_rate": draft.discount_rate,
            "totals": calculate_totals(items, tax_rate, draft.discount_rate),
            "currency": draft.currency or fallback.currency,
            "template": draft.template or fallback.template,
            "notes": fallback.notes if draft.notes is None else draft.notes,
            "created_at": existing.created_at if existing else now,
            "updated_at": now,
        }

        if isinstance(draft, ReceiptDraft):
            return Receipt(
                receipt_number=draft.receipt_number
                or (existing.number if existing else await self.generate_number()),
                customer=party.model_copy(deep=True),
                payment_method=draft.payment_method,
                transaction_date=draft.transaction_date or (existing.transaction_date if existing else now),
                status=draft.status,
                **common,
            )

        issue_date = draft.issue_date or (existing.issue_date if existing else now)
        return Invoice(
            invoice_number=draft.invoice_number
            or (existing.number if existing else await self.generate_number()),
            client=party.model_copy(deep=True),
            terms=fallback.terms if draft.terms is None else draft.terms,
            issue_date=issue_date,
            due_date=draft.due_date
            or (existing.due_date if existing else issue_date + timedelta(days=preferences.default_due_days)),
            status=draft.status,
            **common,
        )

    async def _new_id(self, now: datetime) -> str:
        """Millisecond timestamp plus three random digits, unique in the collection."""

        taken = {record.id for record in await self._repository.get_all()}
        for _ in range(_NUMBER_ATTEMPTS):
            candidate = f"{int(now.timestamp() * 1000)}{self._rng.randrange(1000):03d}"
            if candidate not in taken:
                return candidate
        return uuid4().hex

    async def save(self, draft: AnyDraft) -> AnyDocument:
        record = await self.finalize(draft)
        await self._repository.upsert(record)
        logger.info(
            "Saved %s %s (total %.2f %s)",
            self._kind.label.lower(),
            record.number,
            record.totals.total,
            record.currency,
        )
        return record

    async def get(self, document_id: str) -> AnyDocument:
        record = await self._repository.get(document_id)
        if record is None:
            raise NotFoundError(f"{self._kind.label} {document_id} not found")
        return record

    async def delete(self, document_id: str) -> None:
        if not await self._repository.delete(document_id):
            raise NotFoundError(f"{self._kind.label} {document_id} not found")
        logger.info("Deleted %s %s", self._kind.label.lower(), document_id)

    async def list(
        self, *, search: Optional[str] = None, status: Optional[str] = None
    ) -> List[AnyDocument]:
        records = await self._repository.get_all()
        if search:
            needle = search.strip().lower()
            records = [
                record
                for record in records
                if needle in record.number.lower()
                or needle in record.counterparty.name.lower()
                or needle in record.counterparty.email.lower()
            ]
        if status and status != "all":
            records = [record for record in records if record.status.value == status]
        return sorted(records, key=lambda record: record.created_at, reverse=True)

    async def stats(self) -> DocumentStats:
        records = await self._repository.get_all()
        status_counts = {status.value: 0 for status in self._kind.statuses}
        currency_breakdown: Dict[str, float] = {}
        revenue = 0.0
        for record in records:
            status_counts[record.status.value] += 1
            if record.status is self._kind.revenue_status:
                revenue += record.totals.total
                currency_breakdown[record.currency] = (
                    currency_breakdown.get(record.currency, 0.0) + record.totals.total
                )

        payment_method_counts: Dict[str, int] = {}
        if self._kind.document_type is DocumentType.RECEIPT:
            payment_method_counts = {method.value: 0 for method in PaymentMethod}
            for record in records:
                payment_method_counts[record.payment_method.value] += 1

        return DocumentStats(
            document_type=self._kind.document_type,
            total_documents=len(records),
            revenue=revenue,
            currency_breakdown=currency_breakdown,
            status_counts=status_counts,
            payment_method_counts=payment_method_counts,
        )
