import asyncio
import random
from datetime import datetime, timedelta, timezone

import pytest

from receiptpro.schemas.documents import (
    DocumentType,
    InvoiceDraft,
    InvoiceStatus,
    LineItem,
    Party,
    PaymentMethod,
    ReceiptDraft,
    ReceiptStatus,
    TemplateId,
    TotalsRequest,
)
from receiptpro.schemas.profile import BusinessProfileRequest
from receiptpro.schemas.settings import Preferences
from receiptpro.services.documents import DocumentService, compute_totals, generate_document_number
from receiptpro.services.exceptions import DocumentValidationError, NotFoundError
from receiptpro.services.preferences import PreferenceService
from receiptpro.services.profiles import ProfileService

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
LATER = NOW + timedelta(hours=3)


class SequenceRng:
    """Random stub returning a fixed sequence of draws."""

    def __init__(self, *values: int) -> None:
        self._values = iter(values)

    def randrange(self, stop: int) -> int:
        return next(self._values)


def _service(store, document_type=DocumentType.RECEIPT, clock=lambda: NOW, rng=None) -> DocumentService:
    return DocumentService(document_type, store=store, clock=clock, rng=rng or random.Random(7))


def _profile(store, name="Chillbreeze Orchard"):
    return asyncio.run(
        ProfileService(store).save(BusinessProfileRequest(name=name, email="hello@chillbreeze.example"))
    )


def _receipt_draft(**overrides) -> ReceiptDraft:
    values = dict(
        customer=Party(name="Jamie Tan", email="jamie@example.com"),
        items=[LineItem(description="Signature Haircut", quantity=2, unit_price=38.0)],
        tax_rate=10.0,
    )
    values.update(overrides)
    return ReceiptDraft(**values)


def test_document_number_format() -> None:
    number = generate_document_number("RCP", NOW, SequenceRng(7))

    assert number == "RCP-20240101-007"


def test_generated_number_avoids_stored_numbers(store, make_receipt) -> None:
    asyncio.run(store.receipts.upsert(make_receipt()))
    service = _service(store, rng=SequenceRng(7, 8))

    assert asyncio.run(service.generate_number()) == "RCP-20240101-008"


def test_new_receipt_draft_uses_preferences_and_current_profile(store) -> None:
    profile = _profile(store)
    asyncio.run(
        PreferenceService(store).save(
            Preferences(currency="SGD", tax_rate=7, default_template=TemplateId.CORPORATE, default_notes="Thank you")
        )
    )

    draft = asyncio.run(_service(store).new_draft())

    assert isinstance(draft, ReceiptDraft)
    assert draft.receipt_number.startswith("RCP-20240101-")
    assert draft.business_profile_id == profile.id
    assert draft.currency == "SGD"
    assert draft.tax_rate == 7
    assert draft.template is TemplateId.CORPORATE
    assert draft.notes == "Thank you"
    assert draft.transaction_date == NOW


def test_new_invoice_draft_is_due_after_default_days(store) -> None:
    _profile(store)
    asyncio.run(PreferenceService(store).save(Preferences(default_terms="Net 30")))

    draft = asyncio.run(_service(store, DocumentType.INVOICE).new_draft())

    assert isinstance(draft, InvoiceDraft)
    assert draft.invoice_number.startswith("INV-20240101-")
    assert draft.due_date - draft.issue_date == timedelta(days=30)
    assert draft.terms == "Net 30"


def test_finalize_lists_every_problem(store) -> None:
    draft = ReceiptDraft(tax_rate=150, discount_rate=-5)

    with pytest.raises(DocumentValidationError) as excinfo:
        asyncio.run(_service(store).finalize(draft))

    assert excinfo.value.errors == [
        "Please select a business profile",
        "Please enter the customer name",
        "Please enter the customer email",
        "Please add at least one item",
        "Tax rate must be between 0 and 100 percent",
        "Discount rate must be between 0 and 100 percent",
    ]
    assert asyncio.run(store.receipts.get_all()) == []


def test_finalize_rejects_unknown_profile(store) -> None:
    draft = _receipt_draft(business_profile_id="missing")

    with pytest.raises(DocumentValidationError) as excinfo:
        asyncio.run(_service(store).finalize(draft))

    assert "Selected business profile does not exist" in excinfo.value.errors


def test_invoice_validation_names_the_client(store) -> None:
    _profile(store)

    with pytest.raises(DocumentValidationError) as excinfo:
        asyncio.run(_service(store, DocumentType.INVOICE).finalize(InvoiceDraft(items=[LineItem(quantity=1, unit_price=5)])))

    assert excinfo.value.errors == ["Please enter the client name", "Please enter the client email"]


def test_save_recomputes_totals_and_snapshots_profile(store) -> None:
    profile = _profile(store)
    service = _service(store)
    draft = _receipt_draft(discount_rate=10.0, payment_method=PaymentMethod.BANK_TRANSFER)

    receipt = asyncio.run(service.save(draft))

    assert receipt.receipt_number.startswith("RCP-20240101-")
    assert receipt.business_profile.id == profile.id
    assert receipt.totals.subtotal == pytest.approx(76.0)
    assert receipt.totals.discount_amount == pytest.approx(7.6)
    assert receipt.totals.tax_amount == pytest.approx(6.84)
    assert receipt.totals.total == pytest.approx(75.24)
    assert receipt.created_at == receipt.updated_at == NOW

    draft.items[0].quantity = 100
    asyncio.run(ProfileService(store).save(BusinessProfileRequest(id=profile.id, name="Renamed", email=profile.email)))

    stored = asyncio.run(service.get(receipt.id))
    assert stored.items[0].quantity == 2
    assert stored.business_profile.name == "Chillbreeze Orchard"


def test_editing_overwrites_but_keeps_created_at(store) -> None:
    _profile(store)
    original = asyncio.run(_service(store).save(_receipt_draft()))

    later_service = _service(store, clock=lambda: LATER)
    edited = asyncio.run(
        later_service.save(_receipt_draft(id=original.id, status=ReceiptStatus.REFUNDED, notes="Refunded in store"))
    )

    assert edited.id == original.id
    assert edited.receipt_number == original.receipt_number
    assert edited.created_at == NOW
    assert edited.updated_at == LATER
    assert edited.status is ReceiptStatus.REFUNDED
    assert len(asyncio.run(later_service.list())) == 1


def test_edit_keeps_profile_snapshot_unless_reselected(store) -> None:
    first = _profile(store, name="First Shop")
    original = asyncio.run(_service(store).save(_receipt_draft()))
    second = _profile(store, name="Second Shop")

    kept = asyncio.run(_service(store).save(_receipt_draft(id=original.id)))
    assert kept.business_profile.id == first.id

    switched = asyncio.run(_service(store).save(_receipt_draft(id=original.id, business_profile_id=second.id)))
    assert switched.business_profile.id == second.id


def test_list_search_and_status_filter(store) -> None:
    _profile(store)
    service = _service(store)
    jamie = asyncio.run(service.save(_receipt_draft()))
    alex = asyncio.run(
        _service(store, clock=lambda: LATER, rng=random.Random(99)).save(
            _receipt_draft(customer=Party(name="Alex Lim", email="alex@example.com"), status=ReceiptStatus.REFUNDED)
        )
    )

    assert [record.id for record in asyncio.run(service.list())] == [alex.id, jamie.id]
    assert [record.id for record in asyncio.run(service.list(search="JAMIE"))] == [jamie.id]
    assert [record.id for record in asyncio.run(service.list(search="alex@"))] == [alex.id]
    assert [record.id for record in asyncio.run(service.list(search=jamie.receipt_number))] == [jamie.id]
    assert [record.id for record in asyncio.run(service.list(status="refunded"))] == [alex.id]
    assert len(asyncio.run(service.list(status="all"))) == 2


def test_get_and_delete_missing_document(store) -> None:
    service = _service(store, DocumentType.INVOICE)

    with pytest.raises(NotFoundError):
        asyncio.run(service.get("missing"))
    with pytest.raises(NotFoundError):
        asyncio.run(service.delete("missing"))


def test_receipt_stats(store) -> None:
    _profile(store)
    service = _service(store)
    asyncio.run(service.save(_receipt_draft(payment_method=PaymentMethod.CARD)))
    asyncio.run(service.save(_receipt_draft(status=ReceiptStatus.REFUNDED)))

    stats = asyncio.run(service.stats())

    assert stats.total_documents == 2
    assert stats.revenue == pytest.approx(83.6)
    assert stats.currency_breakdown == pytest.approx({"USD": 83.6})
    assert stats.status_counts == {"completed": 1, "refunded": 1, "partial_refund": 0}
    assert stats.payment_method_counts["card"] == 1
    assert stats.payment_method_counts["cash"] == 1


def test_invoice_stats_count_paid_revenue(store) -> None:
    _profile(store)
    service = _service(store, DocumentType.INVOICE)
    client = Party(name="Acme Pte Ltd", email="billing@acme.example")
    items = [LineItem(quantity=4, rate=120)]
    asyncio.run(service.save(InvoiceDraft(client=client, items=items, tax_rate=0, status=InvoiceStatus.PAID)))
    asyncio.run(service.save(InvoiceDraft(client=client, items=items, tax_rate=0, status=InvoiceStatus.OVERDUE)))

    stats = asyncio.run(service.stats())

    assert stats.revenue == pytest.approx(480.0)
    assert stats.status_counts == {"draft": 0, "sent": 0, "paid": 1, "overdue": 1}
    assert stats.payment_method_counts == {}


def test_live_totals_recompute_amounts() -> None:
    response = compute_totals(
        TotalsRequest(items=[LineItem(quantity=3, unit_price=10)], tax_rate=10, discount_rate=0)
    )

    assert response.items[0].amount == 30
    assert response.totals.total == pytest.approx(33.0)


def test_edit_without_rates_keeps_stored_values(store) -> None:
    _profile(store)
    preferences = PreferenceService(store)
    asyncio.run(preferences.save(Preferences(currency="SGD", tax_rate=7, default_notes="Thanks")))
    service = _service(store, DocumentType.INVOICE)
    client = Party(name="Acme Pte Ltd", email="billing@acme.example")
    items = [LineItem(quantity=1, rate=100)]
    original = asyncio.run(
        service.save(InvoiceDraft(client=client, items=items, template=TemplateId.ELEGANT, terms="Net 14"))
    )

    asyncio.run(
        preferences.save(Preferences(currency="EUR", tax_rate=20, default_notes="Changed", default_terms="Net 60"))
    )
    edited = asyncio.run(
        _service(store, DocumentType.INVOICE, clock=lambda: LATER).save(
            InvoiceDraft(id=original.id, client=client, items=items, status=InvoiceStatus.PAID)
        )
    )

    assert edited.tax_rate == 7
    assert edited.totals.total == pytest.approx(107.0)
    assert edited.currency == "SGD"
    assert edited.template is TemplateId.ELEGANT
    assert edited.notes == "Thanks"
    assert edited.terms == "Net 14"
    assert edited.issue_date == original.issue_date
    assert edited.due_date == original.due_date
    assert edited.status is InvoiceStatus.PAID
