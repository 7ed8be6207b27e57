import os
import sys
from datetime import datetime, timezone
from typing import List, Optional

import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from receiptpro.schemas.documents import (
    Invoice,
    InvoiceStatus,
    LineItem,
    Party,
    PaymentMethod,
    Receipt,
)
from receiptpro.schemas.profile import BusinessProfile
from receiptpro.services.storage import MemoryStore
from receiptpro.services.store import get_store, reset_store
from receiptpro.services.totals import calculate_totals

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def _reset_store() -> None:
    reset_store(MemoryStore())
    yield
    reset_store()


@pytest.fixture
def store():
    return get_store()


def build_profile(**overrides) -> BusinessProfile:
    values = dict(
        id="biz-1",
        name="Chillbreeze Orchard",
        email="hello@chillbreeze.example",
        phone="+65 5550 1234",
        address="1 Orchard Road",
        city="Singapore",
        zip_code="238801",
        country="Singapore",
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return BusinessProfile(**values)


def default_items() -> List[LineItem]:
    return [
        LineItem(description="Signature Haircut", quantity=1, unit_price=38.0),
        LineItem(description="Hair Spa Treatment", quantity=2, unit_price=45.5),
    ]


def build_receipt(
    items: Optional[List[LineItem]] = None,
    profile: Optional[BusinessProfile] = None,
    **overrides,
) -> Receipt:
    items = default_items() if items is None else items
    values = dict(
        id="1704110400000007",
        receipt_number="RCP-20240101-007",
        business_profile=profile or build_profile(),
        customer=Party(name="Jamie Tan", email="jamie@example.com", phone="555-0100"),
        items=items,
        tax_rate=8.0,
        discount_rate=0.0,
        totals=calculate_totals(items, 8.0, 0.0),
        payment_method=PaymentMethod.CARD,
        transaction_date=NOW,
        notes="Thanks for visiting!",
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return Receipt(**values)


def build_invoice(
    items: Optional[List[LineItem]] = None,
    profile: Optional[BusinessProfile] = None,
    **overrides,
) -> Invoice:
    items = default_items() if items is None else items
    values = dict(
        id="1704110400000042",
        invoice_number="INV-20240101-042",
        business_profile=profile or build_profile(),
        client=Party(name="Acme Pte Ltd", email="billing@acme.example"),
        items=items,
        tax_rate=10.0,
        discount_rate=5.0,
        totals=calculate_totals(items, 10.0, 5.0),
        terms="Payment due within 30 days.",
        issue_date=NOW,
        due_date=datetime(2024, 1, 31, 12, 0, tzinfo=timezone.utc),
        status=InvoiceStatus.SENT,
        created_at=NOW,
        updated_at=NOW,
    )
    values.update(overrides)
    return Invoice(**values)


@pytest.fixture
def make_receipt():
    return build_receipt


@pytest.fixture
def make_invoice():
    return build_invoice


@pytest.fixture
def make_profile():
    return build_profile
