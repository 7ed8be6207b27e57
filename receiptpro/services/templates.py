"""Template renderer: draws a finalized document onto a bitmap surface.

Presentation only. Every template shares one layout (header, parties, meta,
items, totals, notes, footer) and differs by its style entry. Coordinates are
expressed in base units (an A4 page at 96 dpi is 794 units wide) and
multiplied by the oversampling scale when painted.
"""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from receiptpro.schemas.documents import (
    AnyDocument,
    Invoice,
    InvoiceStatus,
    PaymentMethod,
    Receipt,
    ReceiptStatus,
    TemplateId,
)
from receiptpro.services.formatting import DEFAULT_DATE_FORMAT, format_currency, format_date, format_quantity

logger = logging.getLogger(__name__)

BASE_WIDTH = 794
MARGIN = 48
LOGO_SIZE = 64


@dataclass(frozen=True)
class TemplateStyle:
    name: str
    accent: str
    text: str
    muted: str
    rule: str
    table_header_fill: str
    header_fill: Optional[str] = None
    header_text: str = "#111827"
    uppercase_title: bool = True


TEMPLATE_STYLES: Dict[TemplateId, TemplateStyle] = {
    TemplateId.MODERN: TemplateStyle(
        name="Modern", accent="#2563EB", text="#111827", muted="#4B5563",
        rule="#E5E7EB", table_header_fill="#EFF6FF",
    ),
    TemplateId.CLASSIC: TemplateStyle(
        name="Classic", accent="#1F2937", text="#1F2937", muted="#374151",
        rule="#1F2937", table_header_fill="#F3F4F6",
    ),
    TemplateId.MINIMAL: TemplateStyle(
        name="Minimal", accent="#111827", text="#111827", muted="#6B7280",
        rule="#F3F4F6", table_header_fill="#FFFFFF", uppercase_title=False,
    ),
    TemplateId.PROFESSIONAL: TemplateStyle(
        name="Professional", accent="#0F766E", text="#0F172A", muted="#475569",
        rule="#CBD5E1", table_header_fill="#F0FDFA",
        header_fill="#0F766E", header_text="#FFFFFF",
    ),
    TemplateId.CORPORATE: TemplateStyle(
        name="Corporate", accent="#111827", text="#111827", muted="#4B5563",
        rule="#9CA3AF", table_header_fill="#E5E7EB",
        header_fill="#111827", header_text="#F9FAFB",
    ),
    TemplateId.ELEGANT: TemplateStyle(
        name="Elegant", accent="#92400E", text="#292524", muted="#57534E",
        rule="#D6D3D1", table_header_fill="#FAFAF9", uppercase_title=False,
    ),
    TemplateId.CREATIVE: TemplateStyle(
        name="Creative", accent="#DB2777", text="#1E1B4B", muted="#6D28D9",
        rule="#F5D0FE", table_header_fill="#FDF2F8",
        header_fill="#7C3AED", header_text="#FFFFFF",
    ),
}


@dataclass(frozen=True)
class StatusBadge:
    label: str
    foreground: str
    background: str


RECEIPT_STATUS_BADGES: Dict[ReceiptStatus, StatusBadge] = {
    ReceiptStatus.COMPLETED: StatusBadge("Completed", "#166534", "#DCFCE7"),
    ReceiptStatus.REFUNDED: StatusBadge("Refunded", "#991B1B", "#FEE2E2"),
    ReceiptStatus.PARTIAL_REFUND: StatusBadge("Partial refund", "#854D0E", "#FEF9C3"),
}

INVOICE_STATUS_BADGES: Dict[InvoiceStatus, StatusBadge] = {
    InvoiceStatus.DRAFT: StatusBadge("Draft", "#1F2937", "#F3F4F6"),
    InvoiceStatus.SENT: StatusBadge("Sent", "#1E40AF", "#DBEAFE"),
    InvoiceStatus.PAID: StatusBadge("Paid", "#166534", "#DCFCE7"),
    InvoiceStatus.OVERDUE: StatusBadge("Overdue", "#991B1B", "#FEE2E2"),
}

PAYMENT_METHOD_LABELS: Dict[PaymentMethod, str] = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.CARD: "Card",
    PaymentMethod.BANK_TRANSFER: "Bank transfer",
    PaymentMethod.MOBILE_MONEY: "Mobile money",
    PaymentMethod.CHECK: "Check",
    PaymentMethod.OTHER: "Other",
}


def style_for(template: TemplateId) -> TemplateStyle:
    return TEMPLATE_STYLES[template]


def status_badge(status: ReceiptStatus | InvoiceStatus) -> StatusBadge:
    if isinstance(status, ReceiptStatus):
        return RECEIPT_STATUS_BADGES[status]
    if isinstance(status, InvoiceStatus):
        return INVOICE_STATUS_BADGES[status]
    raise TypeError(f"Unknown status type {type(status).__name__}")


def decode_data_url(data_url: str) -> Image.Image:
    """Decode a ``data:image/...;base64,`` logo. Raises on unreadable data."""

    _, _, payload = data_url.partition(",")
    try:
        raw = base64.b64decode(payload or data_url, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Logo is not valid base64 data") from exc
    image = Image.open(BytesIO(raw))
    image.load()
    return image.convert("RGBA")


DrawOp = Callable[[ImageDraw.ImageDraw, Image.Image], None]


class _Surface:
    """Collects paint operations while a cursor walks down the page.

    The image is only allocated once the layout is complete and its height
    is known.
    """

    def __init__(self, width: int, scale: int) -> None:
        self.width = width
        self.scale = scale
        self.y = 0.0
        self._ops: List[DrawOp] = []
        self._fonts: Dict[int, ImageFont.ImageFont | ImageFont.FreeTypeFont] = {}

    def px(self, value: float) -> int:
        return int(round(value * self.scale))

    def font(self, size: float):
        key = self.px(size)
        if key not in self._fonts:
            self._fonts[key] = ImageFont.load_default(size=key)
        return self._fonts[key]

    def measure(self, text: str, size: float) -> float:
        return self.font(size).getlength(text) / self.scale

    def text(self, x: float, y: float, value: str, size: float, color: str, align: str = "left") -> None:
        width = self.measure(value, size)
        if align == "right":
            x -= width
        elif align == "center":
            x -= width / 2
        font = self.font(size)
        position = (self.px(x), self.px(y))
        self._ops.append(lambda draw, _image: draw.text(position, value, fill=color, font=font))

    def rect(self, x0: float, y0: float, x1: float, y1: float, fill: str, outline: Optional[str] = None) -> None:
        box = [self.px(x0), self.px(y0), self.px(x1), self.px(y1)]
        self._ops.append(lambda draw, _image: draw.rectangle(box, fill=fill, outline=outline))

    def line(self, x0: float, y: float, x1: float, color: str, width: float = 1) -> None:
        points = [(self.px(x0), self.px(y)), (self.px(x1), self.px(y))]
        stroke = max(1, self.px(width))
        self._ops.append(lambda draw, _image: draw.line(points, fill=color, width=stroke))

    def paste(self, picture: Image.Image, x: float, y: float, size: float) -> None:
        fitted = picture.copy()
        fitted.thumbnail((self.px(size), self.px(size)))
        position = (self.px(x), self.px(y))
        self._ops.append(lambda _draw, image: image.paste(fitted, position, fitted))

    def wrap(self, value: str, max_width: float, size: float) -> List[str]:
        lines: List[str] = []
        for paragraph in (value or "").splitlines() or [""]:
            current: List[str] = []
            for word in paragraph.split():
                trial = " ".join(current + [word])
                if current and self.measure(trial, size) > max_width:
                    lines.append(" ".join(current))
                    current = [word]
                else:
                    current.append(word)
            lines.append(" ".join(current))
        return lines

    def paint(self, bottom_padding: float = MARGIN) -> Image.Image:
        image = Image.new("RGB", (self.px(self.width), self.px(self.y + bottom_padding)), "white")
        draw = ImageDraw.Draw(image)
        for op in self._ops:
            op(draw, image)
        return image


class TemplateRenderer:
    """Lays out a receipt or invoice with one of the fixed templates."""

    def __init__(self, *, date_format: str = DEFAULT_DATE_FORMAT, width: int = BASE_WIDTH) -> None:
        self._date_format = date_format
        self._width = width

    def render(
        self, record: AnyDocument, template: TemplateId | None = None, *, scale: int = 2
    ) -> Image.Image:
        style = style_for(template or record.template)
        surface = _Surface(self._width, scale)
        logger.debug("Rendering %s %s with the %s template", record.document_type.value, record.number, style.name)

        self._header(surface, record, style)
        self._parties(surface, record, style)
        self._meta(surface, record, style)
        self._items(surface, record, style)
        self._totals(surface, record, style)
        self._notes(surface, record, style)
        self._footer(surface, style)
        return surface.paint()

    def _header(self, surface: _Surface, record: AnyDocument, style: TemplateStyle) -> None:
        width = surface.width
        header_height = 120
        if style.header_fill:
            surface.rect(0, 0, width, header_height, fill=style.header_fill)
        title_color = style.header_text if style.header_fill else style.accent

        profile = record.business_profile
        name_x = MARGIN
        if profile.logo:
            surface.paste(decode_data_url(profile.logo), MARGIN, 28, LOGO_SIZE)
            name_x += LOGO_SIZE + 16
        surface.text(name_x, 34, profile.name, 22, style.header_text if style.header_fill else style.text)
        surface.text(name_x, 66, profile.email, 12, style.header_text if style.header_fill else style.muted)

        title = record.document_type.value
        title = title.upper() if style.uppercase_title else title.capitalize()
        surface.text(width - MARGIN, 28, title, 30, title_color, align="right")
        surface.text(width - MARGIN, 70, f"#{record.number}", 13, title_color, align="right")

        surface.y = header_height + 24
        if not style.header_fill:
            surface.line(MARGIN, surface.y - 12, width - MARGIN, style.rule)

    def _parties(self, surface: _Surface, record: AnyDocument, style: TemplateStyle) -> None:
        profile = record.business_profile
        party = record.counterparty
        from_lines = [
            profile.name,
            profile.address,
            _join_locality(profile.city, profile.state, profile.zip_code),
            profile.country,
            profile.phone,
            profile.email,
            f"Tax ID: {profile.tax_number}" if profile.tax_number else "",
        ]
        to_lines = [
            party.name,
            party.email,
            party.phone,
            party.address,
            _join_locality(party.city, party.state, party.zip_code),
            party.country,
        ]
        from_lines = [line for line in from_lines if line]
        to_lines = [line for line in to_lines if line]

        top = surface.y
        to_x = surface.width / 2 + 16
        surface.text(MARGIN, top, "From", 15, style.text)
        surface.text(to_x, top, "Bill To" if isinstance(record, Invoice) else "To", 15, style.text)
        for index, line in enumerate(from_lines):
            surface.text(MARGIN, top + 26 + index * 18, line, 12, style.muted)
        for index, line in enumerate(to_lines):
            surface.text(to_x, top + 26 + index * 18, line, 12, style.muted)
        surface.y = top + 26 + max(len(from_lines), len(to_lines)) * 18 + 20

    def _meta(self, surface: _Surface, record: AnyDocument, style: TemplateStyle) -> None:
        fields: List[Tuple[str, str]]
        if isinstance(record, Receipt):
            fields = [
                ("Date", format_date(record.transaction_date, self._date_format)),
                ("Payment", PAYMENT_METHOD_LABELS[record.payment_method]),
            ]
        elif isinstance(record, Invoice):
            fields = [
                ("Issue date", format_date(record.issue_date, self._date_format)),
                ("Due date", format_date(record.due_date, self._date_format)),
            ]
        else:
            raise TypeError(f"Unsupported document {type(record).__name__}")

        top = surface.y
        column = (surface.width - 2 * MARGIN) / 3
        for index, (label, value) in enumerate(fields):
            x = MARGIN + index * column
            surface.text(x, top, label, 11, style.muted)
            surface.text(x, top + 16, value, 13, style.text)

        badge = status_badge(record.status)
        badge_x = MARGIN + 2 * column
        surface.text(badge_x, top, "Status", 11, style.muted)
        badge_width = surface.measure(badge.label, 12) + 16
        surface.rect(badge_x, top + 14, badge_x + badge_width, top + 34, fill=badge.background)
        surface.text(badge_x + 8, top + 17, badge.label, 12, badge.foreground)
        surface.y = top + 56

    def _items(self, surface: _Surface, record: AnyDocument, style: TemplateStyle) -> None:
        right = surface.width - MARGIN
        qty_x, price_x = right - 260, right - 130
        description_width = qty_x - MARGIN - 60

        top = surface.y
        surface.rect(MARGIN, top, right, top + 28, fill=style.table_header_fill)
        for x, label, align in (
            (MARGIN + 8, "Description", "left"),
            (qty_x, "Qty", "right"),
            (price_x, "Price", "right"),
            (right - 8, "Amount", "right"),
        ):
            surface.text(x, top + 7, label, 12, style.text, align=align)
        surface.y = top + 36

        for item in record.items:
            lines = surface.wrap(item.description, description_width, 12)
            row_top = surface.y
            for index, line in enumerate(lines):
                surface.text(MARGIN + 8, row_top + index * 17, line, 12, style.text)
            surface.text(qty_x, row_top, format_quantity(item.quantity), 12, style.text, align="right")
            surface.text(price_x, row_top, format_currency(item.unit_price, record.currency), 12, style.muted, align="right")
            surface.text(right - 8, row_top, format_currency(item.amount, record.currency), 12, style.text, align="right")
            surface.y = row_top + max(len(lines), 1) * 17 + 9
            surface.line(MARGIN, surface.y - 4, right, style.rule)
        surface.y += 12

    def _totals(self, surface: _Surface, record: AnyDocument, style: TemplateStyle) -> None:
        right = surface.width - MARGIN
        label_x = right - 280
        totals = record.totals
        rows: List[Tuple[str, str]] = [("Subtotal", format_currency(totals.subtotal, record.currency))]
        if totals.discount_amount > 0:
            rows.append(
                (f"Discount ({record.discount_rate:g}%)", "-" + format_currency(totals.discount_amount, record.currency))
            )
        if totals.tax_amount > 0:
            rows.append((f"Tax ({record.tax_rate:g}%)", format_currency(totals.tax_amount, record.currency)))

        for label, value in rows:
            surface.text(label_x, surface.y, label, 12, style.muted)
            surface.text(right - 8, surface.y, value, 12, style.text, align="right")
            surface.y += 22
        surface.line(label_x, surface.y, right, style.accent, width=1.5)
        surface.y += 10
        surface.text(label_x, surface.y, "Total", 16, style.text)
        surface.text(right - 8, surface.y, format_currency(totals.total, record.currency), 16, style.accent, align="right")
        surface.y += 40

    def _notes(self, surface: _Surface, record: AnyDocument, style: TemplateStyle) -> None:
        blocks: Sequence[Tuple[str, str]] = [("Notes", record.notes)]
        if isinstance(record, Invoice):
            blocks = [*blocks, ("Terms & Conditions", record.terms)]
        text_width = surface.width - 2 * MARGIN
        for title, body in blocks:
            if not body:
                continue
            surface.text(MARGIN, surface.y, title, 14, style.text)
            surface.y += 22
            for line in surface.wrap(body, text_width, 12):
                surface.text(MARGIN, surface.y, line, 12, style.muted)
                surface.y += 17
            surface.y += 16

    def _footer(self, surface: _Surface, style: TemplateStyle) -> None:
        surface.line(MARGIN, surface.y, surface.width - MARGIN, style.rule)
        surface.y += 16
        surface.text(surface.width / 2, surface.y, "Thank you for your business!", 12, style.muted, align="center")
        surface.y += 20


def _join_locality(city: str, state: str, zip_code: str) -> str:
    region = " ".join(part for part in (state, zip_code) if part)
    return ", ".join(part for part in (city, region) if part)
