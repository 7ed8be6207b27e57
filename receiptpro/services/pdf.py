"""Paginated PDF export.

The primary path rasterizes the rendered template, scales the bitmap to the
page width and tiles it over as many A4 pages as its height needs: page ``i``
shows the same image shifted up by ``i`` page heights. When rasterizing
fails the document is laid out again as plain text with a top-down cursor.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from fractions import Fraction
from io import BytesIO
from typing import Callable, List, Optional, Tuple

from PIL import Image
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from receiptpro.schemas.documents import AnyDocument, DocumentType, Invoice, Receipt
from receiptpro.services.exceptions import DocumentExportError
from receiptpro.services.formatting import DEFAULT_DATE_FORMAT, format_currency, format_date, format_quantity, humanize
from receiptpro.services.inflight import InFlightGuard, exports_in_flight
from receiptpro.services.templates import TemplateRenderer

logger = logging.getLogger(__name__)

FALLBACK_TOP = 20 * mm
FALLBACK_BOTTOM = 40 * mm
FALLBACK_SIDE = 20 * mm
ACCENT = "#3B82F6"


class ExportStage(str, Enum):
    IDLE = "idle"
    RASTERIZING = "rasterizing"
    SCALING = "scaling"
    PAGINATING = "paginating"
    EMITTING = "emitting"
    DONE = "done"
    FALLBACK_LAYOUT = "fallback_layout"


@dataclass(frozen=True)
class PageSlice:
    index: int
    top: float
    bottom: float
    image_y: float


@dataclass(frozen=True)
class PageLayout:
    page_width: float
    page_height: float
    scaled_height: float
    slices: Tuple[PageSlice, ...]

    @property
    def page_count(self) -> int:
        return len(self.slices)


def paginate(image_width: float, image_height: float, page_width: float, page_height: float) -> PageLayout:
    """Scale an image to the page width and cut it into page-high slices.

    ``image_y`` is where the image's bottom edge goes in PDF coordinates
    (origin bottom-left) so that slice ``i`` shows through the page.
    """

    if image_width <= 0 or image_height <= 0:
        raise ValueError("Rendered image has no area")
    if page_width <= 0 or page_height <= 0:
        raise ValueError("Page size must be positive")

    scaled_height = image_height * page_width / image_width
    # exact rational ceiling of scaled_height / page_height
    ratio = Fraction(image_height) * Fraction(page_width) / (Fraction(image_width) * Fraction(page_height))
    page_count = max(1, math.ceil(ratio))
    slices = []
    for index in range(page_count):
        top = index * page_height
        bottom = scaled_height if index == page_count - 1 else (index + 1) * page_height
        slices.append(
            PageSlice(
                index=index,
                top=top,
                bottom=bottom,
                image_y=(index + 1) * page_height - scaled_height,
            )
        )
    return PageLayout(page_width, page_height, scaled_height, tuple(slices))


def build_export_filename(document_type: DocumentType, number: str, export_date: date) -> str:
    return f"{document_type.value}-{number}-{export_date:%Y-%m-%d}.pdf"


@dataclass
class ExportResult:
    filename: str
    content: bytes
    page_count: int
    used_fallback: bool
    stages: List[ExportStage] = field(default_factory=list)


@dataclass(frozen=True)
class TextLine:
    page: int
    x: float
    y: float
    text: str
    font: str = "Helvetica"
    size: float = 10
    align: str = "left"
    color: str = "#000000"


@dataclass(frozen=True)
class RuleLine:
    page: int
    x0: float
    x1: float
    y: float


@dataclass
class FallbackLayout:
    page_count: int
    lines: List[TextLine]
    rules: List[RuleLine]

    @property
    def texts(self) -> List[str]:
        return [line.text for line in self.lines]


class _Cursor:
    """Top-down position in points; moves to a new page past the bottom margin."""

    def __init__(self, page_height: float) -> None:
        self.page = 0
        self.y = FALLBACK_TOP
        self._limit = page_height - FALLBACK_BOTTOM

    def place(self) -> Tuple[int, float]:
        if self.y > self._limit:
            self.page += 1
            self.y = FALLBACK_TOP
        return self.page, self.y


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PdfExporter:
    def __init__(
        self,
        renderer: TemplateRenderer | None = None,
        *,
        oversampling: int = 2,
        page_size: Tuple[float, float] = A4,
        date_format: str = DEFAULT_DATE_FORMAT,
        guard: InFlightGuard = exports_in_flight,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._renderer = renderer or TemplateRenderer(date_format=date_format)
        self._oversampling = oversampling
        self._page_width, self._page_height = page_size
        self._date_format = date_format
        self._guard = guard
        self._clock = clock

    async def export(self, record: AnyDocument, *, export_date: Optional[date] = None) -> ExportResult:
        """Render ``record`` to PDF bytes.

        Raises ``OperationInProgressError`` if the same document is already
        being exported and ``DocumentExportError`` if both paths fail.
        """

        with self._guard.hold(record.id):
            filename = build_export_filename(
                record.document_type, record.number, export_date or self._clock().date()
            )
            stages = [ExportStage.IDLE, ExportStage.RASTERIZING]
            try:
                image = await asyncio.to_thread(
                    self._renderer.render, record, record.template, scale=self._oversampling
                )
                stages.append(ExportStage.SCALING)
                layout = paginate(image.width, image.height, self._page_width, self._page_height)
                stages.append(ExportStage.PAGINATING)
                logger.debug(
                    "Paginated %s into %s page(s) (%.1fpt tall)",
                    record.number,
                    layout.page_count,
                    layout.scaled_height,
                )
                stages.append(ExportStage.EMITTING)
                content = await asyncio.to_thread(self._emit_image, record, image, layout)
            except Exception as exc:
                logger.warning(
                    "Raster export of %s failed, using text layout: %s", record.number, exc
                )
                return await self._export_fallback(record, filename, stages)

            stages.append(ExportStage.DONE)
            logger.info("Exported %s as %s (%s page(s))", record.number, filename, layout.page_count)
            return ExportResult(
                filename=filename,
                content=content,
                page_count=layout.page_count,
                used_fallback=False,
                stages=stages,
            )

    async def _export_fallback(
        self, record: AnyDocument, filename: str, stages: List[ExportStage]
    ) -> ExportResult:
        stages.append(ExportStage.FALLBACK_LAYOUT)
        try:
            layout = self.text_layout(record)
            stages.append(ExportStage.EMITTING)
            content = await asyncio.to_thread(self._emit_layout, record, layout)
        except Exception as exc:
            logger.exception("Text layout export of %s failed", record.number)
            raise DocumentExportError(
                f"Unable to export {record.document_type.value} {record.number}", cause=exc
            ) from exc

        stages.append(ExportStage.DONE)
        logger.info("Exported %s as %s with the text layout (%s page(s))", record.number, filename, layout.page_count)
        return ExportResult(
            filename=filename,
            content=content,
            page_count=layout.page_count,
            used_fallback=True,
            stages=stages,
        )

    def _new_canvas(self, buffer: BytesIO, record: AnyDocument) -> canvas.Canvas:
        pdf = canvas.Canvas(buffer, pagesize=(self._page_width, self._page_height), pageCompression=1)
        pdf.setTitle(f"{record.document_type.value.capitalize()} {record.number}")
        pdf.setAuthor(record.business_profile.name)
        return pdf

    def _emit_image(self, record: AnyDocument, image: Image.Image, layout: PageLayout) -> bytes:
        buffer = BytesIO()
        pdf = self._new_canvas(buffer, record)
        reader = ImageReader(image)
        for page in layout.slices:
            pdf.drawImage(
                reader,
                0,
                page.image_y,
                width=layout.page_width,
                height=layout.scaled_height,
            )
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def _emit_layout(self, record: AnyDocument, layout: FallbackLayout) -> bytes:
        buffer = BytesIO()
        pdf = self._new_canvas(buffer, record)
        for page in range(layout.page_count):
            for line in (line for line in layout.lines if line.page == page):
                pdf.setFont(line.font, line.size)
                pdf.setFillColor(HexColor(line.color))
                y = self._page_height - line.y
                if line.align == "right":
                    pdf.drawRightString(line.x, y, line.text)
                elif line.align == "center":
                    pdf.drawCentredString(line.x, y, line.text)
                else:
                    pdf.drawString(line.x, y, line.text)
            for rule in (rule for rule in layout.rules if rule.page == page):
                y = self._page_height - rule.y
                pdf.line(rule.x0, y, rule.x1, y)
            pdf.showPage()
        pdf.save()
        return buffer.getvalue()

    def text_layout(self, record: AnyDocument) -> FallbackLayout:
        """Plain text arrangement of the whole document, page by page."""

        width = self._page_width
        left, right = FALLBACK_SIDE, width - FALLBACK_SIDE
        cursor = _Cursor(self._page_height)
        lines: List[TextLine] = []
        rules: List[RuleLine] = []

        def text(x: float, value: str, **style) -> None:
            page, y = cursor.place()
            lines.append(TextLine(page=page, x=x, y=y, text=value, **style))

        def rule(x0: float, x1: float) -> None:
            page, y = cursor.place()
            rules.append(RuleLine(page=page, x0=x0, x1=x1, y=y))

        text(width / 2, record.document_type.value.upper(), size=24, align="center", color=ACCENT)
        cursor.y += 15 * mm
        text(left, f"{record.document_type.value.capitalize()} #: {record.number}", size=12)
        text(right, f"Date: {format_date(record.document_date, self._date_format)}", size=12, align="right")
        cursor.y += 10 * mm
        if isinstance(record, Receipt):
            text(right, f"Payment: {humanize(record.payment_method.value)}", size=12, align="right")
        elif isinstance(record, Invoice):
            text(right, f"Due: {format_date(record.due_date, self._date_format)}", size=12, align="right")
        cursor.y += 8 * mm
        text(right, f"Status: {humanize(record.status.value)}", size=12, align="right")
        cursor.y += 14 * mm

        profile, party = record.business_profile, record.counterparty
        to_x = width / 2 + 10 * mm
        text(left, "From:", font="Helvetica-Bold", size=14)
        text(to_x, "Bill To:" if isinstance(record, Invoice) else "To:", font="Helvetica-Bold", size=14)
        cursor.y += 8 * mm
        from_lines = [
            profile.name,
            profile.email,
            profile.phone,
            profile.address,
            " ".join(part for part in (f"{profile.city}," if profile.city else "", profile.state, profile.zip_code) if part),
            profile.country,
        ]
        to_lines = [party.name, party.email, party.phone, party.address]
        from_lines = [line for line in from_lines if line]
        to_lines = [line for line in to_lines if line]
        top = cursor.y
        for column_x, column in ((left, from_lines), (to_x, to_lines)):
            cursor.y = top
            for line in column:
                text(column_x, line)
                cursor.y += 5 * mm
        cursor.y = top + max(len(from_lines), len(to_lines)) * 5 * mm + 10 * mm

        qty_x, price_x = right - 60 * mm, right - 40 * mm
        text(left, "Description", font="Helvetica-Bold")
        text(qty_x, "Qty", font="Helvetica-Bold", align="center")
        text(price_x, "Price", font="Helvetica-Bold", align="right")
        text(right, "Amount", font="Helvetica-Bold", align="right")
        cursor.y += 3 * mm
        rule(left, right)
        cursor.y += 6 * mm

        description_width = qty_x - left - 12 * mm
        for item in record.items:
            wrapped = simpleSplit(item.description or "-", "Helvetica", 10, description_width) or ["-"]
            text(left, wrapped[0])
            text(qty_x, format_quantity(item.quantity), align="center")
            text(price_x, format_currency(item.unit_price, record.currency), align="right")
            text(right, format_currency(item.amount, record.currency), align="right")
            cursor.y += 6 * mm
            for continuation in wrapped[1:]:
                text(left, continuation)
                cursor.y += 5 * mm

        totals = record.totals
        totals_x = right - 80 * mm
        cursor.y += 6 * mm
        rule(totals_x, right)
        cursor.y += 7 * mm
        text(totals_x, f"Subtotal: {format_currency(totals.subtotal, record.currency)}")
        cursor.y += 6 * mm
        if totals.discount_amount > 0:
            text(totals_x, f"Discount ({record.discount_rate:g}%): -{format_currency(totals.discount_amount, record.currency)}")
            cursor.y += 6 * mm
        if totals.tax_amount > 0:
            text(totals_x, f"Tax ({record.tax_rate:g}%): {format_currency(totals.tax_amount, record.currency)}")
            cursor.y += 6 * mm
        text(totals_x, f"Total: {format_currency(totals.total, record.currency)}", font="Helvetica-Bold", size=12)

        blocks = [("Notes:", record.notes)]
        if isinstance(record, Invoice):
            blocks.append(("Terms & Conditions:", record.terms))
        for title, body in blocks:
            if not body:
                continue
            cursor.y += 14 * mm
            text(left, title, font="Helvetica-Bold")
            cursor.y += 6 * mm
            for line in simpleSplit(body, "Helvetica", 10, right - left):
                text(left, line)
                cursor.y += 5 * mm

        return FallbackLayout(page_count=cursor.page + 1, lines=lines, rules=rules)
