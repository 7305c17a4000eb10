# gstbill/services/invoice_pdf.py
from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Optional

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen.canvas import Canvas

from gstbill.formatting import (
    format_line_amount,
    format_percent,
    format_quantity,
    format_total_amount,
)
from gstbill.models import ComputedLineItem, Invoice, InvoiceTotals, IssuerProfile


logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN_X = 10 * mm
MARGIN_Y = 8 * mm

FONT = "Times-Roman"
FONT_BOLD = "Times-Bold"
FONT_ITALIC = "Times-Italic"

# Space each region needs before it is started on the current page.
TABLE_MIN_HEIGHT = 20 * mm
TAX_SUMMARY_HEIGHT = 52 * mm
BOTTOM_BLOCK_HEIGHT = 35 * mm
DISCLAIMER_HEIGHT = 6 * mm
PARTY_BLOCK_HEIGHT = 28 * mm

TAX_LINE_HEIGHT = 6 * mm
TABLE_FONT_SIZE = 7.5
TABLE_LINE_HEIGHT = 3.4 * mm
TABLE_ROW_MIN_HEIGHT = 6 * mm
TABLE_PAD = 1 * mm

BOTTOM_LINE_HEIGHT = 4.2 * mm
DISCLAIMER_LINE_HEIGHT = 3.8 * mm
# Gap above a block that was moved to a fresh page.
BLOCK_GAP = 6 * mm
BOTTOM_LIMIT = MARGIN_Y + 3 * mm

HEADER_MAX_DEALS_LINES = 2
HEADER_MAX_ADDRESS_LINES = 3
DISCLAIMER_MAX_LINES = 4

HEADER_FILL = (247 / 255, 243 / 255, 207 / 255)
GRAND_TOTAL_FILL = (0.92, 0.92, 0.92)

SIGNATURE_MAX_HEIGHT = 12 * mm
SIGNATORY_CAPTION = "Authorised Signatory"


@dataclass(frozen=True)
class _Column:
    heading: str
    share: float
    align: str


# Fixed shares of the content width; they add up to 1.
ITEM_COLUMNS: tuple[_Column, ...] = (
    _Column("Sl. No.", 0.05, "center"),
    _Column("DESCRIPTION OF SUPPLY", 0.22, "left"),
    _Column("HSN / SAC", 0.08, "center"),
    _Column("QTY.", 0.06, "center"),
    _Column("UNIT", 0.06, "center"),
    _Column("RATE / ITEM (Rs.)", 0.09, "right"),
    _Column("TAX %", 0.06, "center"),
    _Column("TAX TYPE", 0.10, "center"),
    _Column("TAXABLE VALUE (Rs.)", 0.10, "right"),
    _Column("TAX AMOUNT (Rs.)", 0.09, "right"),
    _Column("TOTAL (Rs.)", 0.09, "right"),
)


def _sanitize_text(text: Any) -> str:
    if text is None:
        return ""
    s = unicodedata.normalize("NFC", str(text))
    replacements = {
        "₹": "Rs.",  # rupee sign, not in the core fonts
        "–": "-",
        "—": "-",
        "‘": "'",
        "’": "'",
        "“": '"',
        "”": '"',
        "…": "...",
        " ": " ",
    }
    for k, v in replacements.items():
        s = s.replace(k, v)
    return s.encode("latin-1", "ignore").decode("latin-1")


def _split_long_word(word: str, font: str, size: float, max_width: float) -> list[str]:
    parts: list[str] = []
    cur = ""
    for ch in word:
        if cur and stringWidth(cur + ch, font, size) > max_width:
            parts.append(cur)
            cur = ch
        else:
            cur += ch
    if cur:
        parts.append(cur)
    return parts


def wrap_text(text: Any, font: str, size: float, max_width: float) -> list[str]:
    text = _sanitize_text(text).strip()
    if not text:
        return [""]
    lines: list[str] = []
    for paragraph in text.splitlines() or [""]:
        cur = ""
        for w in paragraph.split():
            if stringWidth(w, font, size) > max_width:
                if cur:
                    lines.append(cur)
                    cur = ""
                *head, w = _split_long_word(w, font, size, max_width)
                lines.extend(head)
            cand = f"{cur} {w}" if cur else w
            if stringWidth(cand, font, size) <= max_width:
                cur = cand
            else:
                lines.append(cur)
                cur = w
        if cur:
            lines.append(cur)
    return lines or [""]


def clip_lines(lines: list[str], limit: int, font: str, size: float, max_width: float) -> list[str]:
    """First `limit` lines, the last one ending in "..." when anything was cut."""
    if len(lines) <= limit:
        return lines
    kept = lines[: max(limit, 1)]
    last = kept[-1].rstrip()
    while last and stringWidth(last + "...", font, size) > max_width:
        last = last[:-1].rstrip()
    kept[-1] = last + "..."
    return kept


def load_signature(image: Optional[bytes]) -> Optional[ImageReader]:
    """ImageReader for the signature, or None when absent or unreadable."""
    if not image:
        return None
    try:
        reader = ImageReader(BytesIO(image))
        reader.getSize()
    except Exception as exc:
        logger.warning("pdf.signature_unreadable size=%s error=%s", len(image), exc)
        return None
    return reader


@dataclass
class PageLayout:
    number: int
    regions: list[str] = field(default_factory=list)
    # Table row slices drawn on this page, total row included.
    rows: int = 0
    lowest_text_y: float = PAGE_HEIGHT


@dataclass
class RenderedInvoice:
    pdf_bytes: bytes
    pages: list[PageLayout]

    @property
    def page_count(self) -> int:
        return len(self.pages)


class InvoicePdfLayout:
    """Draws one invoice onto A4 pages top to bottom, breaking pages when a region does not fit."""

    def __init__(self, invoice: Invoice, profile: IssuerProfile) -> None:
        self.invoice = invoice
        self.profile = profile
        self.totals: InvoiceTotals = invoice.totals

        self.buffer = BytesIO()
        self.c = Canvas(self.buffer, pagesize=A4)
        self.c.setTitle(f"Invoice-{invoice.invoice_no or 'draft'}")
        if profile.name:
            self.c.setAuthor(_sanitize_text(profile.name))

        self.left = MARGIN_X
        self.width = PAGE_WIDTH - 2 * MARGIN_X
        self.right = self.left + self.width
        self.top = PAGE_HEIGHT - MARGIN_Y
        self.bottom = BOTTOM_LIMIT

        self.y = self.top
        # First free y below the header band; the same on every page.
        self.content_top = self.top
        self.pages: list[PageLayout] = []

        self.col_widths = [self.width * col.share for col in ITEM_COLUMNS]

    # --- primitives ---
    def _font(self, size: float, bold: bool = False, italic: bool = False) -> str:
        name = FONT_BOLD if bold else (FONT_ITALIC if italic else FONT)
        self.c.setFont(name, size)
        return name

    def _track(self, y: float) -> None:
        page = self.pages[-1]
        page.lowest_text_y = min(page.lowest_text_y, y)

    def text(self, x: float, y: float, s: Any, size: float = 10, bold: bool = False) -> None:
        self._font(size, bold)
        self.c.drawString(x, y, _sanitize_text(s))
        self._track(y)

    def text_r(self, x_right: float, y: float, s: Any, size: float = 10, bold: bool = False) -> None:
        self._font(size, bold)
        self.c.drawRightString(x_right, y, _sanitize_text(s))
        self._track(y)

    def text_c(
        self, x_center: float, y: float, s: Any, size: float = 10, bold: bool = False, italic: bool = False
    ) -> None:
        self._font(size, bold, italic)
        self.c.drawCentredString(x_center, y, _sanitize_text(s))
        self._track(y)

    def _mark(self, region: str) -> None:
        self.pages[-1].regions.append(region)

    def remaining(self) -> float:
        return self.y - self.bottom

    # --- pages ---
    def start_page(self) -> None:
        if self.pages:
            self.c.showPage()
        self.pages.append(PageLayout(number=len(self.pages) + 1))
        self.c.setLineWidth(0.6)
        self.c.setStrokeColorRGB(0, 0, 0)
        self.c.rect(self.left, MARGIN_Y, self.width, PAGE_HEIGHT - 2 * MARGIN_Y, stroke=1, fill=0)
        self.y = self.top
        self.draw_header_band()

    def ensure_space(self, needed: float) -> bool:
        """Start a new page when `needed` does not fit; True if a page was added."""
        if self.remaining() >= needed:
            return False
        logger.debug(
            "pdf.page_break page=%s remaining=%.1f needed=%.1f",
            len(self.pages),
            self.remaining(),
            needed,
        )
        self.start_page()
        return True

    def start_block_page(self) -> None:
        self.start_page()
        self.y -= BLOCK_GAP

    def fresh_block_room(self) -> float:
        return self.content_top - BLOCK_GAP - self.bottom

    # --- (a) header band ---
    def draw_header_band(self) -> None:
        p = self.profile
        cx = self.left + self.width / 2

        y = self.top - 5 * mm
        self.text(self.left + 2 * mm, y, f"GST IN : {p.gstin}")
        self.text_c(cx, y, "TAX INVOICE", bold=True)
        self.text_r(self.right - 2 * mm, y, f"Contact No.: {p.contact}")

        y -= 7 * mm
        self.text_c(cx, y, p.name, size=18, bold=True)

        y -= 6 * mm
        max_w = self.width - 4 * mm
        deals = wrap_text(f"Deals in : {p.deals_in}", FONT, 10, max_w)
        for line in clip_lines(deals, HEADER_MAX_DEALS_LINES, FONT, 10, max_w):
            self.text_c(cx, y, line)
            y -= 4.5 * mm

        y -= 0.5 * mm
        address = wrap_text(p.address, FONT, 10, max_w)
        for line in clip_lines(address, HEADER_MAX_ADDRESS_LINES, FONT, 10, max_w):
            self.text_c(cx, y, line)
            y -= 4.5 * mm

        row_h = 7 * mm
        row_top = y - 0.5 * mm
        half = self.width / 2
        self.c.rect(self.left, row_top - row_h, self.width, row_h, stroke=1, fill=0)
        self.c.line(self.left + half, row_top, self.left + half, row_top - row_h)
        baseline = row_top - 5 * mm
        self.text(self.left + 2 * mm, baseline, f"Invoice No : {self.invoice.invoice_no}")
        self.text(self.left + half + 2 * mm, baseline, f"Date : {self.invoice.date}")

        self.y = row_top - row_h - 1 * mm
        self.content_top = self.y
        self._mark("header")

    # --- (b) parties ---
    def draw_party_block(self) -> None:
        inv = self.invoice
        split = self.width * 0.65
        line_h = 5 * mm

        # The block stays on the first page and leaves room for the table to start.
        room = self.remaining() - 2 * mm - TABLE_MIN_HEIGHT
        max_lines = max(4, int((room - 13 * mm) // line_h) + 1)

        left_w = split - 4 * mm
        address_lines = wrap_text(f"Address: {inv.customer_address}", FONT, 10, left_w)
        if len(address_lines) > max_lines - 3:
            logger.warning("pdf.address_clipped lines=%s kept=%s", len(address_lines), max_lines - 3)
            address_lines = clip_lines(address_lines, max_lines - 3, FONT, 10, left_w)
        left_lines = (
            [f"Name: {inv.customer_name}"]
            + address_lines
            + [f"GSTIN No.: {inv.customer_gstin}", f"State Code: {inv.state_code}"]
        )
        right_w = self.width - split - 4 * mm
        right_lines = clip_lines(
            wrap_text(f"Work Order No.: {inv.work_order_no}", FONT, 10, right_w), max_lines, FONT, 10, right_w
        )
        height = max(PARTY_BLOCK_HEIGHT, 10 * mm + line_h * (len(left_lines) - 1) + 3 * mm)

        top = self.y
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=0)
        self.c.line(self.left + split, top, self.left + split, top - height)

        self.text(self.left + 2 * mm, top - 5 * mm, "Customer Details:", bold=True)
        y = top - 10 * mm
        for line in left_lines:
            self.text(self.left + 2 * mm, y, line)
            y -= line_h

        rx = self.left + split + 2 * mm
        self.text(rx, top - 5 * mm, "Transporter Details:", bold=True)
        y = top - 10 * mm
        for line in right_lines:
            self.text(rx, y, line)
            y -= line_h

        self.y = top - height - 2 * mm
        self._mark("parties")

    # --- (c) item table ---
    def _cell(self, x: float, width: float, y: float, value: str, align: str, bold: bool = False) -> None:
        if align == "right":
            self.text_r(x + width - TABLE_PAD, y, value, size=TABLE_FONT_SIZE, bold=bold)
        elif align == "center":
            self.text_c(x + width / 2, y, value, size=TABLE_FONT_SIZE, bold=bold)
        else:
            self.text(x + TABLE_PAD, y, value, size=TABLE_FONT_SIZE, bold=bold)

    def _table_heading_lines(self) -> list[list[str]]:
        return [
            wrap_text(col.heading, FONT_BOLD, TABLE_FONT_SIZE, w - 2 * TABLE_PAD)
            for col, w in zip(ITEM_COLUMNS, self.col_widths)
        ]

    def table_heading_height(self) -> float:
        lines = max(len(x) for x in self._table_heading_lines())
        return 2 * TABLE_PAD + lines * TABLE_LINE_HEIGHT

    def draw_table_heading(self) -> None:
        heading_lines = self._table_heading_lines()
        height = self.table_heading_height()
        top = self.y

        self.c.setFillColorRGB(*HEADER_FILL)
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=1)
        self.c.setFillColorRGB(0, 0, 0)

        x = self.left
        for lines, w in zip(heading_lines, self.col_widths):
            self.c.line(x, top, x, top - height)
            y = top - TABLE_PAD - TABLE_LINE_HEIGHT + 1 * mm
            for line in lines:
                self._cell(x, w, y, line, "center", bold=True)
                y -= TABLE_LINE_HEIGHT
            x += w
        self.y = top - height

    def _row_cells(self, row: ComputedLineItem) -> list[str]:
        return [
            str(row.sl_no),
            row.description,
            row.hsn,
            format_quantity(row.quantity),
            row.unit,
            format_line_amount(row.rate),
            format_percent(row.tax_rate),
            row.tax_type.label,
            format_line_amount(row.amount),
            format_line_amount(row.tax_amount),
            format_line_amount(row.total),
        ]

    def _wrapped_cells(self, row: ComputedLineItem) -> list[list[str]]:
        return [
            wrap_text(value, FONT, TABLE_FONT_SIZE, w - 2 * TABLE_PAD)
            for value, w in zip(self._row_cells(row), self.col_widths)
        ]

    @staticmethod
    def row_height(lines: int) -> float:
        return max(TABLE_ROW_MIN_HEIGHT, 2 * TABLE_PAD + lines * TABLE_LINE_HEIGHT)

    def _lines_that_fit(self) -> int:
        return int((self.remaining() - 2 * TABLE_PAD) // TABLE_LINE_HEIGHT)

    def _fresh_table_room(self) -> float:
        return self.content_top - self.table_heading_height() - self.bottom

    def _draw_row_slice(self, cells: list[list[str]], start: int, count: int) -> None:
        height = self.row_height(count)
        top = self.y
        self._draw_row_frame(top, height)
        x = self.left
        for lines, col, w in zip(cells, ITEM_COLUMNS, self.col_widths):
            y = top - TABLE_PAD - TABLE_LINE_HEIGHT + 1 * mm
            for line in lines[start : start + count]:
                self._cell(x, w, y, line, col.align)
                y -= TABLE_LINE_HEIGHT
            x += w
        self.y = top - height
        self.pages[-1].rows += 1

    def _draw_row_frame(self, top: float, height: float) -> None:
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=0)
        x = self.left
        for w in self.col_widths[:-1]:
            x += w
            self.c.line(x, top, x, top - height)

    def _continue_table_on_new_page(self) -> None:
        self.start_page()
        self.draw_table_heading()
        self._mark("items_continued")

    def draw_item_table(self) -> None:
        self.ensure_space(max(TABLE_MIN_HEIGHT, self.table_heading_height() + TABLE_ROW_MIN_HEIGHT))
        self.draw_table_heading()
        self._mark("items")

        for row in self.totals.items:
            cells = self._wrapped_cells(row)
            total = max(len(c) for c in cells)
            start = 0
            while start < total:
                rest = total - start
                if self.row_height(rest) <= self.remaining():
                    self._draw_row_slice(cells, start, rest)
                    break
                # A row that fits a fresh page moves there whole, unless the
                # current page would be left with the headings alone.
                if start == 0 and self.pages[-1].rows and self.row_height(rest) <= self._fresh_table_room():
                    self._continue_table_on_new_page()
                    continue
                fit = min(self._lines_that_fit(), rest)
                if fit >= 1 and self.row_height(fit) <= self.remaining():
                    self._draw_row_slice(cells, start, fit)
                    start += fit
                self._continue_table_on_new_page()

        height = TABLE_ROW_MIN_HEIGHT
        if self.y - height < self.bottom:
            self._continue_table_on_new_page()
        self.pages[-1].rows += 1
        top = self.y
        label_width = sum(self.col_widths[:8])
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=0)
        for offset in (label_width, label_width + self.col_widths[8]):
            self.c.line(self.left + offset, top, self.left + offset, top - height)
        baseline = top - height / 2 - 1 * mm
        self.text_r(self.left + label_width - TABLE_PAD, baseline, "Total Taxable Value", size=8.5, bold=True)
        self.text_r(
            self.left + label_width + self.col_widths[8] - TABLE_PAD,
            baseline,
            format_total_amount(self.totals.taxable_amount),
            size=TABLE_FONT_SIZE,
            bold=True,
        )
        self.y = top - height - 4 * mm

    # --- (d) tax summary, (e) amount in words ---
    def _words_lines(self) -> list[str]:
        return wrap_text(f"Rupees: {self.totals.amount_in_words}", FONT, 10, self.width - 4 * mm)

    def _words_height(self) -> float:
        return max(8 * mm, 3.5 * mm + len(self._words_lines()) * 4.5 * mm)

    def tax_summary_height(self) -> float:
        return max(TAX_SUMMARY_HEIGHT, 6 * TAX_LINE_HEIGHT + 4 * mm + self._words_height() + 4 * mm)

    def draw_tax_summary(self) -> None:
        if self.ensure_space(self.tax_summary_height()):
            self.y -= BLOCK_GAP

        t = self.totals
        rates = self.invoice.rates
        lines = [
            ("Taxable Amount", t.taxable_amount, False),
            (f"ADD CGST @ {format_percent(rates.cgst, blank_zero=False)}", t.cgst_amount, False),
            (f"ADD SGST @ {format_percent(rates.sgst, blank_zero=False)}", t.sgst_amount, False),
            (f"ADD IGST @ {format_percent(rates.igst, blank_zero=False)}", t.igst_amount, False),
            ("Total GST", t.total_gst, True),
            ("GRAND TOTAL", t.grand_total, True),
        ]

        top = self.y
        height = len(lines) * TAX_LINE_HEIGHT
        grand_top = top - (len(lines) - 1) * TAX_LINE_HEIGHT
        self.c.setFillColorRGB(*GRAND_TOTAL_FILL)
        self.c.rect(self.left, grand_top - TAX_LINE_HEIGHT, self.width, TAX_LINE_HEIGHT, stroke=0, fill=1)
        self.c.setFillColorRGB(0, 0, 0)
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=0)

        for offset, (label, value, bold) in enumerate(lines, start=1):
            y = top - offset * TAX_LINE_HEIGHT + 1.8 * mm
            size = 11 if label == "GRAND TOTAL" else 10
            self.text(self.left + 2 * mm, y, label, size=size, bold=bold)
            self.text_r(self.right - 2 * mm, y, format_total_amount(value), size=size, bold=bold)

        self.y = top - height - 4 * mm
        self._mark("tax_summary")

        words = self._words_lines()
        height = self._words_height()
        top = self.y
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=0)
        y = top - 5 * mm
        for line in words:
            self.text(self.left + 2 * mm, y, line)
            y -= 4.5 * mm
        self.y = top - height - 4 * mm
        self._mark("amount_in_words")

    # --- (f) notes, bank, signature ---
    def _bottom_left_lines(self) -> list[tuple[str, bool, float]]:
        inv = self.invoice
        left_w = self.width * 0.7
        out: list[tuple[str, bool, float]] = [("Note :", True, 2 * mm)]
        notes = [n for n in inv.notes if n and n.strip()]
        for idx, note in enumerate(notes, start=1):
            for i, line in enumerate(wrap_text(f"{idx}. {note}", FONT, 9, left_w - 9 * mm)):
                out.append((line, False, 5 * mm if i == 0 else 8 * mm))
        out.append(("Bank Details :", True, 2 * mm))
        for line in wrap_text(inv.bank_details, FONT, 9, left_w - 9 * mm):
            out.append((line, False, 5 * mm))
        return out

    @staticmethod
    def _notes_height(count: int) -> float:
        return 8 * mm + count * BOTTOM_LINE_HEIGHT

    def bottom_block_height(self, lines: Optional[list[tuple[str, bool, float]]] = None) -> float:
        if lines is None:
            lines = self._bottom_left_lines()
        return max(BOTTOM_BLOCK_HEIGHT, self._notes_height(len(lines)))

    def _draw_signature(self, x_right: float, top: float, bottom: float, width: float) -> bool:
        reader = load_signature(self.profile.signature_image)
        if reader is None:
            return False
        try:
            iw, ih = reader.getSize()
            max_h = min(SIGNATURE_MAX_HEIGHT, top - bottom)
            scale = min(width / iw, max_h / ih)
            draw_w, draw_h = iw * scale, ih * scale
            self.c.drawImage(reader, x_right - draw_w, bottom, width=draw_w, height=draw_h, mask="auto")
        except Exception as exc:
            logger.warning("pdf.signature_draw_failed error=%s", exc)
            return False
        return True

    def _draw_notes(self, lines: list[tuple[str, bool, float]], height: float) -> None:
        top = self.y
        left_w = self.width * 0.7
        self.c.rect(self.left, top - height, self.width, height, stroke=1, fill=0)
        self.c.line(self.left + left_w, top, self.left + left_w, top - height)

        y = top - 5 * mm
        for line, bold, indent in lines:
            if bold and line.startswith("Bank"):
                y -= 1 * mm
            self.text(self.left + indent, y, line, size=10 if bold else 9, bold=bold)
            y -= BOTTOM_LINE_HEIGHT

    def draw_bottom_block(self) -> None:
        lines = self._bottom_left_lines()
        trailing = self.disclaimer_height()
        region = "bottom"
        start = 0
        while True:
            rest = lines[start:]
            needed = self.bottom_block_height(rest) + trailing
            if needed <= self.remaining():
                break
            if start == 0 and needed <= self.fresh_block_room():
                self.start_block_page()
                continue
            # Too long for any page: notes and bank text continue on the next page,
            # the signature goes with the last slice.
            fit = min(int((self.remaining() - 8 * mm) // BOTTOM_LINE_HEIGHT), len(rest))
            if fit >= 1:
                height = self._notes_height(fit)
                self._draw_notes(rest[:fit], height)
                self.y -= height
                self._mark(region)
                region = "bottom_continued"
                start += fit
            self.start_block_page()

        rest = lines[start:]
        height = self.bottom_block_height(rest)
        top = self.y
        self._draw_notes(rest, height)

        left_w = self.width * 0.7
        right_w = self.width - left_w
        x_right = self.left + left_w + right_w - 2 * mm
        for i, line in enumerate(wrap_text(f"For {self.profile.name}", FONT_BOLD, 10, right_w - 4 * mm)[:2]):
            self.text_r(x_right, top - 5 * mm - i * 4.5 * mm, line, bold=True)

        caption_y = top - height + 2 * mm
        signed = self._draw_signature(
            x_right,
            top=top - 14 * mm,
            bottom=caption_y + 4.5 * mm,
            width=right_w - 4 * mm,
        )
        if not signed and self.profile.signatory_name:
            self.text_r(x_right, caption_y + 4.5 * mm, self.profile.signatory_name)
        self.text_r(x_right, caption_y, SIGNATORY_CAPTION, size=9)

        self.y = top - height
        self._mark(region)

    # --- (g) disclaimer ---
    def _disclaimer_lines(self) -> list[str]:
        if not self.invoice.disclaimer:
            return []
        max_w = self.width - 4 * mm
        lines = wrap_text(self.invoice.disclaimer, FONT_ITALIC, 8.5, max_w)
        return clip_lines(lines, DISCLAIMER_MAX_LINES, FONT_ITALIC, 8.5, max_w)

    def disclaimer_height(self) -> float:
        lines = self._disclaimer_lines()
        if not lines:
            return 0.0
        return max(DISCLAIMER_HEIGHT, 2.2 * mm + len(lines) * DISCLAIMER_LINE_HEIGHT)

    def draw_disclaimer(self) -> None:
        lines = self._disclaimer_lines()
        if not lines:
            return
        cx = self.left + self.width / 2
        y = self.y - 4 * mm
        for line in lines:
            self.text_c(cx, y, line, size=8.5, italic=True)
            y -= DISCLAIMER_LINE_HEIGHT
        self.y -= self.disclaimer_height()
        self._mark("disclaimer")

    def render(self) -> RenderedInvoice:
        self.start_page()
        self.draw_party_block()
        self.draw_item_table()
        self.draw_tax_summary()
        self.draw_bottom_block()
        self.draw_disclaimer()
        self.c.save()

        logger.info(
            "pdf.rendered invoice_no=%s items=%s pages=%s",
            self.invoice.invoice_no or "draft",
            len(self.totals.items),
            len(self.pages),
        )
        return RenderedInvoice(pdf_bytes=self.buffer.getvalue(), pages=self.pages)


def render_invoice_pdf(invoice: Invoice, profile: IssuerProfile) -> RenderedInvoice:
    return InvoicePdfLayout(invoice, profile).render()


def render_invoice_to_pdf_bytes(invoice: Invoice, profile: IssuerProfile) -> bytes:
    return render_invoice_pdf(invoice, profile).pdf_bytes
