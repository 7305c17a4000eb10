from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from gstbill.data import InvoiceItemRecord, InvoiceRecord, get_session
from gstbill.errors import InvoiceNotFoundError, MissingInvoiceIdError, PersistenceError
from gstbill.models import Invoice, InvoiceSummary, InvoiceTotals, LineItem, TaxRates


logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


@dataclass
class StoredInvoice:
    header: InvoiceRecord
    items: list[InvoiceItemRecord] = field(default_factory=list)

    def to_invoice(self, disclaimer: Optional[str] = None) -> Invoice:
        """Editable draft of the stored invoice; the disclaimer is not stored per invoice."""
        h = self.header
        notes = [h.note_1 or "", h.note_2 or ""]
        return Invoice(
            id=h.id,
            invoice_no=h.invoice_no,
            date=h.date,
            customer_name=h.customer_name,
            customer_address=h.customer_address,
            customer_gstin=h.customer_gstin,
            state_code=h.state_code,
            work_order_no=h.work_order_no,
            rates=TaxRates(cgst=h.cgst_rate, sgst=h.sgst_rate, igst=h.igst_rate),
            items=[
                LineItem(
                    description=it.description,
                    hsn=it.hsn,
                    quantity=it.qty,
                    rate=it.rate,
                    unit=it.unit,
                    tax_type=it.tax_type,
                )
                for it in self.items
            ],
            notes=notes,
            bank_details=h.bank_details or "",
            disclaimer=disclaimer,
        )


def _apply_header(record: InvoiceRecord, invoice: Invoice, totals: InvoiceTotals) -> None:
    record.invoice_no = invoice.invoice_no
    record.date = invoice.date
    record.customer_name = invoice.customer_name
    record.customer_address = invoice.customer_address
    record.customer_gstin = invoice.customer_gstin
    record.state_code = invoice.state_code
    record.work_order_no = invoice.work_order_no
    record.cgst_rate = invoice.rates.cgst
    record.sgst_rate = invoice.rates.sgst
    record.igst_rate = invoice.rates.igst
    record.taxable_amount = totals.taxable_amount
    record.cgst_amount = totals.cgst_amount
    record.sgst_amount = totals.sgst_amount
    record.igst_amount = totals.igst_amount
    record.total_gst = totals.total_gst
    record.grand_total = totals.grand_total
    record.amount_in_words = totals.amount_in_words
    notes = list(invoice.notes) + ["", ""]
    record.note_1 = notes[0]
    record.note_2 = notes[1]
    record.bank_details = invoice.bank_details


def _item_rows(session: Session, invoice_id: int) -> list[InvoiceItemRecord]:
    return list(
        session.exec(
            select(InvoiceItemRecord)
            .where(InvoiceItemRecord.invoice_id == invoice_id)
            .order_by(InvoiceItemRecord.sl_no)
        ).all()
    )


def _insert_items(session: Session, invoice_id: int, totals: InvoiceTotals) -> None:
    for row in totals.items:
        session.add(
            InvoiceItemRecord(
                invoice_id=invoice_id,
                sl_no=row.sl_no,
                description=row.description,
                hsn=row.hsn,
                qty=row.quantity,
                rate=row.rate,
                amount=row.amount,
                unit=row.unit,
                tax_type=row.tax_type.value,
            )
        )


def create_invoice(invoice: Invoice) -> int:
    totals = invoice.totals
    try:
        with get_session() as session:
            with session.begin():
                record = InvoiceRecord()
                _apply_header(record, invoice, totals)
                session.add(record)
                session.flush()
                invoice_id = int(record.id)
                _insert_items(session, invoice_id, totals)
    except SQLAlchemyError as exc:
        logger.exception("invoice.create_failed invoice_no=%s", invoice.invoice_no)
        raise PersistenceError(f"Could not save invoice: {exc}") from exc

    logger.info("invoice.created id=%s invoice_no=%s items=%s", invoice_id, invoice.invoice_no, len(invoice.items))
    return invoice_id


def _normalize_date_filter(value: str) -> str:
    value = value.strip()
    match = _ISO_DATE.match(value)
    if match:
        year, month, day = match.groups()
        return f"{day}-{month}-{year}"
    return value


def list_invoices(invoice_no: Optional[str] = None, date: Optional[str] = None) -> list[InvoiceSummary]:
    stmt = select(InvoiceRecord).order_by(InvoiceRecord.id.desc())
    if invoice_no and invoice_no.strip():
        needle = invoice_no.strip().lower()
        # Plain text match: "%" and "_" typed by the user are not wildcards.
        stmt = stmt.where(func.lower(InvoiceRecord.invoice_no).contains(needle, autoescape=True))
    if date and date.strip():
        stmt = stmt.where(InvoiceRecord.date == _normalize_date_filter(date))

    try:
        with get_session() as session:
            rows = session.exec(stmt).all()
    except SQLAlchemyError as exc:
        logger.exception("invoice.list_failed")
        raise PersistenceError(f"Could not list invoices: {exc}") from exc

    return [
        InvoiceSummary(
            id=row.id,
            invoice_no=row.invoice_no,
            date=row.date,
            customer_name=row.customer_name,
            grand_total=row.grand_total,
        )
        for row in rows
    ]


def get_invoice(invoice_id: int) -> StoredInvoice | None:
    try:
        with get_session() as session:
            header = session.get(InvoiceRecord, invoice_id)
            if header is None:
                return None
            items = _item_rows(session, invoice_id)
    except SQLAlchemyError as exc:
        logger.exception("invoice.get_failed id=%s", invoice_id)
        raise PersistenceError(f"Could not load invoice {invoice_id}: {exc}") from exc

    return StoredInvoice(header=header, items=items)


def update_invoice(invoice_id: Optional[int], invoice: Invoice) -> None:
    if not invoice_id:
        raise MissingInvoiceIdError()

    totals = invoice.totals
    try:
        with get_session() as session:
            with session.begin():
                record = session.get(InvoiceRecord, invoice_id)
                if record is None:
                    raise InvoiceNotFoundError(invoice_id)
                _apply_header(record, invoice, totals)
                session.add(record)

                # Items are replaced wholesale on every save.
                for item in _item_rows(session, invoice_id):
                    session.delete(item)
                session.flush()
                _insert_items(session, invoice_id, totals)
    except SQLAlchemyError as exc:
        logger.exception("invoice.update_failed id=%s", invoice_id)
        raise PersistenceError(f"Could not update invoice {invoice_id}: {exc}") from exc

    logger.info("invoice.updated id=%s invoice_no=%s items=%s", invoice_id, invoice.invoice_no, len(invoice.items))


def delete_invoice(invoice_id: int) -> None:
    try:
        with get_session() as session:
            with session.begin():
                for item in _item_rows(session, invoice_id):
                    session.delete(item)
                session.flush()
                record = session.get(InvoiceRecord, invoice_id)
                if record is not None:
                    session.delete(record)
    except SQLAlchemyError as exc:
        logger.exception("invoice.delete_failed id=%s", invoice_id)
        raise PersistenceError(f"Could not delete invoice {invoice_id}: {exc}") from exc

    logger.info("invoice.deleted id=%s", invoice_id)


def save_invoice(invoice: Invoice) -> int:
    """Create or update depending on whether the draft already has an id.

    A newly created invoice's id is written back onto the draft, so saving
    the same draft again updates it instead of adding a second invoice.
    """
    if invoice.id:
        update_invoice(invoice.id, invoice)
        return int(invoice.id)
    invoice_id = create_invoice(invoice)
    invoice.id = invoice_id
    return invoice_id


def count_items(invoice_id: int) -> int:
    try:
        with get_session() as session:
            return len(_item_rows(session, invoice_id))
    except SQLAlchemyError as exc:
        logger.exception("invoice.count_items_failed id=%s", invoice_id)
        raise PersistenceError(f"Could not count items of invoice {invoice_id}: {exc}") from exc
