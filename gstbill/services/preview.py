from __future__ import annotations

import base64
import logging
from html import escape
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from gstbill.formatting import (
    format_line_amount,
    format_percent,
    format_quantity,
    format_total_amount,
)
from gstbill.models import Invoice, IssuerProfile


logger = logging.getLogger(__name__)


def signature_data_url(image: Optional[bytes]) -> Optional[str]:
    if not image:
        return None
    try:
        with Image.open(BytesIO(image)) as img:
            mime = Image.MIME.get(img.format or "")
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("preview.signature_unreadable error=%s", exc)
        return None
    if not mime:
        return None
    return f"data:{mime};base64,{base64.b64encode(image).decode('ascii')}"


def _lines(value: str) -> str:
    return "<br>".join(escape(line) for line in value.splitlines() if line.strip())


def build_invoice_preview_html(invoice: Invoice, profile: IssuerProfile) -> str:
    totals = invoice.totals
    rates = invoice.rates

    rows_html = ""
    for row in totals.items:
        rows_html += (
            "<tr>"
            f"<td class='text-center'>{row.sl_no}</td>"
            f"<td class='text-left'>{escape(row.description)}</td>"
            f"<td class='text-center'>{escape(row.hsn)}</td>"
            f"<td class='text-center'>{format_quantity(row.quantity)}</td>"
            f"<td class='text-center'>{escape(row.unit)}</td>"
            f"<td class='text-right'>{format_line_amount(row.rate)}</td>"
            f"<td class='text-center'>{format_percent(row.tax_rate)}</td>"
            f"<td class='text-center'>{escape(row.tax_type.label)}</td>"
            f"<td class='text-right'>{format_line_amount(row.amount)}</td>"
            f"<td class='text-right'>{format_line_amount(row.tax_amount)}</td>"
            f"<td class='text-right'>{format_line_amount(row.total)}</td>"
            "</tr>"
        )

    tax_rows = [
        ("Taxable Amount", totals.taxable_amount),
        (f"ADD CGST @ {format_percent(rates.cgst, blank_zero=False)}", totals.cgst_amount),
        (f"ADD SGST @ {format_percent(rates.sgst, blank_zero=False)}", totals.sgst_amount),
        (f"ADD IGST @ {format_percent(rates.igst, blank_zero=False)}", totals.igst_amount),
        ("Total GST", totals.total_gst),
    ]
    tax_html = "".join(
        f"<tr><td>{escape(label)}</td><td class='text-right'>{format_total_amount(value)}</td></tr>"
        for label, value in tax_rows
    )

    notes = [n for n in invoice.notes if n and n.strip()]
    notes_html = "".join(f"<li>{escape(n)}</li>" for n in notes)

    signature_url = signature_data_url(profile.signature_image)
    if signature_url:
        signature_html = f"<img class='signature' src='{signature_url}' alt='Signature'>"
    else:
        signature_html = f"<div class='signatory'>{escape(profile.signatory_name)}</div>"

    disclaimer_html = ""
    if invoice.disclaimer:
        disclaimer_html = f"<div class='disclaimer'>{escape(invoice.disclaimer)}</div>"

    return (
        "<div class='invoice'>"
        "<div class='header'>"
        "<div class='flex justify-between'>"
        f"<span>GST IN : {escape(profile.gstin)}</span>"
        "<span class='font-semibold'>TAX INVOICE</span>"
        f"<span>Contact No.: {escape(profile.contact)}</span>"
        "</div>"
        f"<div class='firm-name'>{escape(profile.name)}</div>"
        f"<div>Deals in : {escape(profile.deals_in)}</div>"
        f"<div>{_lines(profile.address)}</div>"
        "<div class='flex justify-between'>"
        f"<span>Invoice No : {escape(invoice.invoice_no)}</span>"
        f"<span>Date : {escape(invoice.date)}</span>"
        "</div>"
        "</div>"
        "<div class='parties flex'>"
        "<div class='customer'>"
        "<div class='font-semibold'>Customer Details:</div>"
        f"<div>Name: {escape(invoice.customer_name)}</div>"
        f"<div>Address: {_lines(invoice.customer_address)}</div>"
        f"<div>GSTIN No.: {escape(invoice.customer_gstin)}</div>"
        f"<div>State Code: {escape(invoice.state_code)}</div>"
        "</div>"
        "<div class='transport'>"
        "<div class='font-semibold'>Transporter Details:</div>"
        f"<div>Work Order No.: {escape(invoice.work_order_no)}</div>"
        "</div>"
        "</div>"
        "<table class='items'>"
        "<thead><tr>"
        "<th>Sl. No.</th><th>Description of Supply</th><th>HSN / SAC</th><th>Qty.</th>"
        "<th>Unit</th><th>Rate / Item (Rs.)</th><th>Tax %</th><th>Tax Type</th>"
        "<th>Taxable Value (Rs.)</th><th>Tax Amount (Rs.)</th><th>Total (Rs.)</th>"
        "</tr></thead>"
        f"<tbody>{rows_html}</tbody>"
        "<tfoot><tr class='font-semibold'>"
        "<td colspan='8' class='text-right'>Total Taxable Value</td>"
        f"<td class='text-right'>{format_total_amount(totals.taxable_amount)}</td>"
        "<td></td><td></td>"
        "</tr></tfoot>"
        "</table>"
        "<table class='tax-summary'>"
        f"{tax_html}"
        "<tr class='grand-total font-semibold'>"
        f"<td>GRAND TOTAL</td><td class='text-right'>{format_total_amount(totals.grand_total)}</td>"
        "</tr>"
        "</table>"
        f"<div class='amount-words'>Rupees: {escape(totals.amount_in_words)}</div>"
        "<div class='bottom flex'>"
        "<div class='notes'>"
        "<div class='font-semibold'>Note :</div>"
        f"<ol>{notes_html}</ol>"
        "<div class='font-semibold'>Bank Details :</div>"
        f"<div>{_lines(invoice.bank_details)}</div>"
        "</div>"
        "<div class='signature-block'>"
        f"<div class='font-semibold'>For {escape(profile.name)}</div>"
        f"{signature_html}"
        "<div>Authorised Signatory</div>"
        "</div>"
        "</div>"
        f"{disclaimer_html}"
        "</div>"
    )
