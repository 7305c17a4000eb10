from __future__ import annotations

from typing import Any, Iterable, Union

from gstbill.amount_words import amount_in_words, round_rupees
from gstbill.models import ComputedLineItem, InvoiceTotals, LineItem, TaxRates, TaxType


ItemInput = Union[LineItem, dict]


def _get(obj: Any, *names: str, default: Any = None) -> Any:
    for n in names:
        if n in obj and obj[n] not in (None, ""):
            return obj[n]
    return default


def to_line_item(item: ItemInput) -> LineItem:
    """Accepts a LineItem or a form payload using either snake_case or the form's short keys."""
    if isinstance(item, LineItem):
        return item
    return LineItem(
        description=_get(item, "description", default=""),
        hsn=_get(item, "hsn", default=""),
        quantity=_get(item, "quantity", "qty", default=0),
        rate=_get(item, "rate", "unit_price", default=0),
        unit=_get(item, "unit", default=""),
        tax_type=_get(item, "tax_type", "taxType", default=TaxType.DOMESTIC_SPLIT),
    )


def to_tax_rates(rates: Union[TaxRates, dict, None]) -> TaxRates:
    if rates is None:
        return TaxRates()
    if isinstance(rates, TaxRates):
        return rates
    return TaxRates(
        cgst=_get(rates, "cgst", "cgst_rate", default=0),
        sgst=_get(rates, "sgst", "sgst_rate", default=0),
        igst=_get(rates, "igst", "igst_rate", default=0),
    )


def compute_line_item(sl_no: int, item: LineItem, rates: TaxRates) -> ComputedLineItem:
    amount = item.quantity * item.rate
    cgst = sgst = igst = 0.0

    if amount > 0 and item.tax_type is TaxType.INTER_STATE:
        igst = amount * (rates.igst / 100)
    else:
        cgst = amount * (rates.cgst / 100)
        sgst = amount * (rates.sgst / 100)

    return ComputedLineItem(
        sl_no=sl_no,
        description=item.description,
        hsn=item.hsn,
        quantity=item.quantity,
        rate=item.rate,
        unit=item.unit,
        tax_type=item.tax_type,
        amount=amount,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        tax_rate=rates.rate_for(item.tax_type),
    )


def compute_invoice_totals(
    items: Iterable[ItemInput] | None,
    rates: Union[TaxRates, dict, None],
) -> InvoiceTotals:
    tax_rates = to_tax_rates(rates)
    computed = [
        compute_line_item(index, to_line_item(item), tax_rates)
        for index, item in enumerate(items or [], start=1)
    ]

    taxable = sum(row.amount for row in computed)
    cgst = sum(row.cgst_amount for row in computed)
    sgst = sum(row.sgst_amount for row in computed)
    igst = sum(row.igst_amount for row in computed)
    total_gst = cgst + sgst + igst
    grand_total = taxable + total_gst

    return InvoiceTotals(
        items=computed,
        taxable_amount=taxable,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        total_gst=total_gst,
        grand_total=grand_total,
        amount_in_words=amount_in_words(round_rupees(grand_total)),
    )
