from __future__ import annotations

from datetime import date

from gstbill.config import Settings, load_settings
from gstbill.models import Invoice, LineItem, TaxRates


def today_str(today: date | None = None) -> str:
    return (today or date.today()).strftime("%d-%m-%Y")


def new_invoice_draft(settings: Settings | None = None, today: date | None = None) -> Invoice:
    settings = settings or load_settings()
    return Invoice(
        date=today_str(today),
        items=[LineItem()],
        rates=TaxRates(
            cgst=settings.cgst_rate,
            sgst=settings.sgst_rate,
            igst=settings.igst_rate,
        ),
        notes=list(settings.notes),
        bank_details=settings.bank_details,
        disclaimer=settings.disclaimer or None,
    )
