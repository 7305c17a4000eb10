from __future__ import annotations

import base64
import binascii
import math
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_UNIT = "Nos."


def coerce_amount(value: Any) -> float:
    """Form input to a non-negative float; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number) or number < 0:
        return 0.0
    return number


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class TaxType(str, Enum):
    DOMESTIC_SPLIT = "CGST_SGST"
    INTER_STATE = "IGST"

    @classmethod
    def coerce(cls, value: Any) -> "TaxType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().upper())
        except ValueError:
            return cls.DOMESTIC_SPLIT

    @property
    def label(self) -> str:
        return "IGST" if self is TaxType.INTER_STATE else "CGST + SGST"


class LineItem(BaseModel):
    description: str = ""
    hsn: str = ""
    quantity: float = 0.0
    rate: float = 0.0
    unit: str = DEFAULT_UNIT
    tax_type: TaxType = TaxType.DOMESTIC_SPLIT

    @field_validator("description", "hsn", mode="before")
    @classmethod
    def _text_fields(cls, value: Any) -> str:
        return _text(value)

    @field_validator("quantity", "rate", mode="before")
    @classmethod
    def _numeric_fields(cls, value: Any) -> float:
        return coerce_amount(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _unit(cls, value: Any) -> str:
        return _text(value).strip() or DEFAULT_UNIT

    @field_validator("tax_type", mode="before")
    @classmethod
    def _tax_type(cls, value: Any) -> TaxType:
        return TaxType.coerce(value)

    @property
    def amount(self) -> float:
        return self.quantity * self.rate

    def is_blank(self) -> bool:
        return not (self.description.strip() or self.hsn.strip() or self.quantity or self.rate)


class TaxRates(BaseModel):
    cgst: float = 0.0
    sgst: float = 0.0
    igst: float = 0.0

    @field_validator("cgst", "sgst", "igst", mode="before")
    @classmethod
    def _rates(cls, value: Any) -> float:
        return coerce_amount(value)

    def rate_for(self, tax_type: TaxType) -> float:
        if tax_type is TaxType.INTER_STATE:
            return self.igst
        return self.cgst + self.sgst


class ComputedLineItem(BaseModel):
    sl_no: int
    description: str = ""
    hsn: str = ""
    quantity: float = 0.0
    rate: float = 0.0
    unit: str = DEFAULT_UNIT
    tax_type: TaxType = TaxType.DOMESTIC_SPLIT
    amount: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    tax_rate: float = 0.0

    @property
    def tax_amount(self) -> float:
        return self.cgst_amount + self.sgst_amount + self.igst_amount

    @property
    def total(self) -> float:
        return self.amount + self.tax_amount


class InvoiceTotals(BaseModel):
    items: List[ComputedLineItem] = Field(default_factory=list)
    taxable_amount: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    total_gst: float = 0.0
    grand_total: float = 0.0
    amount_in_words: str = "Zero rupees only"


class IssuerProfile(BaseModel):
    name: str = ""
    gstin: str = ""
    contact: str = ""
    deals_in: str = ""
    address: str = ""
    signatory_name: str = ""
    signature_image: Optional[bytes] = None

    @field_validator("name", "gstin", "contact", "deals_in", "address", "signatory_name", mode="before")
    @classmethod
    def _text_fields(cls, value: Any) -> str:
        return _text(value)

    @field_validator("signature_image", mode="before")
    @classmethod
    def _signature(cls, value: Any) -> Optional[bytes]:
        if not value:
            return None
        if isinstance(value, str):
            return decode_data_url(value)
        return bytes(value)


def decode_data_url(value: str) -> Optional[bytes]:
    """`data:image/png;base64,...` (or bare base64) to raw bytes, None if undecodable."""
    payload = value.strip()
    if payload.startswith("data:"):
        _, _, payload = payload.partition(",")
    if not payload:
        return None
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None


class Invoice(BaseModel):
    id: Optional[int] = None
    invoice_no: str = ""
    date: str = ""
    customer_name: str = ""
    customer_address: str = ""
    customer_gstin: str = ""
    state_code: str = ""
    work_order_no: str = ""
    items: List[LineItem] = Field(default_factory=list)
    rates: TaxRates = Field(default_factory=TaxRates)
    notes: List[str] = Field(default_factory=lambda: ["", ""])
    bank_details: str = ""
    disclaimer: Optional[str] = None

    @field_validator(
        "invoice_no",
        "date",
        "customer_name",
        "customer_address",
        "customer_gstin",
        "state_code",
        "work_order_no",
        "bank_details",
        mode="before",
    )
    @classmethod
    def _text_fields(cls, value: Any) -> str:
        return _text(value)

    @field_validator("notes", mode="before")
    @classmethod
    def _notes(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [_text(v) for v in value]

    @property
    def totals(self) -> InvoiceTotals:
        from gstbill.invoice_calculations import compute_invoice_totals

        return compute_invoice_totals(self.items, self.rates)


class InvoiceSummary(BaseModel):
    id: int
    invoice_no: str
    date: str
    customer_name: str
    grand_total: float
