from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from gstbill.config import load_settings
from gstbill.models import Invoice, IssuerProfile
from gstbill.services.invoice_pdf import render_invoice_to_pdf_bytes


logger = logging.getLogger(__name__)


def _sanitize_filename(value: str) -> str:
    cleaned = value.strip().replace(os.sep, "-").replace("/", "-")
    cleaned = re.sub(r"[^\w.\-]+", "_", cleaned, flags=re.UNICODE)
    return cleaned.strip("._") or "draft"


def build_invoice_filename(invoice_no: str | None) -> str:
    return f"Invoice-{_sanitize_filename(invoice_no or '')}.pdf"


def export_invoice_pdf(
    invoice: Invoice,
    profile: IssuerProfile,
    target_dir: str | Path | None = None,
) -> Path:
    directory = Path(target_dir) if target_dir else load_settings().export_dir
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / build_invoice_filename(invoice.invoice_no)
    path.write_bytes(render_invoice_to_pdf_bytes(invoice, profile))
    logger.info("invoice.exported invoice_no=%s path=%s", invoice.invoice_no or "draft", path)
    return path
