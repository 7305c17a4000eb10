from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from gstbill.env import load_env


DEFAULT_NOTES = (
    "Goods once sold will not be taken back.",
    "All the disputes arising out of this invoice settled in Patna Jurisdiction.",
)
DEFAULT_BANK_DETAILS = (
    "Bank of India, Jamal Road, Patna, A/C No. 44152010000578, IFSC - BKID0004415"
)
DEFAULT_DISCLAIMER = (
    "This is a computer generated invoice and does not require a signature."
)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip()


def _env_rate(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


@dataclass(frozen=True)
class Settings:
    database_url: str
    storage_dir: Path
    export_dir: Path
    log_dir: Path
    debug: bool

    cgst_rate: float
    sgst_rate: float
    igst_rate: float

    notes: tuple[str, str]
    bank_details: str
    disclaimer: str

    issuer_name: str
    issuer_gstin: str
    issuer_contact: str
    issuer_deals_in: str
    issuer_address: str
    signatory_name: str


def load_settings() -> Settings:
    load_env()

    storage_dir = Path(_env_str("GSTBILL_STORAGE_DIR", "storage"))
    default_db = f"sqlite:///{(storage_dir / 'billing.db').as_posix()}"

    return Settings(
        database_url=_env_str("GSTBILL_DATABASE_URL", default_db),
        storage_dir=storage_dir,
        export_dir=Path(_env_str("GSTBILL_EXPORT_DIR", str(storage_dir / "invoices"))),
        log_dir=Path(_env_str("GSTBILL_LOG_DIR", str(storage_dir / "logs"))),
        debug=os.getenv("GSTBILL_DEBUG") == "1",
        cgst_rate=_env_rate("GSTBILL_CGST_RATE", 9.0),
        sgst_rate=_env_rate("GSTBILL_SGST_RATE", 9.0),
        igst_rate=_env_rate("GSTBILL_IGST_RATE", 28.0),
        notes=(
            _env_str("GSTBILL_NOTE_1", DEFAULT_NOTES[0]),
            _env_str("GSTBILL_NOTE_2", DEFAULT_NOTES[1]),
        ),
        bank_details=_env_str("GSTBILL_BANK_DETAILS", DEFAULT_BANK_DETAILS),
        disclaimer=_env_str("GSTBILL_DISCLAIMER", DEFAULT_DISCLAIMER),
        issuer_name=_env_str("GSTBILL_ISSUER_NAME", "Raju Generator"),
        issuer_gstin=_env_str("GSTBILL_ISSUER_GSTIN", "10AMXPP3961C1Z3"),
        issuer_contact=_env_str("GSTBILL_ISSUER_CONTACT", "9308054050"),
        issuer_deals_in=_env_str(
            "GSTBILL_ISSUER_DEALS_IN",
            "Generator Service, Repairing, Maintenance and Hire work.",
        ),
        issuer_address=_env_str(
            "GSTBILL_ISSUER_ADDRESS", "Exhibition Road, Raja Market, Patna - 800 001"
        ),
        signatory_name=_env_str("GSTBILL_SIGNATORY_NAME", "Pappu Bhardwaj"),
    )
