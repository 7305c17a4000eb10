import base64
import logging
from datetime import date

import pytest

from gstbill.config import DEFAULT_BANK_DETAILS, load_settings
from gstbill.drafts import new_invoice_draft
from gstbill.logging_setup import setup_logging
from gstbill.models import IssuerProfile
from gstbill.services.profile import (
    load_issuer_profile,
    read_signature_image,
    save_issuer_profile,
)


def test_settings_defaults(monkeypatch) -> None:
    for name in ("GSTBILL_STORAGE_DIR", "GSTBILL_DATABASE_URL", "GSTBILL_CGST_RATE", "GSTBILL_BANK_DETAILS"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.database_url == "sqlite:///storage/billing.db"
    assert settings.cgst_rate == 9.0
    assert settings.igst_rate == 28.0
    assert settings.bank_details == DEFAULT_BANK_DETAILS


def test_settings_from_env(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("GSTBILL_STORAGE_DIR", str(tmp_path))
    monkeypatch.setenv("GSTBILL_CGST_RATE", "6")
    monkeypatch.setenv("GSTBILL_SGST_RATE", "abc")
    monkeypatch.setenv("GSTBILL_IGST_RATE", "-5")
    settings = load_settings()
    assert settings.export_dir == tmp_path / "invoices"
    assert settings.log_dir == tmp_path / "logs"
    assert settings.cgst_rate == 6.0
    assert settings.sgst_rate == 9.0
    assert settings.igst_rate == 28.0


def test_new_invoice_draft(monkeypatch) -> None:
    monkeypatch.delenv("GSTBILL_DISCLAIMER", raising=False)
    draft = new_invoice_draft(today=date(2024, 1, 5))
    assert draft.date == "05-01-2024"
    assert len(draft.items) == 1 and draft.items[0].is_blank()
    assert (draft.rates.cgst, draft.rates.sgst, draft.rates.igst) == (9.0, 9.0, 28.0)
    assert len(draft.notes) == 2
    assert draft.disclaimer


def test_profile_defaults_then_round_trip(db, png_bytes, monkeypatch) -> None:
    monkeypatch.delenv("GSTBILL_ISSUER_NAME", raising=False)
    assert load_issuer_profile().name == "Raju Generator"

    save_issuer_profile(IssuerProfile(name="New Firm", gstin="10XYZ", signature_image=png_bytes))
    save_issuer_profile(IssuerProfile(name="New Firm Ltd", gstin="10XYZ", signature_image=png_bytes))

    loaded = load_issuer_profile()
    assert loaded.name == "New Firm Ltd"
    assert loaded.signature_image == png_bytes


def test_signature_from_data_url(png_bytes) -> None:
    url = "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")
    assert IssuerProfile(signature_image=url).signature_image == png_bytes
    assert IssuerProfile(signature_image="data:image/png;base64,@@@").signature_image is None


def test_read_signature_image(tmp_path, png_bytes) -> None:
    image = tmp_path / "sign.png"
    image.write_bytes(png_bytes)
    assert read_signature_image(image) == png_bytes

    text = tmp_path / "sign.txt"
    text.write_text("nope")
    with pytest.raises(ValueError):
        read_signature_image(text)


def test_setup_logging_writes_rotating_file(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("GSTBILL_LOG_DIR", str(tmp_path / "logs"))
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    saved_flag = getattr(root, "_gstbill_logging_configured", False)
    root._gstbill_logging_configured = False
    try:
        log_path = setup_logging()
        assert log_path == tmp_path / "logs" / "gstbill.log"
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
        assert logging.getLogger("PIL").level == logging.WARNING
        logging.getLogger("gstbill.test").info("hello")
        for handler in root.handlers:
            handler.flush()
        assert "hello" in (tmp_path / "logs" / "gstbill.log").read_text(encoding="utf-8")
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        root._gstbill_logging_configured = saved_flag


def test_debug_logging_echoes_sql(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("GSTBILL_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("GSTBILL_DEBUG", "1")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    saved_flag = getattr(root, "_gstbill_logging_configured", False)
    sql_logger = logging.getLogger("sqlalchemy.engine")
    saved_sql_level = sql_logger.level
    root._gstbill_logging_configured = False
    try:
        setup_logging()
        assert root.level == logging.DEBUG
        assert sql_logger.level == logging.INFO
    finally:
        for handler in root.handlers:
            if handler not in saved_handlers:
                handler.close()
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        root._gstbill_logging_configured = saved_flag
        sql_logger.setLevel(saved_sql_level)
