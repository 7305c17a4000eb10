import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError

from gstbill import data
from gstbill.errors import InvoiceNotFoundError, MissingInvoiceIdError, PersistenceError
from gstbill.services import invoices as invoices_service
from gstbill.models import Invoice, LineItem, TaxRates, TaxType
from gstbill.services.invoices import (
    count_items,
    create_invoice,
    delete_invoice,
    get_invoice,
    list_invoices,
    save_invoice,
    update_invoice,
)


def _invoice(invoice_no: str = "RAJ-001", date: str = "15-01-2024", items=None) -> Invoice:
    return Invoice(
        invoice_no=invoice_no,
        date=date,
        customer_name="Patna Builders",
        customer_address="Boring Road, Patna",
        customer_gstin="10ABCDE1234F1Z5",
        state_code="10",
        work_order_no="WO-77",
        items=items
        if items is not None
        else [
            LineItem(description="Generator repair", hsn="9987", quantity=1, rate=1000),
            LineItem(description="Hire", quantity=2, rate=500, unit="Days", tax_type=TaxType.INTER_STATE),
        ],
        rates=TaxRates(cgst=9, sgst=9, igst=28),
        notes=["Goods once sold will not be taken back.", ""],
        bank_details="Bank of India",
    )


def test_create_and_get_round_trip(db) -> None:
    invoice_id = create_invoice(_invoice())
    stored = get_invoice(invoice_id)

    assert stored is not None
    assert stored.header.invoice_no == "RAJ-001"
    assert stored.header.grand_total == pytest.approx(1000 * 1.18 + 1000 * 1.28)
    assert stored.header.amount_in_words.endswith("rupees only")
    assert [it.sl_no for it in stored.items] == [1, 2]

    rebuilt = stored.to_invoice(disclaimer="Computer generated")
    assert rebuilt.id == invoice_id
    assert rebuilt.customer_gstin == "10ABCDE1234F1Z5"
    assert rebuilt.items[1].unit == "Days"
    assert rebuilt.items[1].tax_type is TaxType.INTER_STATE
    assert rebuilt.rates.igst == 28
    assert rebuilt.notes[0] == "Goods once sold will not be taken back."
    assert rebuilt.disclaimer == "Computer generated"


def test_get_missing_invoice_returns_none(db) -> None:
    assert get_invoice(12345) is None


def test_update_replaces_items(db) -> None:
    invoice_id = create_invoice(_invoice())
    assert count_items(invoice_id) == 2

    shorter = _invoice(invoice_no="RAJ-001A", items=[LineItem(description="Only", quantity=1, rate=50)])
    update_invoice(invoice_id, shorter)

    stored = get_invoice(invoice_id)
    assert stored.header.invoice_no == "RAJ-001A"
    assert count_items(invoice_id) == 1
    assert stored.items[0].description == "Only"
    assert stored.header.taxable_amount == pytest.approx(50.0)


def test_update_without_id_fails(db) -> None:
    with pytest.raises(MissingInvoiceIdError, match="Missing invoice id for update."):
        update_invoice(None, _invoice())


def test_update_unknown_id_fails(db) -> None:
    with pytest.raises(InvoiceNotFoundError):
        update_invoice(999, _invoice())


def test_delete_removes_items(db) -> None:
    invoice_id = create_invoice(_invoice())
    delete_invoice(invoice_id)

    assert get_invoice(invoice_id) is None
    assert count_items(invoice_id) == 0
    assert list_invoices() == []


def test_list_newest_first_and_filters(db) -> None:
    first = create_invoice(_invoice("RAJ-001", "15-01-2024"))
    second = create_invoice(_invoice("RAJ-002", "16-01-2024"))
    third = create_invoice(_invoice("OTHER-9", "15-01-2024"))

    assert [s.id for s in list_invoices()] == [third, second, first]
    assert [s.id for s in list_invoices(invoice_no="raj")] == [second, first]
    assert [s.id for s in list_invoices(date="2024-01-15")] == [third, first]
    assert [s.id for s in list_invoices(date="16-01-2024")] == [second]
    assert [s.id for s in list_invoices(invoice_no="  ", date="")] == [third, second, first]


def test_invoice_no_filter_is_plain_text(db) -> None:
    create_invoice(_invoice("RAJX1"))
    percent = create_invoice(_invoice("100%"))
    underscore = create_invoice(_invoice("RAJ_1"))

    assert [s.id for s in list_invoices(invoice_no="RAJ_1")] == [underscore]
    assert [s.id for s in list_invoices(invoice_no="raj_")] == [underscore]
    assert [s.id for s in list_invoices(invoice_no="0%")] == [percent]
    assert list_invoices(invoice_no="%1") == []


def _fail_insert(session, invoice_id, totals) -> None:
    raise OperationalError("INSERT INTO invoice_items", {}, Exception("disk I/O error"))


def test_create_failure_writes_nothing(db, monkeypatch) -> None:
    monkeypatch.setattr(invoices_service, "_insert_items", _fail_insert)

    with pytest.raises(PersistenceError):
        create_invoice(_invoice())

    assert list_invoices() == []


def test_update_failure_keeps_previous_invoice(db, monkeypatch) -> None:
    invoice_id = create_invoice(_invoice())
    monkeypatch.setattr(invoices_service, "_insert_items", _fail_insert)

    with pytest.raises(PersistenceError):
        update_invoice(invoice_id, _invoice(invoice_no="CHANGED", items=[LineItem(quantity=1, rate=1)]))

    stored = get_invoice(invoice_id)
    assert stored.header.invoice_no == "RAJ-001"
    assert [it.description for it in stored.items] == ["Generator repair", "Hire"]


def test_header_delete_cascades_to_items(db) -> None:
    invoice_id = create_invoice(_invoice())
    with db.begin() as conn:
        conn.exec_driver_sql("DELETE FROM invoices WHERE id = ?", (invoice_id,))

    assert count_items(invoice_id) == 0


def test_count_items_reports_storage_failure(db, monkeypatch) -> None:
    def broken_rows(session, invoice_id):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(invoices_service, "_item_rows", broken_rows)
    with pytest.raises(PersistenceError):
        count_items(1)


def test_save_invoice_creates_then_updates(db) -> None:
    draft = _invoice()
    invoice_id = save_invoice(draft)
    assert draft.id == invoice_id
    draft.customer_name = "Renamed"
    assert save_invoice(draft) == invoice_id
    assert get_invoice(invoice_id).header.customer_name == "Renamed"
    assert len(list_invoices()) == 1


def test_legacy_store_gains_new_columns(tmp_path) -> None:
    url = f"sqlite:///{(tmp_path / 'legacy.db').as_posix()}"
    legacy = create_engine(url)
    with legacy.begin() as conn:
        conn.exec_driver_sql(
            "CREATE TABLE invoices (id INTEGER PRIMARY KEY AUTOINCREMENT, invoice_no TEXT, date TEXT, "
            "customer_name TEXT, customer_address TEXT, customer_gstin TEXT, state_code TEXT, "
            "work_order_no TEXT, taxable_amount REAL, cgst_rate REAL, sgst_rate REAL, igst_rate REAL, "
            "cgst_amount REAL, sgst_amount REAL, igst_amount REAL, total_gst REAL, grand_total REAL, "
            "amount_in_words TEXT, created_at TEXT)"
        )
        conn.exec_driver_sql(
            "CREATE TABLE invoice_items (id INTEGER PRIMARY KEY AUTOINCREMENT, invoice_id INTEGER NOT NULL "
            "REFERENCES invoices(id) ON DELETE CASCADE, sl_no INTEGER, description TEXT, hsn TEXT, "
            "qty REAL, rate REAL, amount REAL)"
        )
        conn.exec_driver_sql(
            "INSERT INTO invoices (invoice_no, date, customer_name, customer_address, customer_gstin, "
            "state_code, work_order_no, taxable_amount, cgst_rate, sgst_rate, igst_rate, cgst_amount, "
            "sgst_amount, igst_amount, total_gst, grand_total, amount_in_words, created_at) VALUES "
            "('OLD-1', '01-01-2023', 'Old Customer', '', '', '', '', 100, 9, 9, 28, 9, 9, 0, 18, 118, "
            "'One hundred eighteen rupees only', '2023-01-01')"
        )
        conn.exec_driver_sql(
            "INSERT INTO invoice_items (invoice_id, sl_no, description, hsn, qty, rate, amount) "
            "VALUES (1, 1, 'Service', '', 1, 100, 100)"
        )
    legacy.dispose()

    engine = data.init_db(url)
    try:
        with engine.connect() as conn:
            item_cols = {r[1] for r in conn.exec_driver_sql("PRAGMA table_info(invoice_items)").fetchall()}
            header_cols = {r[1] for r in conn.exec_driver_sql("PRAGMA table_info(invoices)").fetchall()}
        assert {"unit", "tax_type"} <= item_cols
        assert {"note_1", "note_2", "bank_details"} <= header_cols

        stored = get_invoice(1)
        rebuilt = stored.to_invoice()
        assert rebuilt.items[0].unit == "Nos."
        assert rebuilt.items[0].tax_type is TaxType.DOMESTIC_SPLIT
        assert rebuilt.notes == ["", ""]
    finally:
        engine.dispose()
