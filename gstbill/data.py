import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import Column, ForeignKey, Integer, LargeBinary, event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Field, Session, SQLModel, create_engine

from gstbill.config import load_settings
from gstbill.models import DEFAULT_UNIT, TaxType


logger = logging.getLogger(__name__)


# --- DB MODELS ---
class InvoiceRecord(SQLModel, table=True):
    __tablename__ = "invoices"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_no: str = ""
    date: str = ""
    customer_name: str = ""
    customer_address: str = ""
    customer_gstin: str = ""
    state_code: str = ""
    work_order_no: str = ""
    taxable_amount: float = 0.0
    cgst_rate: float = 0.0
    sgst_rate: float = 0.0
    igst_rate: float = 0.0
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    igst_amount: float = 0.0
    total_gst: float = 0.0
    grand_total: float = 0.0
    amount_in_words: str = ""
    note_1: str = ""
    note_2: str = ""
    bank_details: str = ""
    created_at: str = Field(default_factory=lambda: datetime.now().isoformat())


class InvoiceItemRecord(SQLModel, table=True):
    __tablename__ = "invoice_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    invoice_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("invoices.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    sl_no: int = 0
    description: str = ""
    hsn: str = ""
    qty: float = 0.0
    rate: float = 0.0
    amount: float = 0.0
    unit: str = DEFAULT_UNIT
    tax_type: str = TaxType.DOMESTIC_SPLIT.value


class IssuerProfileRecord(SQLModel, table=True):
    __tablename__ = "issuer_profile"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = ""
    gstin: str = ""
    contact: str = ""
    deals_in: str = ""
    address: str = ""
    signatory_name: str = ""
    signature_image: Optional[bytes] = Field(default=None, sa_column=Column(LargeBinary, nullable=True))
    updated_at: str = Field(default_factory=lambda: datetime.now().isoformat())


# --- ENGINE / SESSION ---
_engine: Engine | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    database = url.database or ""
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def ensure_invoice_item_schema(engine: Engine) -> None:
    """Older stores created invoice_items without unit/tax_type; add them in place."""
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as conn:
        columns = {row[1] for row in conn.exec_driver_sql("PRAGMA table_info(invoice_items)").fetchall()}
        if "unit" not in columns:
            conn.exec_driver_sql(f"ALTER TABLE invoice_items ADD COLUMN unit TEXT DEFAULT '{DEFAULT_UNIT}'")
            logger.info("schema.upgrade table=invoice_items column=unit")
        if "tax_type" not in columns:
            conn.exec_driver_sql(
                f"ALTER TABLE invoice_items ADD COLUMN tax_type TEXT DEFAULT '{TaxType.DOMESTIC_SPLIT.value}'"
            )
            logger.info("schema.upgrade table=invoice_items column=tax_type")


def ensure_invoice_schema(engine: Engine) -> None:
    if engine.dialect.name != "sqlite":
        return
    with engine.begin() as conn:
        columns = {row[1] for row in conn.exec_driver_sql("PRAGMA table_info(invoices)").fetchall()}
        for column in ("note_1", "note_2", "bank_details"):
            if column not in columns:
                conn.exec_driver_sql(f"ALTER TABLE invoices ADD COLUMN {column} TEXT DEFAULT ''")
                logger.info("schema.upgrade table=invoices column=%s", column)


def init_db(database_url: str | None = None) -> Engine:
    global _engine
    url = database_url or load_settings().database_url
    _ensure_sqlite_dir(url)

    engine = create_engine(url)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    SQLModel.metadata.create_all(engine)
    ensure_invoice_schema(engine)
    ensure_invoice_item_schema(engine)

    if _engine is not None:
        _engine.dispose()
    _engine = engine
    logger.info("db.ready url=%s", engine.url.render_as_string(hide_password=True))
    return engine


def get_engine() -> Engine:
    if _engine is None:
        return init_db()
    return _engine


@contextmanager
def get_session() -> Iterator[Session]:
    with Session(get_engine(), expire_on_commit=False) as session:
        yield session
