from __future__ import annotations


class BillingError(Exception):
    """Base class for errors reported to the UI layer."""


class MissingInvoiceIdError(BillingError, ValueError):
    def __init__(self) -> None:
        super().__init__("Missing invoice id for update.")


class InvoiceNotFoundError(BillingError, ValueError):
    def __init__(self, invoice_id: int) -> None:
        super().__init__(f"Invoice {invoice_id} not found.")
        self.invoice_id = invoice_id


class PersistenceError(BillingError):
    """The local store could not complete an operation; nothing was written."""
