# Services module
from invoice_engine.services.invoice_service import InvoiceService
from invoice_engine.services.invoice_state_machine import InvoiceStateError

__all__ = [
    "InvoiceService",
    "InvoiceStateError",
]
