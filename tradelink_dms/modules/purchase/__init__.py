from .totals import (
    BillLineDraft,
    compute_bill_lines,
    compute_bill_totals,
    suggested_purchase_rate,
    validate_bill,
)
from .service import PurchaseService

__all__ = [
    "BillLineDraft",
    "compute_bill_lines",
    "compute_bill_totals",
    "suggested_purchase_rate",
    "validate_bill",
    "PurchaseService",
]
