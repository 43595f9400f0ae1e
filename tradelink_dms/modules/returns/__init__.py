from .computation import ReturnComputation, ReturnQty, compute_return, is_damaged_reason
from .service import ReturnService

__all__ = ["ReturnComputation", "ReturnQty", "compute_return", "is_damaged_reason", "ReturnService"]
