# tradelink_dms/modules/sales/__init__.py
"""
Sales package exports.

- compute_line_pricing / build_order_item: scheme-aware line pricing
- validate_order / OrderCart: order-entry checks, one company per order
- OrderService: place orders and move them through their statuses
"""

from .pricing import LinePricing, compute_line_pricing, build_order_item
from .validation import (
    OrderCart,
    validate_company_mix,
    validate_order,
    validate_order_line,
)
from .service import OrderService

__all__ = [
    "LinePricing",
    "compute_line_pricing",
    "build_order_item",
    "OrderCart",
    "validate_company_mix",
    "validate_order",
    "validate_order_line",
    "OrderService",
]
