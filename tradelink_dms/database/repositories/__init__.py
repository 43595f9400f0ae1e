# tradelink_dms/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from tradelink_dms.database.repositories import (
        # Reference data
        CompaniesRepo, Company, CustomersRepo, Customer, Salesperson,
        ProductsRepo, Product,
        # Orders / invoices
        OrdersRepo, OrderHeader, OrderItem, Invoice,
        # Returns & damage
        ReturnsRepo, SalesReturn, SalesReturnItem, DamageRepo, DamagedGoodsLog,
        # Inventory ledger
        InventoryRepo, InventoryMovement, StockLevel,
        # Purchases
        PurchasesRepo, BillHeader, BillLine, BillTotals, PurchaseBill,
        # Metadata side-map
        MetadataRepo,
    )

Write methods that take part in a larger unit of work never commit; wrap
them in `tradelink_dms.database.transaction(conn)`.
"""

# ------------- Reference data --------------
from .companies_repo import CompaniesRepo, Company
from .customers_repo import CustomersRepo, Customer, Salesperson
from .products_repo import ProductsRepo, Product

# ------------- Orders / invoices -----------
from .orders_repo import OrdersRepo, OrderHeader, OrderItem, Invoice

# ------------- Returns & damage ------------
from .returns_repo import ReturnsRepo, SalesReturn, SalesReturnItem
from .damage_repo import DamageRepo, DamagedGoodsLog

# ---------------- Inventory ----------------
from .inventory_repo import InventoryRepo, InventoryMovement, StockLevel

# ---------------- Purchases ----------------
from .purchases_repo import PurchasesRepo, BillHeader, BillLine, BillTotals, PurchaseBill

# ---------------- Metadata -----------------
from .metadata_repo import MetadataRepo

__all__ = [
    # reference data
    "CompaniesRepo",
    "Company",
    "CustomersRepo",
    "Customer",
    "Salesperson",
    "ProductsRepo",
    "Product",
    # orders
    "OrdersRepo",
    "OrderHeader",
    "OrderItem",
    "Invoice",
    # returns & damage
    "ReturnsRepo",
    "SalesReturn",
    "SalesReturnItem",
    "DamageRepo",
    "DamagedGoodsLog",
    # inventory
    "InventoryRepo",
    "InventoryMovement",
    "StockLevel",
    # purchases
    "PurchasesRepo",
    "BillHeader",
    "BillLine",
    "BillTotals",
    "PurchaseBill",
    # metadata
    "MetadataRepo",
]
