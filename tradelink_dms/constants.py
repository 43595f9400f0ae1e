DATA_DIR = "data"
DB_FILE_NAME = "tradelink.db"
DB_PATH_ENV = "TRADELINK_DB_PATH"

SCHEMA_VERSION = "1.0.0"
TABLE_SCHEMA_VERSION = "schema_version"

MONEY_PLACES = 2

# ---- Orders ----
ORDER_STATUSES = (
    "pending",
    "approved",
    "dispatched",
    "delivered",
    "cancelled",
    "partially_returned",
    "returned",
)

# status -> statuses it may move to
ORDER_TRANSITIONS = {
    "pending": ("approved", "cancelled"),
    "approved": ("dispatched", "cancelled", "partially_returned", "returned"),
    "dispatched": ("delivered", "partially_returned", "returned"),
    "delivered": ("partially_returned", "returned"),
    "partially_returned": ("partially_returned", "returned"),
    "cancelled": (),
    "returned": (),
}

RETURNABLE_STATUSES = ("approved", "dispatched", "delivered", "partially_returned")

# ---- Returns / damage ----
RETURN_TYPES = ("full", "partial")

RETURN_REASONS = (
    "customer_rejected_full",
    "customer_rejected_partial",
    "price_issue",
    "quality_issue",
    "expiry_issue",
    "other",
)

DAMAGE_REASONS = (
    "damaged_in_transit",
    "damaged_at_customer",
    "damaged_in_godown",
    "expiry",
    "other",
)

# substrings of a return reason that route a full return to damaged stock
# ("quality_issue" is the "Damaged / Quality Issue" reason)
DAMAGED_REASON_MARKERS = ("damage", "expiry", "quality")

# ---- Inventory ledger ----
MOVEMENT_SALE = "sale"
MOVEMENT_SALE_CANCEL = "sale_cancel"
MOVEMENT_RETURN_GOOD = "sale_return_good"
MOVEMENT_RETURN_DAMAGED = "sale_return_damaged"
MOVEMENT_DAMAGE_ADJUSTMENT = "damage_adjustment"

MOVEMENT_TYPES = (
    MOVEMENT_SALE,
    MOVEMENT_SALE_CANCEL,
    MOVEMENT_RETURN_GOOD,
    MOVEMENT_RETURN_DAMAGED,
    MOVEMENT_DAMAGE_ADJUSTMENT,
)

# ---- Purchases ----
TAX_MODES = ("EXCLUSIVE", "INCLUSIVE", "NONE")
DISCOUNT_TYPES = ("ABS", "PCT")
DEFAULT_TAX_PCT = 13.0
DEFAULT_UNIT = "Piece"
SUGGESTED_PURCHASE_RATE_FACTOR = 0.75

# ---- Document id prefixes (prefix + yyyymmdd + -NNNN) ----
PREFIX_ORDER = "INV"
PREFIX_RETURN = "RET"
PREFIX_DAMAGE = "DMG"
PREFIX_PURCHASE_BILL = "PR"
