from .ledger import (
    check_movement,
    damage_adjustment_pair,
    replay,
    return_damaged_movement,
    return_good_movement,
    sale_cancel_movement,
    sale_movement,
)
from .service import InventoryService

__all__ = [
    "check_movement",
    "damage_adjustment_pair",
    "replay",
    "return_damaged_movement",
    "return_good_movement",
    "sale_cancel_movement",
    "sale_movement",
    "InventoryService",
]
