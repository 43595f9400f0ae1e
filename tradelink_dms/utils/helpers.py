# utils/helpers.py
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

from ..constants import MONEY_PLACES

NumberLike = Union[float, int, str]


def today_str() -> str:
    """Return today's date as ISO string (YYYY-MM-DD)."""
    return date.today().isoformat()


def now_iso() -> str:
    """Return the current local time as ISO string, second precision."""
    return datetime.now().isoformat(timespec="seconds")


def round_money(v: NumberLike, places: int = MONEY_PLACES) -> float:
    """
    Round half-up on the last place (1.005 -> 1.01), unlike round() which is
    banker's rounding on the binary value.

    Goes through repr(float) so values such as 9.5 * 0.98 (9.309999...)
    land on the cent a person would write down.
    """
    q = Decimal(1).scaleb(-places)
    return float(Decimal(str(v)).quantize(q, rounding=ROUND_HALF_UP))


def fmt_qty(v: NumberLike) -> str:
    """Quantities print without a trailing .0 (24, not 24.0)."""
    try:
        return f"{float(v):g}"
    except (TypeError, ValueError):
        return str(v)
