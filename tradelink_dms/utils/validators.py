# utils/validators.py

def non_empty(text) -> bool:
    """
    True if `text` is not None/empty after stripping whitespace.
    """
    return bool(text and str(text).strip())


# ---- Numeric parsing & validators ----

def try_parse_float(x):
    """
    Best-effort parse to float.

    Returns:
        (ok: bool, value: float|None)
    """
    if isinstance(x, bool):
        return False, None
    try:
        return True, float(x)
    except (TypeError, ValueError):
        return False, None


def is_non_negative_number(x) -> bool:
    """
    True iff x parses to a float and value >= 0.
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and val >= 0)


def is_whole_number(x) -> bool:
    """
    True iff x parses to a float with no fractional part (pieces are counted, not weighed).
    """
    ok, val = try_parse_float(x)
    return bool(ok and val is not None and float(val).is_integer())


def check_non_negative(value, label: str, violations: list[str]) -> None:
    """Append a message to `violations` unless `value` is a number >= 0."""
    if not is_non_negative_number(value):
        violations.append(f"{label} must be a number >= 0 (got {value!r}).")
