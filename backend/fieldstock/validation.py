from __future__ import annotations

from typing import Any

from .errors import ValidationError
from fieldstock.time_utils import parse_iso_date, parse_iso_datetime


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for JSON/CLI input.

    Rejects bools, floats, decimals and scientific notation; accepts ints
    and plain-digit strings.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_non_negative_int(value: Any, field: str) -> int:
    result = coerce_int(value, field)
    if result < 0:
        raise ValidationError(f"{field} must be >= 0")
    return result


def coerce_cents(value: Any, field: str) -> int:
    cents = coerce_non_negative_int(value, field)
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} must be <= {MAX_AMOUNT_CENTS}")
    return cents


def optional_int(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return coerce_int(value, field)


def parse_quantity_lines(
    items: Any,
    quantity_field: str,
    *,
    allow_empty: bool = False,
) -> dict[int, int]:
    """
    Normalize [{product_id, <quantity_field>}, ...] into {product_id: qty}.

    Raises ValidationError on a non-list, missing keys, negative or
    non-integer quantities and duplicated products. Insertion order is kept.
    """
    if items is None:
        items = []
    if not isinstance(items, list):
        raise ValidationError("items must be a list")
    if not items and not allow_empty:
        raise ValidationError("items must not be empty")

    lines: dict[int, int] = {}
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if "product_id" not in item:
            raise ValidationError(f"items[{index}].product_id is required")
        if quantity_field not in item:
            raise ValidationError(f"items[{index}].{quantity_field} is required")

        product_id = coerce_int(item["product_id"], f"items[{index}].product_id")
        quantity = coerce_non_negative_int(item[quantity_field], f"items[{index}].{quantity_field}")

        if product_id in lines:
            raise ValidationError(f"Product {product_id} appears more than once")
        lines[product_id] = quantity
    return lines


def parse_day(value: Any, field: str = "date"):
    """ISO date string -> date (None stays None)."""
    if value is None:
        return None
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")


def parse_timestamp(value: Any, field: str):
    if value is None:
        return None
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 datetime")


def require_text(value: Any, field: str) -> str:
    """Non-blank string, returned stripped."""
    if not isinstance(value, str):
        raise ValidationError(f"{field} is required and must be a string")
    stripped = value.strip()
    if not stripped:
        raise ValidationError(f"{field} is required")
    return stripped


def optional_text(value: Any, field: str) -> str | None:
    """Free-text field: None or blank becomes None, anything but a string is refused."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value.strip() or None
