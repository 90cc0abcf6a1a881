"""Decoders for the multi-valued cell conventions used in import sheets.

Lists are comma separated (``"tools, garden"``). Price, sale price and cost
cells hold ``code:value`` pairs keyed by country or tier code
(``"US:19.99, EU:17.50"``).
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Union

from app.services.import_errors import ParseError

Number = Union[int, float]

_TRUE = {"1", "true", "yes", "y"}
_FALSE = {"0", "false", "no", "n"}
# largest value an Integer column holds on every supported backend
MAX_QUANTITY = 2**31 - 1


def cell_text(value: Any) -> str:
    """Render a raw cell as stripped text. Integral floats drop the ``.0``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_blank(value: Any) -> bool:
    return cell_text(value) == ""


def split_list(cell: Any) -> List[str]:
    text = cell_text(cell)
    if not text:
        return []
    return [part.strip() for part in text.split(",") if part.strip()]


def _to_number(raw: str) -> Number:
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ParseError(f"'{raw}' is not a number")
    if not value.is_finite():
        raise ParseError(f"'{raw}' is not a number")
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def parse_pair_map(cell: Any) -> Dict[str, Number]:
    """Parse ``"US:10, EU:9.5"`` into ``{"US": 10, "EU": 9.5}``.

    Each token is split on its first colon. A token without a colon, with an
    empty code or with a non-numeric value raises ParseError.
    """
    result: Dict[str, Number] = {}
    for token in split_list(cell):
        if ":" not in token:
            raise ParseError(f"Malformed price entry '{token}': expected code:value")
        key, raw_value = token.split(":", 1)
        key = key.strip()
        raw_value = raw_value.strip()
        if not key:
            raise ParseError(f"Malformed price entry '{token}': missing code")
        try:
            result[key] = _to_number(raw_value)
        except ParseError:
            raise ParseError(f"Malformed price entry '{token}': '{raw_value}' is not a number")
    return result


def parse_flag(value: Any) -> Optional[bool]:
    """1/0 style flag cell. Blank cells yield None."""
    text = cell_text(value).lower()
    if text == "":
        return None
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ParseError(f"'{cell_text(value)}' is not a 1/0 flag")


def parse_quantity(value: Any) -> int:
    text = cell_text(value)
    number = _to_number(text) if text else None
    if not isinstance(number, int) or number < 0:
        raise ParseError(f"'{text}' is not a valid stock quantity")
    if number > MAX_QUANTITY:
        raise ParseError(f"Stock quantity {text} exceeds {MAX_QUANTITY}")
    return number
