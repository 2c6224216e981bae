"""Parsing and formatting of German currency amounts.

Form values arrive as whatever the applicant typed ("1.234,56 €", "1200",
"1,5") or as plain numbers from the OCR collaborator. Everything is turned
into a Decimal here; nothing in this module raises on bad input.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")

_STRIP_PATTERN = re.compile(r"[€\s]")
_TWO_DECIMALS_AFTER_DOT = re.compile(r"\.\d{2}$")


def parse_currency(raw: Any) -> Decimal:
    """Parse a currency amount in German or plain notation.

    Rules:
        - numbers pass through unchanged
        - "€" and whitespace are removed
        - "." and "," both present: "." is a thousands separator, "," the decimal mark
        - only ",": decimal mark
        - only ".": decimal mark when exactly two digits follow the last dot,
          otherwise a thousands separator

    Args:
        raw: Value as entered or extracted.

    Returns:
        Parsed amount, or 0 for empty, None, boolean, non-numeric or
        non-finite input.
    """
    if raw is None or isinstance(raw, bool):
        return ZERO
    if isinstance(raw, Decimal):
        return raw if raw.is_finite() else ZERO
    if isinstance(raw, (int, float)):
        return _to_decimal(str(raw))
    if not isinstance(raw, str):
        return ZERO

    cleaned = _STRIP_PATTERN.sub("", raw)
    if not cleaned:
        return ZERO

    has_dot = "." in cleaned
    has_comma = "," in cleaned
    if has_dot and has_comma:
        cleaned = cleaned.replace(".", "").replace(",", ".")
    elif has_comma:
        cleaned = cleaned.replace(",", ".")
    elif has_dot and not _TWO_DECIMALS_AFTER_DOT.search(cleaned):
        cleaned = cleaned.replace(".", "")
    elif has_dot:
        # keep only the last dot as decimal mark: "1.200.50" -> "1200.50"
        head, _, tail = cleaned.rpartition(".")
        cleaned = f"{head.replace('.', '')}.{tail}"

    return _to_decimal(cleaned)


def _to_decimal(text: str) -> Decimal:
    try:
        value = Decimal(text)
    except InvalidOperation:
        return ZERO
    return value if value.is_finite() else ZERO


def format_currency(value: Decimal) -> str:
    """Format an amount the way German reviewers read it, e.g. "1.234,56 €"."""
    quantized = Decimal(value).quantize(Decimal("0.01"))
    sign = "-" if quantized < 0 else ""
    integer_part, _, fraction = f"{abs(quantized):.2f}".partition(".")
    grouped = f"{int(integer_part):,}".replace(",", ".")
    return f"{sign}{grouped},{fraction} €"
