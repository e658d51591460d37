"""Helper functions for value parsing, currency formatting and emoji handling."""

import logging
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

from . import config

CENT = Decimal("0.01")
ZERO = Decimal("0")
# Amounts and quantities at or above this are treated as invalid
MAX_NUMBER = Decimal("1e15")


# Pictographs cp858 cannot print
EMOJI_RE = re.compile(
    "["
    "\U0001F300-\U0001F5FF"
    "\U0001F600-\U0001F64F"
    "\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF"
    "\U0001F900-\U0001F9FF"
    "\U0001FA00-\U0001FA6F"
    "\U00002702-\U000027B0"
    "\uFE0F"
    "]+"
)


def strip_emojis(text):
    """Swap known emoji for their EMOJI_MAP text and drop the rest."""
    for emoji, replacement in config.EMOJI_MAP.items():
        text = text.replace(emoji, replacement)
    return EMOJI_RE.sub("", text)


def trim_str(value):
    """Return value as a stripped string; None becomes ''."""
    return "" if value is None else str(value).strip()


def clean_text(value):
    return strip_emojis(trim_str(value)).strip()


def to_number(value):
    """Parse a monetary value into a Decimal.

    Accepts numbers or strings using either ',' or '.' as decimal
    separator. Missing, invalid, non-finite and out of range (1e15 and
    above) values become 0.

    Args:
        value: int, float, Decimal, str or None

    Returns:
        Decimal: Parsed value
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, (int, float)):
        number = Decimal(str(value))
    else:
        try:
            number = Decimal(str(value).strip().replace(",", "."))
        except InvalidOperation:
            return ZERO
    if not number.is_finite() or abs(number) >= MAX_NUMBER:
        return ZERO
    return number


def parse_quantity(value):
    """Parse an item quantity; missing, invalid or below 1 becomes 1."""
    quantity = int(to_number(value))
    return quantity if quantity >= 1 else 1


def parse_port(value):
    """Parse a port number into an int.

    Ports coming from the order API may be strings formatted with a
    thousands separator (e.g. "9.100"). Invalid values become 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else 0
    cleaned = str(value).strip().replace(".", "")
    try:
        return int(cleaned, 10)
    except ValueError:
        return 0


def eur_col(value):
    """Format a value as a compact euro column entry, e.g. '12,34€'."""
    if isinstance(value, Decimal) and value.is_finite() and value.adjusted() < 60:
        amount = value
    else:
        amount = to_number(value)
    with localcontext() as ctx:
        ctx.prec = 64  # row totals multiply two bounded values
        amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{amount:.2f}".replace(".", ",") + "€"


def format_timestamp(value):
    """Format an order confirmation time as DD/MM/YYYY HH:MM.

    Accepts datetime objects or ISO-8601 strings (a trailing 'Z' is
    understood as UTC). Aware timestamps are converted to
    RECEIPT_TIMEZONE when configured. Unparseable strings are returned
    trimmed, as received.
    """
    if isinstance(value, datetime):
        moment = value
    else:
        raw = trim_str(value)
        if not raw:
            return ""
        try:
            moment = datetime.fromisoformat(raw[:-1] + "+00:00" if raw.endswith("Z") else raw)
        except ValueError:
            return raw

    if moment.tzinfo is not None and config.RECEIPT_TIMEZONE:
        try:
            from zoneinfo import ZoneInfo
            moment = moment.astimezone(ZoneInfo(config.RECEIPT_TIMEZONE))
        except (ImportError, KeyError, ValueError):
            logging.warning("Unknown RECEIPT_TIMEZONE %r; printing time as received", config.RECEIPT_TIMEZONE)
    return moment.strftime("%d/%m/%Y %H:%M")
