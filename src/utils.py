import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(dt):
    if dt is None:
        return utcnow()
    if dt.tzinfo is not None:
        # Convert to UTC, then remove tzinfo
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_timestamp(value, default_now=False):
    """
    Parse a Shopify ISO-8601 timestamp into naive UTC.
    Returns now() (when default_now) or None for missing or unparseable values.
    """
    if isinstance(value, datetime):
        return to_naive_utc(value)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_naive_utc(datetime.fromisoformat(text))
        except ValueError:
            logging.warning(f"Unparseable timestamp in payload: {value!r}")
    return utcnow() if default_now else None


def to_decimal(value, default=None):
    """Coerce a Shopify money value ("12.50", 12.5, None) to a 2-place Decimal."""
    if value is None or value == "":
        return default
    try:
        return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        logging.warning(f"Unparseable money value in payload: {value!r}")
        return default


def clean_str(value):
    """Strip strings and turn blanks into None; other scalars become strings."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def is_blank(value):
    return value is None or value == "" or value == [] or value == {}
