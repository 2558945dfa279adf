"""
Utility functions for PropJournal.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_amount(value: Union[str, float, int, None], default: float = 0.0) -> float:
    """
    Parse a user supplied amount.

    Examples:
        "1,250.50" -> 1250.5
        "" -> default
        None -> default
    """
    if value is None:
        return default

    if isinstance(value, (int, float)):
        return float(value)

    cleaned = value.strip().replace(",", "").replace("$", "")
    if not cleaned:
        return default

    return float(cleaned)


def parse_trade_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Normalize a trade date to a calendar day.

    Accepts date objects, datetimes and ISO strings ("2024-02-11" or
    "2024-02-11T10:00:00").
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    return date.fromisoformat(value.strip()[:10])


def format_amount(amount: float, currency: str = "USD") -> str:
    """Format a balance or limit, e.g. "$10,500.00" or "EUR 10,500.00"."""
    symbol = "$" if currency == "USD" else f"{currency} "
    prefix = "-" if amount < 0 else ""
    return f"{prefix}{symbol}{abs(amount):,.2f}"


def format_currency(amount: float, currency: str = "USD") -> str:
    """
    Format an amount with sign and thousands separators.

    Examples:
        1250.5 -> "+$1,250.50"
        -700 -> "-$700.00"
    """
    sign = "-" if amount < 0 else "+"
    return sign + format_amount(abs(amount), currency)
