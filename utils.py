"""
Utility functions for money, dates and months.
"""
import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal('0.01')

MONTH_NAMES = {
    'january': 1, 'february': 2, 'march': 3, 'april': 4,
    'may': 5, 'june': 6, 'july': 7, 'august': 8,
    'september': 9, 'october': 10, 'november': 11, 'december': 12,
    # Spanish names, the assistant is often addressed in Spanish
    'enero': 1, 'febrero': 2, 'marzo': 3, 'abril': 4,
    'mayo': 5, 'junio': 6, 'julio': 7, 'agosto': 8,
    'septiembre': 9, 'setiembre': 9, 'octubre': 10, 'noviembre': 11, 'diciembre': 12,
}


def money(value):
    """Return value as a Decimal rounded half-up to cents.

    Raises:
        ValueError: If value is not a number (booleans are rejected too)
    """
    if isinstance(value, bool) or value is None:
        raise ValueError('Amount must be a number')
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValueError('Amount must be a number')
    if not value.is_finite():
        raise ValueError('Amount must be a number')
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def split_amount(total, parts):
    """Split a total into (share, remainder) so that share + remainder == total.

    The share is rounded half-up to cents; the rounding difference stays in
    the remainder.

    Args:
        total (Decimal): Amount to split
        parts (int): Number of people sharing it

    Returns:
        tuple: (share, remainder) as Decimals
    """
    total = money(total)
    share = (total / Decimal(parts)).quantize(CENT, rounding=ROUND_HALF_UP)
    return share, total - share


def format_amount(amount):
    """Format a Decimal the way people write it: 20, 12.5, 33.33."""
    amount = Decimal(amount)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal('1')))
    return f'{amount.normalize():f}'


def format_currency(amount):
    """Format an amount as $1234.50 for emails."""
    return f'${Decimal(amount or 0):.2f}'


def to_float(amount):
    """Convert a Decimal (or None) to float for JSON serialization."""
    return float(amount) if amount is not None else None


def parse_date(value):
    """Parse a YYYY-MM-DD string into a date.

    Raises:
        ValueError: If the value is missing or malformed
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError('Date must be in YYYY-MM-DD format')
    return datetime.strptime(value.strip()[:10], '%Y-%m-%d').date()


def parse_month(value, today=None):
    """Resolve a month name ("January", "marzo") or "YYYY-MM" to (year, month).

    Month names refer to the current year.

    Raises:
        ValueError: If the month cannot be understood
    """
    today = today or date.today()
    if not value or not isinstance(value, str):
        raise ValueError('Month is required')

    value = value.strip().lower()
    if value in MONTH_NAMES:
        return today.year, MONTH_NAMES[value]

    try:
        parsed = datetime.strptime(value, '%Y-%m')
    except ValueError:
        raise ValueError(f'Invalid month: {value}')
    return parsed.year, parsed.month


def month_bounds(year, month):
    """Return the first and last date of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def add_months(moment, months):
    """Add calendar months to a date/datetime, clamping the day to month end."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)
