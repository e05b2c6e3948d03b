import logging
from datetime import datetime, time
from decimal import Decimal, InvalidOperation

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from core.exceptions import ValidationFailed

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
MAX_AMOUNT_DIGITS = 10

def require_text(value, message):
    """Return ``value`` stripped, or raise when it is missing or blank."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(message)
    return value.strip()

def parse_amount(value, message):
    """
    Coerce a positive money amount to Decimal.

    The amount is rounded to cents before the positivity check, so anything
    that would be stored as 0.00 is rejected. Amounts must fit the
    DecimalField(max_digits=10, decimal_places=2) columns.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationFailed(message)
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise ValidationFailed(message)
        amount = amount.quantize(CENT)
    except (InvalidOperation, ValueError):
        raise ValidationFailed(message)
    if amount <= 0 or len(amount.as_tuple().digits) > MAX_AMOUNT_DIGITS:
        raise ValidationFailed(message)
    return amount

def parse_deadline(value):
    """Accept a datetime, a date, or an ISO string and return an aware datetime."""
    deadline = value
    if isinstance(value, str):
        try:
            deadline = parse_datetime(value)
            if deadline is None:
                day = parse_date(value)
                deadline = datetime.combine(day, time.max) if day else None
        except ValueError:
            deadline = None
    elif not isinstance(value, datetime) and hasattr(value, 'year'):
        deadline = datetime.combine(value, time.max)
    if not isinstance(deadline, datetime):
        raise ValidationFailed("A valid deadline is required")
    if timezone.is_naive(deadline):
        deadline = timezone.make_aware(deadline)
    return deadline

def status_label(status):
    return status.lower().replace('_', ' ')
