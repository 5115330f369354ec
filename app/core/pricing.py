"""Pure rental pricing helpers: duration, tier discount, late fee, amounts. No I/O."""
import math
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Protocol

# Discount percent by tier (index = tier)
TIER_LEVEL = [0, 5, 10, 15, 20]
TIER_SPEND_STEP = 10000
LATE_FEE_PER_TIER_DAY = 500


class BillableService(Protocol):
    rate: float
    daily: bool


def money(value: float | None) -> float:
    """Round a monetary value to 2 decimals. Apply only when persisting."""
    if value is None:
        return 0.0
    return round(float(value), 2)


def to_naive_utc(value: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are assumed to be UTC already."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def combine_date_time(value: date | datetime, time_of_day: str | None) -> datetime:
    """
    Overwrite hour/minute of `value` with an "HH:MM" string.
    A missing or malformed time leaves the date's own time untouched.
    """
    if isinstance(value, datetime):
        result = value
    else:
        result = datetime.combine(value, time.min)
    if not time_of_day or not isinstance(time_of_day, str):
        return result
    parts = time_of_day.strip().split(":")
    if len(parts) < 2:
        return result
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return result
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        return result
    return result.replace(hour=hours, minute=minutes, second=0, microsecond=0)


def rental_duration(start: datetime, return_: datetime) -> int:
    """
    Billable days between pickup and return.
    Same calendar day counts as 1. Otherwise whole calendar days, plus one more
    when the return clock time is later than the pickup clock time.
    """
    if start.date() == return_.date():
        return 1
    days_diff = (return_.date() - start.date()).days
    if return_.time() <= start.time():
        return days_diff
    return days_diff + 1


def tier_discount(tier: int, price: float, service_price: float, explicit_discount: float | None = None) -> float:
    """Discount for a customer tier. An explicit discount overrides the tier table."""
    if tier is None or tier < 0 or tier > len(TIER_LEVEL) - 1:
        return 0
    if explicit_discount is not None:
        return explicit_discount
    discount = ((price or 0) + (service_price or 0)) * TIER_LEVEL[tier] / 100
    if not math.isfinite(discount):
        return 0
    return discount


def days_late(now: datetime, return_date: datetime) -> int:
    """Whole days (rounded up) past the agreed return date; 0 when on time."""
    if now <= return_date:
        return 0
    return math.ceil((now - return_date) / timedelta(days=1))


def late_fee(tier: int, late_days: int) -> float:
    if late_days <= 0:
        return 0
    return (tier + 1) * LATE_FEE_PER_TIER_DAY * late_days


def service_price(services: Iterable[BillableService], duration: int) -> float:
    """Daily add-ons are billed per rental day, the rest once."""
    return sum(svc.rate * duration if svc.daily else svc.rate for svc in services)


def final_price(price: float, service_price: float, discount: float, late_fee: float = 0) -> float:
    return (price or 0) + (service_price or 0) - (discount or 0) + (late_fee or 0)


def tier_from_spend(total_spend: float) -> int:
    """Customer tier derived from lifetime spend, capped at the top of the discount table."""
    tier = int(math.floor((total_spend or 0) / TIER_SPEND_STEP))
    return max(0, min(tier, len(TIER_LEVEL) - 1))


def validate_and_round_amount(value) -> float:
    """Parse a credit amount: finite number > 0, rounded to 2 decimals. Raises ValueError otherwise."""
    if isinstance(value, bool):
        raise ValueError("Please provide a valid positive amount")
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValueError("Please provide a valid positive amount")
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError("Please provide a valid positive amount")
    rounded = round(amount, 2)
    if rounded <= 0:
        raise ValueError("Please provide a valid positive amount")
    return rounded
