"""Derived state: values computed from stored rows and "now", never persisted.

Everything here is a pure function so it can be recomputed on every read.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, time, timezone

from workhub.exceptions import ValidationError

SECONDS_PER_DAY = 86400

# Canonical task statuses, in board order
OPEN = "Open"
IN_PROGRESS = "InProgress"
BLOCKED = "Blocked"
CLOSED = "Closed"
TASK_STATUSES = (OPEN, IN_PROGRESS, BLOCKED, CLOSED)

# Lower-cased input -> canonical status. Covers the simpler board's
# todo/inprogress/done vocabulary.
TASK_STATUS_ALIASES = {
    "open": OPEN,
    "todo": OPEN,
    "to_do": OPEN,
    "inprogress": IN_PROGRESS,
    "in_progress": IN_PROGRESS,
    "in-progress": IN_PROGRESS,
    "blocked": BLOCKED,
    "closed": CLOSED,
    "done": CLOSED,
}

WARRANTY_NONE = "no_warranty"
WARRANTY_ACTIVE = "under_warranty"
WARRANTY_EXPIRED = "warranty_expired"

RENEWAL_INACTIVE = "inactive"
RENEWAL_ACTIVE = "active"
RENEWAL_EXPIRING_SOON = "expiring_soon"
RENEWAL_EXPIRED = "expired"


def normalize_task_status(value: str) -> str:
    """Map any accepted status spelling to its canonical form.

    Raises:
        ValidationError: for values outside both vocabularies
    """
    canonical = TASK_STATUS_ALIASES.get(value.strip().lower()) if value else None
    if canonical is None:
        raise ValidationError(
            f"Invalid task status '{value}'. Expected one of: {', '.join(TASK_STATUSES)}",
            field="status",
        )
    return canonical


def validate_progress(progress: int) -> int:
    """Reject progress values outside 0..100."""
    if not 0 <= progress <= 100:
        raise ValidationError(
            f"Progress must be between 0 and 100, got {progress}",
            field="progress",
        )
    return progress


def progress_percent(completed: int, total: int) -> int:
    """Whole-number percentage, rounded half up; 0 when there is nothing to count."""
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


def project_progress(statuses: Iterable[str]) -> dict[str, int]:
    """Task totals and completion percentage for a project's task statuses."""
    counts = {status: 0 for status in TASK_STATUSES}
    total = 0
    for status in statuses:
        total += 1
        if status in counts:
            counts[status] += 1
    return {
        "total": total,
        "completed": counts[CLOSED],
        "in_progress": counts[IN_PROGRESS],
        "blocked": counts[BLOCKED],
        "open": counts[OPEN],
        "percent": progress_percent(counts[CLOSED], total),
    }


def as_utc_datetime(value: date | datetime) -> datetime:
    """Dates become midnight UTC; naive datetimes are taken as UTC."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def days_until(target: date | datetime, now: datetime) -> int:
    """Whole days from now until target, rounded up; negative once past."""
    delta = as_utc_datetime(target) - as_utc_datetime(now)
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def warranty_status(expiry: date | datetime | None, now: datetime) -> str:
    if expiry is None:
        return WARRANTY_NONE
    if as_utc_datetime(expiry) > as_utc_datetime(now):
        return WARRANTY_ACTIVE
    return WARRANTY_EXPIRED


def warranty_expiring_soon(
    expiry: date | datetime | None, now: datetime, window_days: int = 30
) -> bool:
    """True when the warranty runs out within the window (and has not yet)."""
    if expiry is None:
        return False
    return 0 < days_until(expiry, now) <= window_days


def renewal_status(
    is_active: bool,
    next_renewal: date | datetime | None,
    now: datetime,
    window_days: int = 7,
) -> str:
    """Subscription renewal status.

    Inactive subscriptions are ``inactive`` regardless of dates; an active
    one without a renewal date is ``active``.
    """
    if not is_active:
        return RENEWAL_INACTIVE
    if next_renewal is None:
        return RENEWAL_ACTIVE
    days = days_until(next_renewal, now)
    if days < 0:
        return RENEWAL_EXPIRED
    if days <= window_days:
        return RENEWAL_EXPIRING_SOON
    return RENEWAL_ACTIVE


def add_years(start: date, years: int) -> date:
    """Same calendar day ``years`` later; Feb 29 rolls over to Mar 1."""
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return date(start.year + years, 3, 1)


def warranty_expiry(purchase_date: date | None, warranty_years: int | None) -> date | None:
    if purchase_date is None or warranty_years is None:
        return None
    return add_years(purchase_date, warranty_years)
