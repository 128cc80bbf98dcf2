# tests/test_derived_state.py

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from workhub.exceptions import ValidationError
from workhub.services.derived_state import (
    add_years,
    days_until,
    normalize_task_status,
    progress_percent,
    project_progress,
    renewal_status,
    validate_progress,
    warranty_expiring_soon,
    warranty_expiry,
    warranty_status,
)

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("todo", "Open"),
        ("Open", "Open"),
        ("inprogress", "InProgress"),
        ("In_Progress", "InProgress"),
        ("InProgress", "InProgress"),
        ("BLOCKED", "Blocked"),
        ("done", "Closed"),
        (" closed ", "Closed"),
    ],
)
def test_status_aliases_normalize_to_canonical(raw: str, expected: str) -> None:
    assert normalize_task_status(raw) == expected


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc:
        normalize_task_status("archived")
    assert "archived" in exc.value.message


def test_progress_bounds() -> None:
    assert validate_progress(0) == 0
    assert validate_progress(100) == 100
    with pytest.raises(ValidationError):
        validate_progress(101)
    with pytest.raises(ValidationError):
        validate_progress(-1)


def test_progress_percent_rounds_half_up() -> None:
    assert progress_percent(0, 0) == 0
    assert progress_percent(1, 2) == 50
    assert progress_percent(1, 3) == 33
    assert progress_percent(2, 3) == 67
    assert progress_percent(1, 8) == 13  # 12.5 rounds up
    assert progress_percent(4, 4) == 100


def test_project_progress_counts_every_column() -> None:
    summary = project_progress(["Open", "Closed", "Blocked", "Closed", "InProgress"])
    assert summary == {
        "total": 5,
        "completed": 2,
        "in_progress": 1,
        "blocked": 1,
        "open": 1,
        "percent": 40,
    }
    assert project_progress([])["percent"] == 0


def test_warranty_status_against_now() -> None:
    today = NOW.date()
    assert warranty_status(None, NOW) == "no_warranty"
    assert warranty_status(today - timedelta(days=1), NOW) == "warranty_expired"
    assert warranty_status(today + timedelta(days=1), NOW) == "under_warranty"


def test_days_until_rounds_up_partial_days() -> None:
    # Midnight tomorrow is twelve hours away
    assert days_until(date(2025, 1, 16), NOW) == 1
    assert days_until(date(2025, 1, 14), NOW) == -1
    assert days_until(date(2025, 2, 14), NOW) == 30


def test_warranty_expiring_soon_window() -> None:
    assert warranty_expiring_soon(date(2025, 2, 1), NOW) is True
    assert warranty_expiring_soon(date(2025, 6, 1), NOW) is False
    assert warranty_expiring_soon(date(2025, 1, 1), NOW) is False
    assert warranty_expiring_soon(None, NOW) is False


def test_renewal_status() -> None:
    today = NOW.date()
    assert renewal_status(False, today + timedelta(days=3), NOW) == "inactive"
    assert renewal_status(True, None, NOW) == "active"
    assert renewal_status(True, today + timedelta(days=3), NOW) == "expiring_soon"
    assert renewal_status(True, today + timedelta(days=100), NOW) == "active"
    assert renewal_status(True, today - timedelta(days=2), NOW) == "expired"


def test_add_years_rolls_leap_day_forward() -> None:
    assert add_years(date(2024, 2, 29), 1) == date(2025, 3, 1)
    assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)
    assert add_years(date(2023, 6, 30), 2) == date(2025, 6, 30)


def test_warranty_expiry_needs_both_inputs() -> None:
    assert warranty_expiry(date(2023, 5, 1), 2) == date(2025, 5, 1)
    assert warranty_expiry(None, 2) is None
    assert warranty_expiry(date(2023, 5, 1), None) is None
