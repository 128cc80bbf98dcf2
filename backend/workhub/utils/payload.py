"""Helpers for partial-update payloads."""

from collections.abc import Iterable
from typing import Any

from workhub.exceptions import ValidationError


def reject_nulls(update_data: dict[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    """Refuse explicit nulls for columns that cannot be cleared."""
    for field in fields:
        if field in update_data and update_data[field] is None:
            raise ValidationError(f"{field} cannot be null", field=field)
    return update_data
