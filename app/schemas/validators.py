"""Shared pydantic validators."""

from typing import Any


def reject_null(value: Any) -> Any:
    """Partial updates may omit a field but may not null a required column."""
    if value is None:
        raise ValueError("Field may not be null")
    return value
