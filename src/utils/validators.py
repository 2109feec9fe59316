"""Input normalization helpers shared by the services."""

from typing import Optional

from utils.error_handling import ValidationError


def require_text(value: Optional[str], field: str) -> str:
    """Return the trimmed value or raise ValidationError naming the blank field."""
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field} must not be blank", field=field)
    return cleaned


def optional_text(value: Optional[str]) -> Optional[str]:
    """Trim an optional label; blank collapses to None."""
    cleaned = (value or "").strip()
    return cleaned or None
