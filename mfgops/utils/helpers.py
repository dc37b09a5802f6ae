"""Shared input-parsing helpers for services and blueprints.

require_fields:   missing/blank required keys → ValidationError
parse_date:       ISO or DD.MM.YYYY → date, None on empty, ValidationError on junk
parse_datetime:   ISO → aware datetime (UTC assumed when naive)
parse_number:     optional number → float, None on empty
parse_positive:   number > 0 → float
parse_bool:       JSON bool or "true"/"false" strings
apply_fields:     whitelist copy of payload keys onto a row
"""
import logging
from datetime import date, datetime, timezone

from mfgops.core.exceptions import ValidationError

logger = logging.getLogger(__name__)


def require_fields(data: dict, *fields: str) -> None:
    """Raise ValidationError listing every missing or blank field."""
    missing = [f for f in fields if data.get(f) is None or (isinstance(data.get(f), str) and not data[f].strip())]
    if missing:
        raise ValidationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            details={f: "required" for f in missing},
        )


def parse_date(value, field: str = "date"):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty input. Supports:
    - YYYY-MM-DD (ISO format)
    - YYYY-MM-DDTHH:MM:SS (datetime ISO → .date())
    - DD.MM.YYYY (European format)
    """
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    for parser in (
        date.fromisoformat,
        lambda v: datetime.fromisoformat(v).date(),
        lambda v: datetime.strptime(v, "%d.%m.%Y").date(),
    ):
        try:
            return parser(str(value))
        except (ValueError, TypeError):
            continue
    raise ValidationError(
        f"Invalid {field}. Use YYYY-MM-DD or DD.MM.YYYY.", details={field: value},
    )


def parse_datetime(value, field: str = "datetime"):
    """Parse an ISO datetime; naive values are taken as UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (ValueError, TypeError):
            raise ValidationError(f"Invalid {field}. Use ISO 8601.", details={field: value})
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_number(value, field: str):
    """Parse an optional number; None on empty input."""
    if value in (None, ""):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", details={field: value})
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", details={field: value})


def parse_positive(value, field: str) -> float:
    """Parse a strictly positive number."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number", details={field: value})
    if number <= 0:
        raise ValidationError(f"{field} must be greater than 0", details={field: value})
    return number


def parse_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", details={field: value})
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", details={field: value})


def parse_bool(value, field: str = "value") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise ValidationError(f"{field} must be a boolean", details={field: value})


def apply_fields(row, data: dict, fields) -> dict:
    """Copy whitelisted keys present in *data* onto *row*; return the patch."""
    patch = {f: data[f] for f in fields if f in data}
    for field, value in patch.items():
        setattr(row, field, value)
    return patch
