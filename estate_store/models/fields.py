"""
Field helpers shared by the entity models.

Both storage backends build and mutate entities through these, so
defaults and normalization cannot drift between them.
"""
import uuid
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, List, Optional

from estate_store.core.exceptions import ValidationError


def new_id() -> str:
    return str(uuid.uuid4())


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_datetime(value: Any, field: str) -> Optional[datetime]:
    """Accept datetimes or ISO-8601 strings; aware values are converted to naive UTC"""
    if value is None or value == '':
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            raise ValidationError(f"Invalid datetime for '{field}': {value}")
    if not isinstance(value, datetime):
        raise ValidationError(f"Invalid datetime for '{field}': {value!r}")
    if value.tzinfo is not None:
        value = (value - value.utcoffset()).replace(tzinfo=None)
    return value


def check_fields(data: dict, allowed: Iterable[str], entity: str):
    unknown = sorted(set(data) - set(allowed))
    if unknown:
        raise ValidationError(f"Unknown {entity} field(s): {', '.join(unknown)}")


def require(data: dict, fields: Iterable[str], entity: str):
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError(f"Missing required {entity} field(s): {', '.join(missing)}")


def decimal_string(value: Any, field: str, places: Optional[int] = None) -> Optional[str]:
    """Normalize a numeric value to its decimal string form ("250000.00")"""
    if value is None or value == '':
        return None
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid number for '{field}': {value}")
    if not number.is_finite():
        raise ValidationError(f"Invalid number for '{field}': {value}")
    if places is not None:
        number = number.quantize(Decimal(1).scaleb(-places))
    return str(number)


def to_decimal(value: Optional[str]) -> Decimal:
    return Decimal(value) if value not in (None, '') else Decimal(0)


def optional_int(value: Any, field: str, minimum: int = 0) -> Optional[int]:
    if value is None or value == '':
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid integer for '{field}': {value}")
    if number < minimum:
        raise ValidationError(f"'{field}' must be >= {minimum}")
    return number


def string_list(value: Any, field: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationError(f"'{field}' must be a list of strings")
    if isinstance(value, (set, frozenset)):
        value = sorted(value)
    return [str(item) for item in value]
