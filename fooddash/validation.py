"""
Request payload helpers: reading JSON or multipart bodies, required-field
checks, type coercion and the per-resource update allow-lists.
"""
import json
from datetime import datetime, date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, Iterable, Optional

from flask import request, current_app
from fooddash.errors import ValidationError

TRUE_VALUES = {'true', '1', 'yes', 'on'}
FALSE_VALUES = {'false', '0', 'no', 'off'}


def get_payload() -> Dict[str, Any]:
    """Return the request body as a dict, from JSON or form data."""
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict() if request.form else {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_fields(payload: Dict[str, Any], fields: Iterable[str], message: Optional[str] = None):
    missing = [f for f in fields if payload.get(f) in (None, '')]
    if missing:
        raise ValidationError(
            message or f"Missing required fields: {', '.join(missing)}",
            ', '.join(missing)
        )


def to_str(value, field):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def to_upper(value, field):
    value = to_str(value, field)
    return value.upper() if value else value


def to_money(value, field):
    if value in (None, ''):
        return None
    try:
        amount = Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    return float(amount)


def to_float(value, field):
    if value in (None, ''):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")


def to_int(value, field):
    if value in (None, ''):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValidationError(f"{field} must be an integer")


def to_bool(value, field):
    if isinstance(value, bool):
        return value
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be a boolean")


def to_json(value, field):
    # Multipart forms can only carry strings
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            raise ValidationError(f"{field} must be valid JSON")
    return value


def to_datetime(value, field):
    if value in (None, ''):
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)")
    if parsed.tzinfo is not None:
        parsed = parsed.replace(tzinfo=None)
    return parsed


def clean_fields(payload: Dict[str, Any], fields: Dict[str, Callable]) -> Dict[str, Any]:
    """Coerce the subset of ``fields`` present in ``payload``."""
    return {
        name: coerce(payload[name], name)
        for name, coerce in fields.items()
        if name in payload
    }


def clean_update(payload: Dict[str, Any], updatable: Dict[str, Callable],
                 immutable: Iterable[str]) -> Dict[str, Any]:
    """Validate an update body against an explicit allow-list.

    Immutable or unknown field names are rejected as a whole; nothing is
    silently dropped.
    """
    immutable = set(immutable)
    rejected = sorted(k for k in payload if k in immutable)
    if rejected:
        raise ValidationError(
            f"These fields cannot be updated: {', '.join(rejected)}",
            ', '.join(rejected)
        )

    unknown = sorted(k for k in payload if k not in updatable)
    if unknown:
        raise ValidationError(
            f"Unknown fields: {', '.join(unknown)}",
            ', '.join(unknown)
        )

    return clean_fields(payload, updatable)


def get_pagination():
    page = to_int(request.args.get('page', 1), 'page')
    limit = to_int(request.args.get('limit', current_app.config['DEFAULT_PAGE_SIZE']), 'limit')
    if page is None or page < 1:
        raise ValidationError('page must be a positive integer')
    if limit is None or limit < 1:
        raise ValidationError('limit must be a positive integer')
    return page, min(limit, current_app.config['MAX_PAGE_SIZE'])


def pagination_block(pagination, label):
    return {
        'current_page': pagination.page,
        'total_pages': pagination.pages,
        f'total_{label}': pagination.total,
        'per_page': pagination.per_page
    }


def parse_day_range(date_from, date_to):
    """Turn optional ISO dates into a [start, end) datetime range.

    A bare ``date_to`` day is inclusive: the range ends at the next midnight.
    """
    start = to_datetime(date_from, 'date_from')
    end = to_datetime(date_to, 'date_to')
    if end is not None and len(str(date_to)) <= 10:
        end = datetime.combine(date.fromordinal(end.toordinal() + 1), datetime.min.time())
    if start and end and start >= end:
        raise ValidationError('date_from must be before date_to')
    return start, end
