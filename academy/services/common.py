from typing import Iterable
from ..core.errors import ValidationError


def as_dict(entity, **extra) -> dict:
    """Column values of an ORM row, plus any joined fields"""
    data = {column.name: getattr(entity, column.name) for column in entity.__table__.columns}
    data.update(extra)
    return data


def apply_changes(entity, changes: dict, allowed: Iterable[str], required: Iterable[str] = ()) -> dict:
    """
    Apply a partial update to ``entity``.

    Only columns named in ``allowed`` can be written, and columns in
    ``required`` cannot be cleared.
    """
    allowed = set(allowed)
    required = set(required)

    for field in changes:
        if field not in allowed:
            raise ValidationError(field, "cannot be updated")

    for field, value in changes.items():
        if field in required and (value is None or (isinstance(value, str) and not value.strip())):
            raise ValidationError(field, "is required")

    for field, value in changes.items():
        setattr(entity, field, value)

    return changes


def require_text(field: str, value):
    if value is None or not str(value).strip():
        raise ValidationError(field, "is required")
    return value.strip() if isinstance(value, str) else value
