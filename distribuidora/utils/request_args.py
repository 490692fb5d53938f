"""Helpers to read JSON bodies and ids from requests."""
from flask import request
from distribuidora.exceptions import ValidationError


def json_body() -> dict:
    """Request JSON object, or {} when the body is missing or not an object."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def int_arg(value, field: str, required: bool = True):
    """
    Parse a positive integer id coming from a query string or JSON body.

    Raises:
        ValidationError: missing (when required) or not a positive integer.
    """
    if value in (None, ''):
        if required:
            raise ValidationError(f'Falta {field}')
        return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} inválido')
    if parsed <= 0:
        raise ValidationError(f'{field} inválido')
    return parsed


def first_present(data: dict, *keys):
    """First non-empty value among several accepted spellings of a field."""
    for key in keys:
        value = data.get(key)
        if value not in (None, ''):
            return value
    return None
