from flask import request

from gridiron.services.errors import ActionError


def payload() -> dict:
    return request.get_json(silent=True) or {}


def int_field(data: dict, key: str, required: bool = True):
    """Read an integer id from a JSON body; clients send ids as numbers or strings."""
    value = data.get(key)
    if value is None or value == '':
        if required:
            raise ActionError(f'{key} is required.')
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ActionError(f'{key} must be an integer.')


def bool_field(data: dict, key: str, default=None):
    """Read a JSON boolean; strings like "false" are rejected rather than coerced."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ActionError(f'{key} must be true or false.')
    return value
