# routes/dependencies.py

from fastapi import Request

from services.errors import ValidationError
from services.time_utils import parse_timestamp


def get_repository(request: Request):
    return request.app.state.repository


def get_stream_manager(request: Request):
    return request.app.state.stream_manager


def parse_date_param(value, name):
    if value in (None, ""):
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        raise ValidationError(f"{name} must be a valid date") from None


def as_list(payload):
    """Creation endpoints take one object or an array of them."""
    if isinstance(payload, list):
        return payload, True
    return [payload], False
