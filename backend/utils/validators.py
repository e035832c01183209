import re

from flask import request

from utils.errors import APIError

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def get_json():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    return data


def require_fields(data, *fields):
    if not isinstance(data, dict):
        raise APIError("Expected a JSON object")
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise APIError(f"Missing required fields: {', '.join(missing)}", details={"missing": missing})


def validate_email(email):
    if not email or not EMAIL_PATTERN.match(email.strip()):
        raise APIError("Invalid email format")
    return email.strip().lower()


def validate_password(password):
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise APIError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def as_int(value, field, minimum=None):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise APIError(f"{field} must be an integer")
    if minimum is not None and number < minimum:
        raise APIError(f"{field} must be at least {minimum}")
    return number
