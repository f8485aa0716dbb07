from flask import abort, g

from constants import FLOAT_FIELDS, INTEGER_FIELDS


def parse_float(value):
    if value in (None, "", " "):
        return None
    try:
        return float(str(value).replace(",", "."))
    except (ValueError, TypeError):
        return None


def parse_int(value):
    if value in (None, "", " "):
        return None
    try:
        return int(float(str(value).replace(",", ".")))
    except (ValueError, TypeError):
        return None


def parse_positive_int(value, default: int, maximum: int | None = None) -> int:
    number = parse_int(value)
    if number is None or number < 1:
        number = default
    if maximum is not None:
        number = min(number, maximum)
    return number


def coerce_field(attr: str, value):
    if attr in FLOAT_FIELDS:
        return parse_float(value)
    if attr in INTEGER_FIELDS:
        return parse_int(value)
    if value is None:
        return None
    return str(value).strip()


def require_admin():
    user = getattr(g, "current_user", None)
    if not user or not getattr(user, "is_authenticated", False):
        abort(401)
    if not getattr(user, "is_admin", False):
        abort(403)
