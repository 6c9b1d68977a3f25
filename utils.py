from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from functools import wraps
from flask import jsonify
from flask_jwt_extended import verify_jwt_in_request, get_jwt, get_jwt_identity
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

def ensure_aware_utc(dt: datetime) -> datetime:
    """Return a UTC-aware datetime (treat naive as UTC)."""
    if dt is None:
        return None
    # tz-naive or tzinfo with no offset => treat as UTC
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)

def round_half_up(value, places: int = 0) -> Decimal:
    """
    Round the exact binary value of ``value`` half-up to ``places`` decimals.

    Matches JavaScript's Math.round / Number.prototype.toFixed, so 0.25 -> 0.3
    and 50.5 -> 51 (Python's round() would give 0.2 and 50).
    """
    exponent = Decimal(1).scaleb(-places)
    return Decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)

def fixed(value, places: int) -> str:
    return f"{round_half_up(value, places):.{places}f}"

def require_roles(*roles):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            claims = get_jwt()
            if claims.get("role") not in roles:
                return jsonify({"message": "Forbidden: insufficient role"}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def current_user_id() -> int:
    return int(get_jwt_identity())

def current_user_claims():
    """Claims of a valid bearer token; an empty dict when it is missing, malformed or expired."""
    try:
        verify_jwt_in_request(optional=True)
        return get_jwt()
    except (JWTExtendedException, PyJWTError):
        return {}
