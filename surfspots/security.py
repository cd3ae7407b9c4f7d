"""
Password hashing and input validation.
"""
import math
import re

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from .exceptions import ValidationError

USERNAME_RE = re.compile(r"^[a-zA-Z0-9]{3,20}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6

_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _hasher.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Check a password against its argon2 hash; any mismatch is ``False``."""
    try:
        return _hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def validate_username(username: str) -> None:
    if not USERNAME_RE.match(username or ""):
        raise ValidationError("Username must be 3-20 alphanumeric characters")


def validate_password(password: str) -> None:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def validate_email(email: str) -> None:
    if not EMAIL_RE.match(email or ""):
        raise ValidationError("Invalid email format")


def validate_coordinates(lat, lon) -> tuple[float, float]:
    """
    Parse and range-check a latitude/longitude pair.

    Args:
        lat: Latitude as number or numeric string
        lon: Longitude as number or numeric string

    Returns:
        (lat, lon) as floats

    Raises:
        ValidationError: If either value is missing, non-numeric or out of range
    """
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates")
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise ValidationError("Invalid coordinates")
    if not (-90 <= lat_f <= 90 and -180 <= lon_f <= 180):
        raise ValidationError("Invalid coordinates")
    return lat_f, lon_f
