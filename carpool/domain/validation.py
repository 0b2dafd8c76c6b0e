"""
Field validators for identities and trips.

Every validator is a pure function: it returns the normalised value
(stripped, upper-cased for plates) or raises ``ValidationError`` naming
the offending field and the raw value received.

Patterns
--------
* National ID / phone:  exactly 8 digits
* Names:                letters, accented Latin-1 letters, space, ``-``, ``'``
* Plate number:         1-3 digits + ``TU`` + 4 digits  (e.g. ``123TU4567``)
* Email:                ``local@gmail.com`` or ``local@<domain>.tn``
* Password:             8+ chars with lower, upper, digit and one of ``@#$%^&+=!``
"""

from __future__ import annotations

import hashlib
import hmac
import re

from .errors import ValidationError

NATIONAL_ID_PATTERN = re.compile(r"^[0-9]{8}$")
PHONE_PATTERN = re.compile(r"^[0-9]{8}$")
NAME_PATTERN = re.compile(r"^[a-zA-ZÀ-ÿ\s'-]+$")
VEHICLE_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9À-ÿ\s'-]+$")
PLATE_PATTERN = re.compile(r"^[0-9]{1,3}TU[0-9]{4}$")
EMAIL_PATTERN = re.compile(
    r"^[A-Z0-9._%+-]+@((gmail\.com)|([A-Z0-9.-]+\.tn))$", re.IGNORECASE
)

PASSWORD_MIN_LENGTH = 8
PASSWORD_SYMBOLS = "@#$%^&+=!"

MIN_ACADEMIC_YEAR = 1900
MAX_ACADEMIC_YEAR = 2100


def _require(condition: bool, field: str, value: object, reason: str) -> None:
    if not condition:
        raise ValidationError(field, value, reason)


def _text(value: object) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_national_id(value: str, field: str = "national_id") -> str:
    text = _text(value)
    _require(bool(NATIONAL_ID_PATTERN.match(text)), field, value, "must be exactly 8 digits")
    return text


def validate_phone(value: str, field: str = "phone") -> str:
    text = _text(value)
    _require(bool(PHONE_PATTERN.match(text)), field, value, "must be exactly 8 digits")
    return text


def validate_name(value: str, field: str = "name") -> str:
    text = _text(value)
    _require(bool(NAME_PATTERN.match(text)), field, value, "must contain letters only")
    return text


def validate_vehicle_name(value: str, field: str = "vehicle_name") -> str:
    text = _text(value)
    _require(
        bool(VEHICLE_NAME_PATTERN.match(text)), field, value,
        "must contain letters and digits only",
    )
    return text


def validate_plate(value: str, field: str = "plate_number") -> str:
    """Return the plate upper-cased, e.g. ``123tu4567`` -> ``123TU4567``."""
    text = _text(value).upper()
    _require(bool(PLATE_PATTERN.match(text)), field, value, "expected format 123TU4567")
    return text


def validate_email(value: str, field: str = "email") -> str:
    text = _text(value)
    _require(bool(EMAIL_PATTERN.match(text)), field, value, "must be @gmail.com or @*.tn")
    return text


def validate_academic_year(value: int, field: str = "academic_year") -> int:
    _require(
        isinstance(value, int) and not isinstance(value, bool)
        and MIN_ACADEMIC_YEAR <= value <= MAX_ACADEMIC_YEAR,
        field, value, f"must be a year between {MIN_ACADEMIC_YEAR} and {MAX_ACADEMIC_YEAR}",
    )
    return value


def validate_seat_capacity(value: int, field: str = "seat_capacity") -> int:
    _require(
        isinstance(value, int) and not isinstance(value, bool) and value >= 1,
        field, value, "must be at least 1",
    )
    return value


def password_strength(password: str) -> dict[str, bool]:
    """Which password rules *password* satisfies."""
    password = password or ""
    return {
        "length": len(password) >= PASSWORD_MIN_LENGTH,
        "lowercase": any(c.islower() for c in password),
        "uppercase": any(c.isupper() for c in password),
        "digit": any(c.isdigit() for c in password),
        "symbol": any(c in PASSWORD_SYMBOLS for c in password),
    }


def validate_password(value: str, field: str = "password") -> str:
    if not isinstance(value, str):
        raise ValidationError(field, value, "must be a string")
    missing = [rule for rule, ok in password_strength(value).items() if not ok]
    # never echo the plaintext back in the error
    _require(not missing, field, "***", "missing " + ", ".join(missing))
    return value


def hash_password(password: str) -> str:
    """SHA-256 hex digest of *password*."""
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


def verify_password(password: str, stored_hash: str) -> bool:
    if not password or not stored_hash:
        return False
    return hmac.compare_digest(hash_password(password), stored_hash)
