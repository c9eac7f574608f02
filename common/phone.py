import re
from typing import Optional

from .errors import InvalidPhoneError

_NON_DIGITS = re.compile(r"\D")

MIN_PHONE_DIGITS = 9
MAX_PHONE_DIGITS = 15


def normalize_phone(phone: str) -> str:
    """Reduce a phone number to its digits: "010-1234-5678" -> "01012345678"."""
    digits = _NON_DIGITS.sub("", phone or "")
    if not MIN_PHONE_DIGITS <= len(digits) <= MAX_PHONE_DIGITS:
        raise InvalidPhoneError(f"Invalid phone number: {phone!r}")
    return digits


def normalize_optional_phone(phone: Optional[str]) -> Optional[str]:
    if phone is None or not phone.strip():
        return None
    return normalize_phone(phone)

