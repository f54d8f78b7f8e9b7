"""
PIX key validation.

Every check here is a pure function of its input and never raises: an
unknown key type or a malformed value simply yields False. Callers turn a
False into a ValidationError using invalid_key_message().
"""

import re
from typing import Callable

from pixhub.models.enums import KeyType

_NON_DIGITS = re.compile(r"\D", re.ASCII)
_EMAIL = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+", re.IGNORECASE)

RANDOM_KEY_MIN_LENGTH = 32
RANDOM_KEY_MAX_LENGTH = 77


def digits_only(value: str) -> str:
    """Strip everything but ASCII 0-9."""
    return _NON_DIGITS.sub("", value)


def _check_digit(digits: str, first_weight: int) -> int:
    total = sum(int(d) * w for d, w in zip(digits, range(first_weight, 1, -1)))
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


def is_valid_national_id(value: str) -> bool:
    """
    CPF check: 11 digits, not all identical, and both mod-11 check digits match.

    First pass weighs digits 1-9 with 10..2, second pass weighs digits 1-10
    (including the first check digit) with 11..2.
    """
    cpf = digits_only(value)
    if len(cpf) != 11:
        return False
    if len(set(cpf)) == 1:
        return False

    digit1 = _check_digit(cpf[:9], 10)
    digit2 = _check_digit(cpf[:10], 11)
    return int(cpf[9]) == digit1 and int(cpf[10]) == digit2


def is_valid_email(value: str) -> bool:
    return _EMAIL.fullmatch(value) is not None


def is_valid_phone(value: str) -> bool:
    return len(digits_only(value)) in (10, 11)


def is_valid_random_key(value: str) -> bool:
    # length only, the token content is opaque
    return RANDOM_KEY_MIN_LENGTH <= len(value) <= RANDOM_KEY_MAX_LENGTH


_CHECKERS: dict[KeyType, Callable[[str], bool]] = {
    KeyType.NATIONAL_ID: is_valid_national_id,
    KeyType.EMAIL: is_valid_email,
    KeyType.PHONE: is_valid_phone,
    KeyType.RANDOM: is_valid_random_key,
}

_INVALID_MESSAGES: dict[KeyType, str] = {
    KeyType.NATIONAL_ID: "CPF invalid",
    KeyType.EMAIL: "email invalid",
    KeyType.PHONE: "phone invalid",
    KeyType.RANDOM: "random key invalid",
}


def _coerce_key_type(key_type) -> KeyType | None:
    if isinstance(key_type, KeyType):
        return key_type
    try:
        return KeyType(key_type)
    except ValueError:
        return None


def validate(raw_value: str, key_type) -> bool:
    """Return True iff raw_value is well-formed for key_type."""
    resolved = _coerce_key_type(key_type)
    if resolved is None or not isinstance(raw_value, str):
        return False
    return _CHECKERS[resolved](raw_value)


def invalid_key_message(key_type) -> str:
    resolved = _coerce_key_type(key_type)
    if resolved is None:
        return "unknown key type"
    return _INVALID_MESSAGES[resolved]
