"""Profile field validation.

Every validator returns a list of error messages instead of raising, so
a caller can report all problems of a profile together.
"""

import re

from card_onboarding.models.base import Address

NAME_MIN_LENGTH = 3
NAME_MAX_LENGTH = 150
EMAIL_MAX_LENGTH = 150
STREET_MIN_LENGTH = 5
STREET_MAX_LENGTH = 200
CITY_MIN_LENGTH = 2
CITY_MAX_LENGTH = 100
STATE_LENGTH = 2
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 11
POSTAL_CODE_DIGITS = 8
CPF_DIGITS = 11

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
NON_DIGIT = re.compile(r"\D")


def digits_only(value: str) -> str:
    return NON_DIGIT.sub("", value or "")


def is_valid_cpf(cpf: str) -> bool:
    """Check a CPF against its two check digits."""
    digits = digits_only(cpf)
    if len(digits) != CPF_DIGITS or digits == digits[0] * CPF_DIGITS:
        return False

    numbers = [int(d) for d in digits]
    for position in (9, 10):
        total = sum(n * (position + 1 - i) for i, n in enumerate(numbers[:position]))
        remainder = total % 11
        check = 0 if remainder < 2 else 11 - remainder
        if numbers[position] != check:
            return False
    return True


def validate_name(name: str) -> list[str]:
    if not name or not name.strip():
        return ["name is required"]
    if len(name) < NAME_MIN_LENGTH:
        return [f"name must have at least {NAME_MIN_LENGTH} characters"]
    if len(name) > NAME_MAX_LENGTH:
        return [f"name must have at most {NAME_MAX_LENGTH} characters"]
    return []


def validate_email(email: str) -> list[str]:
    if not email or not email.strip():
        return ["email is required"]
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.match(email):
        return ["email is invalid"]
    return []


def validate_phone(phone: str) -> list[str]:
    if not phone or not phone.strip():
        return ["phone is required"]
    if not PHONE_MIN_DIGITS <= len(digits_only(phone)) <= PHONE_MAX_DIGITS:
        return [f"phone must have between {PHONE_MIN_DIGITS} and {PHONE_MAX_DIGITS} digits"]
    return []


def validate_document(document_id: str) -> list[str]:
    if not document_id or not document_id.strip():
        return ["document_id is required"]
    if not is_valid_cpf(document_id):
        return ["document_id is not a valid CPF"]
    return []


def validate_address(address: Address | None) -> list[str]:
    if address is None:
        return ["address is required"]

    errors = []
    street = address.street or ""
    if not street.strip():
        errors.append("street is required")
    elif not STREET_MIN_LENGTH <= len(street) <= STREET_MAX_LENGTH:
        errors.append(
            f"street must have between {STREET_MIN_LENGTH} and {STREET_MAX_LENGTH} characters"
        )

    city = address.city or ""
    if not city.strip():
        errors.append("city is required")
    elif not CITY_MIN_LENGTH <= len(city) <= CITY_MAX_LENGTH:
        errors.append(f"city must have between {CITY_MIN_LENGTH} and {CITY_MAX_LENGTH} characters")

    state = address.state or ""
    if not state.strip():
        errors.append("state is required")
    elif len(state) != STATE_LENGTH:
        errors.append(f"state must have {STATE_LENGTH} characters")

    if not (address.postal_code or "").strip():
        errors.append("postal_code is required")
    elif len(digits_only(address.postal_code)) != POSTAL_CODE_DIGITS:
        errors.append(f"postal_code must have {POSTAL_CODE_DIGITS} digits")

    return errors


def validate_profile(
    name: str,
    email: str,
    phone: str,
    document_id: str,
    address: Address | None,
) -> list[str]:
    """Validate every profile field and return all errors found."""
    return [
        *validate_name(name),
        *validate_email(email),
        *validate_phone(phone),
        *validate_document(document_id),
        *validate_address(address),
    ]
