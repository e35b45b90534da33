"""Phone number normalization and fake-number detection."""

import re

_NON_DIGIT_RE = re.compile(r"\D")

KNOWN_FAKE_NUMBERS = frozenset({
    "0000000000", "1111111111", "2222222222", "5555555555",
    "1234567890", "0987654321", "1231231234", "9999999999",
})
SEQUENTIAL_NUMBERS = frozenset({"1234567890", "0123456789", "9876543210", "0987654321"})


def normalize_phone(phone: str) -> str:
    """Reduce a phone string to bare digits, dropping a leading US country code."""
    digits = _NON_DIGIT_RE.sub("", phone or "")
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits


def is_fake_phone(phone: str) -> bool:
    """
    True for numbers that cannot be a real US line: wrong length, a single
    repeated digit, repeating 2/3-digit patterns, sequential runs, well known
    test numbers and area codes starting with 0 or 1.
    """
    if len(phone) != 10 or not phone.isdigit():
        return True

    if max(phone.count(d) for d in set(phone)) >= 9:
        return True

    first3 = phone[:3]
    if phone == first3 * 3 + first3[0]:
        return True
    if phone == phone[:2] * 5:
        return True

    if phone in SEQUENTIAL_NUMBERS or phone in KNOWN_FAKE_NUMBERS:
        return True

    return phone[0] in "01"
