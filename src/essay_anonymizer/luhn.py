"""Luhn (mod-10) checksum used to gate credit-card matches."""

from __future__ import annotations

MIN_DIGITS = 13
MAX_DIGITS = 19


def luhn_valid(number: str) -> bool:
    """Validate a bare digit string. Length must be 13–19."""
    if len(number) < MIN_DIGITS or len(number) > MAX_DIGITS:
        return False
    checksum = 0
    for i, ch in enumerate(reversed(number)):
        if ch not in "0123456789":
            return False
        digit = int(ch)
        if i % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        checksum += digit
    return checksum % 10 == 0


def luhn_valid_token(raw: str) -> bool:
    """Validate a card-shaped token; spaces and hyphens are ignored."""
    return luhn_valid(raw.replace(" ", "").replace("-", ""))
