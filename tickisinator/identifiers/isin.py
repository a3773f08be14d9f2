"""
ISIN check-digit arithmetic and CUSIP to ISIN conversion.

ISIN: 2-letter country code + 9-character NSIN + 1 check digit.
For US securities the NSIN is the CUSIP, so the ISIN is a pure
function of the CUSIP: "US" + CUSIP + check digit.

The check digit is the Luhn "double-add-double" over the numeral
string obtained by expanding letters to two digits (A=10 ... Z=35).
Because letters expand, the doubling parity must be counted from the
right-hand end of the expanded string, never from the left.
"""

import re
from dataclasses import dataclass

ISIN_LENGTH = 12
ISIN_BASE_LENGTH = 11
CUSIP_LENGTH = 9
US_COUNTRY_CODE = "US"

_COUNTRY_CODE_RE = re.compile(r"[A-Z]{2}")
_ALNUM_RE = re.compile(r"[A-Za-z0-9]+")


class IdentifierError(ValueError):
    """Base exception for malformed identifier input."""


class InvalidLengthError(IdentifierError):
    """Identifier has the wrong number of characters."""


class InvalidCharacterError(IdentifierError):
    """A single character outside 0-9 / A-Z in a check-digit base."""


class InvalidCharactersError(IdentifierError):
    """CUSIP contains non-alphanumeric characters."""


@dataclass(frozen=True)
class IsinValidation:
    """Outcome of validate_isin: never raised, always returned."""

    valid: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.valid


def _char_to_numerals(char: str) -> str:
    if "0" <= char <= "9":
        return char
    if "A" <= char <= "Z":
        return str(ord(char) - ord("A") + 10)
    raise InvalidCharacterError(f"Invalid character in ISIN: {char!r}")


def compute_check_digit(base: str) -> int:
    """
    Compute the ISIN check digit for an 11-character base.

    Args:
        base: Country code + NSIN, uppercase letters and digits only

    Returns:
        Check digit 0-9

    Raises:
        InvalidLengthError: base is not 11 characters
        InvalidCharacterError: base contains anything but 0-9 / A-Z

    Example:
        >>> compute_check_digit("US037833100")
        5
        >>> compute_check_digit("US88160R101")
        4
    """
    if len(base) != ISIN_BASE_LENGTH:
        raise InvalidLengthError(
            f"ISIN base must be exactly {ISIN_BASE_LENGTH} characters "
            f"(country code + NSIN), got {len(base)}"
        )

    numerals = "".join(_char_to_numerals(c) for c in base)

    total = 0
    # position 0 is the check digit slot, so the rightmost numeral is position 1
    for position, numeral in enumerate(reversed(numerals), start=1):
        digit = int(numeral)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit = digit // 10 + digit % 10
        total += digit

    return (10 - total % 10) % 10


def validate_isin(candidate: str) -> IsinValidation:
    """
    Validate a 12-character ISIN.

    Checks length, country code, check digit format and check digit
    value, in that order, returning the first failure. Never raises.
    """
    if len(candidate) != ISIN_LENGTH:
        return IsinValidation(False, "ISIN must be exactly 12 characters")

    if not _COUNTRY_CODE_RE.fullmatch(candidate[:2]):
        return IsinValidation(
            False, "ISIN must start with 2 uppercase letters (country code)"
        )

    check_char = candidate[-1]
    if not ("0" <= check_char <= "9"):
        return IsinValidation(False, "Check digit must be a number")

    try:
        expected = compute_check_digit(candidate[:ISIN_BASE_LENGTH])
    except IdentifierError as e:
        return IsinValidation(False, str(e))

    if expected != int(check_char):
        return IsinValidation(False, "Invalid check digit")

    return IsinValidation(True)


def cusip_to_isin(cusip: str) -> str:
    """
    Convert a 9-character CUSIP to its US ISIN.

    Only valid for US-domiciled securities, where the ISIN is a
    deterministic function of the CUSIP.

    Raises:
        InvalidLengthError: cusip is not 9 characters
        InvalidCharactersError: cusip is not alphanumeric
    """
    if len(cusip) != CUSIP_LENGTH:
        raise InvalidLengthError(
            f"CUSIP must be exactly {CUSIP_LENGTH} characters, got {len(cusip)}"
        )
    if not _ALNUM_RE.fullmatch(cusip):
        raise InvalidCharactersError("CUSIP contains invalid characters")

    base = US_COUNTRY_CODE + cusip.upper()
    return f"{base}{compute_check_digit(base)}"


def cusip_from_isin(isin: str) -> str | None:
    """
    Extract the CUSIP from a US ISIN.

    US ISIN format: US + 9-character CUSIP + check digit.
    Returns None for anything that is not a 12-character US ISIN.
    """
    if len(isin) != ISIN_LENGTH or not isin.upper().startswith(US_COUNTRY_CODE):
        return None
    return isin[2:11].upper()
