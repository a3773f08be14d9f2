"""Identifier math: ISIN check digits and CUSIP to ISIN conversion."""

from tickisinator.identifiers.isin import (
    IdentifierError,
    InvalidCharacterError,
    InvalidCharactersError,
    InvalidLengthError,
    IsinValidation,
    compute_check_digit,
    cusip_from_isin,
    cusip_to_isin,
    validate_isin,
)

__all__ = [
    "IdentifierError",
    "InvalidCharacterError",
    "InvalidCharactersError",
    "InvalidLengthError",
    "IsinValidation",
    "compute_check_digit",
    "cusip_from_isin",
    "cusip_to_isin",
    "validate_isin",
]
