"""
Designator parsing and format validation.

A designator is a caller-supplied query of the form ``kind:value``:

    ticker:AAPL
    isin:US0378331005
    cusip:037833100

Kinds are case-insensitive; values are uppercased. Validation here is a
format check only; the ISIN check digit is verified by the engine.
"""

import re

from tickisinator.resolution.schemas import VALID_DESIGNATOR_KINDS, Designator


class DesignatorError(ValueError):
    """Raised for a malformed designator or an invalid value format."""


_TICKER_CHARS_RE = re.compile(r"[A-Z0-9.\-]+")
_ISIN_FORMAT_RE = re.compile(r"[A-Z]{2}[A-Z0-9]{9}[0-9]")
_CUSIP_FORMAT_RE = re.compile(r"[A-Z0-9]{8}[0-9]")

MAX_TICKER_LENGTH = 10


def parse_designator(raw: str, exchange: str | None = None) -> Designator:
    """
    Split a ``kind:value`` string on its first colon.

    Args:
        raw: Designator text
        exchange: Optional exchange qualifier applied to ticker designators

    Returns:
        Designator with lowercased kind and uppercased, trimmed value

    Raises:
        DesignatorError: Missing colon, empty kind or value, unknown kind
    """
    text = raw.strip()
    kind, sep, value = text.partition(":")
    if not sep:
        raise DesignatorError(
            f'Invalid designator format: "{raw}". '
            "Expected format: {type}:{value} (e.g., ticker:AAPL)"
        )

    kind = kind.strip().lower()
    value = value.strip()
    if not kind:
        raise DesignatorError(f'Invalid designator format: "{raw}". Type is empty.')
    if not value:
        raise DesignatorError(f'Invalid designator format: "{raw}". Value is empty.')
    if kind not in VALID_DESIGNATOR_KINDS:
        raise DesignatorError(
            f'Unknown designator type: "{kind}". '
            f"Supported types: {', '.join(VALID_DESIGNATOR_KINDS)}"
        )

    qualifier = None
    if kind == "ticker" and exchange and exchange.strip():
        qualifier = exchange.strip().upper()

    return Designator(kind=kind, value=value.upper(), raw=text, exchange=qualifier)


def validate_designator(designator: Designator) -> None:
    """Check the value format for the designator's kind.

    Raises:
        DesignatorError: If the value does not look like its kind
    """
    value = designator.value
    if designator.kind == "ticker":
        _validate_ticker(value)
    elif designator.kind == "isin":
        _validate_isin_format(value)
    elif designator.kind == "cusip":
        _validate_cusip_format(value)


def _validate_ticker(ticker: str) -> None:
    if not 1 <= len(ticker) <= MAX_TICKER_LENGTH:
        raise DesignatorError(
            f'Invalid ticker "{ticker}": must be 1-{MAX_TICKER_LENGTH} characters long'
        )
    if not "A" <= ticker[0] <= "Z":
        raise DesignatorError(f'Invalid ticker "{ticker}": must start with a letter')
    if not _TICKER_CHARS_RE.fullmatch(ticker):
        raise DesignatorError(
            f'Invalid ticker "{ticker}": only letters, numbers, hyphens, '
            "and periods allowed"
        )


def _validate_isin_format(isin: str) -> None:
    if len(isin) != 12:
        raise DesignatorError(f'Invalid ISIN "{isin}": must be exactly 12 characters')
    if not _ISIN_FORMAT_RE.fullmatch(isin):
        raise DesignatorError(
            f'Invalid ISIN "{isin}": invalid format '
            "(expected: 2 letters + 9 alphanumeric + 1 digit)"
        )


def _validate_cusip_format(cusip: str) -> None:
    if len(cusip) != 9:
        raise DesignatorError(f'Invalid CUSIP "{cusip}": must be exactly 9 characters')
    if not _CUSIP_FORMAT_RE.fullmatch(cusip):
        raise DesignatorError(
            f'Invalid CUSIP "{cusip}": must be 8 alphanumeric characters '
            "+ 1 check digit"
        )
