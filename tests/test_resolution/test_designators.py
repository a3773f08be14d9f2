"""Tests for designator parsing and validation."""

import pytest

from tickisinator.resolution.designators import (
    DesignatorError,
    parse_designator,
    validate_designator,
)
from tickisinator.resolution.schemas import Designator


class TestParseDesignator:
    """Tests for kind:value parsing."""

    def test_ticker(self):
        designator = parse_designator("ticker:AAPL")
        assert designator.kind == "ticker"
        assert designator.value == "AAPL"
        assert designator.raw == "ticker:AAPL"

    def test_normalizes_case_and_whitespace(self):
        designator = parse_designator("  ISIN : us0378331005 ")
        assert designator.kind == "isin"
        assert designator.value == "US0378331005"

    def test_splits_on_first_colon_only(self):
        assert parse_designator("ticker:A:B").value == "A:B"

    def test_exchange_applies_to_tickers(self):
        assert parse_designator("ticker:IBM", exchange="nyse").exchange == "NYSE"

    def test_exchange_ignored_for_other_kinds(self):
        assert parse_designator("cusip:037833100", exchange="NYSE").exchange is None

    def test_missing_colon(self):
        with pytest.raises(DesignatorError, match="Expected format"):
            parse_designator("AAPL")

    def test_empty_kind(self):
        with pytest.raises(DesignatorError, match="Type is empty"):
            parse_designator(":AAPL")

    def test_empty_value(self):
        with pytest.raises(DesignatorError, match="Value is empty"):
            parse_designator("ticker:  ")

    def test_unknown_kind(self):
        with pytest.raises(DesignatorError, match="Supported types: ticker, isin, cusip"):
            parse_designator("sedol:2046251")


class TestValidateDesignator:
    """Tests for per-kind format checks."""

    @pytest.mark.parametrize("ticker", ["A", "AAPL", "BRK.B", "BF-B", "ABCDEFGHIJ"])
    def test_valid_tickers(self, ticker):
        validate_designator(Designator(kind="ticker", value=ticker))

    @pytest.mark.parametrize(
        "ticker,reason",
        [
            ("ABCDEFGHIJK", "1-10 characters"),
            ("1ABC", "must start with a letter"),
            ("AB$C", "only letters, numbers"),
        ],
    )
    def test_invalid_tickers(self, ticker, reason):
        with pytest.raises(DesignatorError, match=reason):
            validate_designator(Designator(kind="ticker", value=ticker))

    def test_isin_format(self):
        validate_designator(Designator(kind="isin", value="US0378331005"))

    def test_isin_format_ignores_check_digit(self):
        validate_designator(Designator(kind="isin", value="US0378331006"))

    @pytest.mark.parametrize(
        "isin,reason",
        [
            ("US037833100", "exactly 12 characters"),
            ("1S0378331005", "invalid format"),
            ("US037833100X", "invalid format"),
        ],
    )
    def test_invalid_isins(self, isin, reason):
        with pytest.raises(DesignatorError, match=reason):
            validate_designator(Designator(kind="isin", value=isin))

    def test_cusip_format(self):
        validate_designator(Designator(kind="cusip", value="88160R101"))

    @pytest.mark.parametrize(
        "cusip,reason",
        [
            ("88160R10", "exactly 9 characters"),
            ("88160R10X", "check digit"),
            ("88160-101", "check digit"),
        ],
    )
    def test_invalid_cusips(self, cusip, reason):
        with pytest.raises(DesignatorError, match=reason):
            validate_designator(Designator(kind="cusip", value=cusip))


class TestDesignator:
    """Tests for the Designator dataclass."""

    def test_rejects_unknown_kind(self):
        with pytest.raises(ValueError, match="Invalid designator kind"):
            Designator(kind="figi", value="BBG000B9XRY4")

    def test_text_falls_back_to_canonical_form(self):
        assert Designator(kind="ticker", value="AAPL").text == "ticker:AAPL"
