"""Tests for ISIN check digits and CUSIP to ISIN conversion."""

import random
import string

import pytest

from tickisinator.identifiers import (
    InvalidCharacterError,
    InvalidCharactersError,
    InvalidLengthError,
    compute_check_digit,
    cusip_from_isin,
    cusip_to_isin,
    validate_isin,
)

# (cusip, isin) pairs for real US listings
KNOWN_US_SECURITIES = [
    ("037833100", "US0378331005"),  # Apple
    ("594918104", "US5949181045"),  # Microsoft
    ("88160R101", "US88160R1014"),  # Tesla
    ("67066G104", "US67066G1040"),  # NVIDIA
]

ALPHANUMERIC = string.digits + string.ascii_uppercase


class TestComputeCheckDigit:
    """Tests for the Luhn check digit over expanded numerals."""

    def test_apple(self):
        assert compute_check_digit("US037833100") == 5

    def test_microsoft(self):
        assert compute_check_digit("US594918104") == 5

    def test_letter_inside_nsin(self):
        """A letter in the NSIN expands to two numerals."""
        assert compute_check_digit("US88160R101") == 4

    def test_result_is_single_digit(self):
        for cusip, _ in KNOWN_US_SECURITIES:
            assert 0 <= compute_check_digit("US" + cusip) <= 9

    def test_rejects_lowercase(self):
        with pytest.raises(InvalidCharacterError):
            compute_check_digit("us037833100")

    def test_rejects_punctuation(self):
        with pytest.raises(InvalidCharacterError):
            compute_check_digit("US03783310-")

    def test_rejects_wrong_length(self):
        with pytest.raises(InvalidLengthError):
            compute_check_digit("US03783310")


class TestValidateIsin:
    """Tests for structured ISIN validation."""

    @pytest.mark.parametrize("isin", [isin for _, isin in KNOWN_US_SECURITIES])
    def test_valid(self, isin):
        result = validate_isin(isin)
        assert result.valid is True
        assert result.error is None
        assert result

    def test_tampered_check_digit(self):
        result = validate_isin("US0378331006")
        assert result.valid is False
        assert result.error == "Invalid check digit"
        assert not result

    @pytest.mark.parametrize("candidate", ["US037833100", "US03783310055"])
    def test_length_reason_distinct_from_check_digit(self, candidate):
        result = validate_isin(candidate)
        assert result.valid is False
        assert result.error == "ISIN must be exactly 12 characters"

    def test_empty_string(self):
        assert validate_isin("").error == "ISIN must be exactly 12 characters"

    def test_country_code_must_be_letters(self):
        result = validate_isin("120378331005")
        assert result.error == "ISIN must start with 2 uppercase letters (country code)"

    def test_country_code_must_be_uppercase(self):
        result = validate_isin("us0378331005")
        assert result.error == "ISIN must start with 2 uppercase letters (country code)"

    def test_check_digit_must_be_numeric(self):
        result = validate_isin("US037833100X")
        assert result.error == "Check digit must be a number"

    def test_invalid_character_in_body(self):
        result = validate_isin("US03783310#5")
        assert result.valid is False
        assert "Invalid character" in result.error

    def test_non_us_isin(self):
        # SAP SE
        assert validate_isin("DE0007164600").valid is True


class TestCusipToIsin:
    """Tests for CUSIP to ISIN conversion."""

    @pytest.mark.parametrize("cusip,isin", KNOWN_US_SECURITIES)
    def test_known_securities(self, cusip, isin):
        assert cusip_to_isin(cusip) == isin

    def test_lowercase_input_normalized(self):
        assert cusip_to_isin("88160r101") == "US88160R1014"

    def test_every_position_and_character_validates(self):
        base = "037833100"
        for position in range(len(base)):
            for char in ALPHANUMERIC:
                cusip = base[:position] + char + base[position + 1:]
                isin = cusip_to_isin(cusip)
                assert validate_isin(isin).valid, cusip
                assert isin[2:11] == cusip

    def test_random_sample_validates(self):
        rng = random.Random(20261019)
        for _ in range(2000):
            cusip = "".join(rng.choices(ALPHANUMERIC, k=9))
            assert validate_isin(cusip_to_isin(cusip)).valid, cusip

    @pytest.mark.parametrize("cusip", ["03783310", "0378331000", ""])
    def test_wrong_length(self, cusip):
        with pytest.raises(InvalidLengthError):
            cusip_to_isin(cusip)

    @pytest.mark.parametrize("cusip", ["03783310-", "0378 3100", "03783310é"])
    def test_non_alphanumeric(self, cusip):
        with pytest.raises(InvalidCharactersError):
            cusip_to_isin(cusip)


class TestCusipFromIsin:
    """Tests for recovering a CUSIP from a US ISIN."""

    def test_us_isin(self):
        assert cusip_from_isin("US88160R1014") == "88160R101"

    def test_non_us_isin(self):
        assert cusip_from_isin("DE0007164600") is None

    def test_wrong_length(self):
        assert cusip_from_isin("US037833100") is None
