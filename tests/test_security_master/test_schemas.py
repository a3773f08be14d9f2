"""Tests for security master schemas."""

from tickisinator.security_master.schemas import Security, SecurityRecord


class TestSecurityRecord:
    """Tests for SecurityRecord dataclass."""

    def test_defaults(self):
        record = SecurityRecord(ticker="EXM", source="manual")
        assert record.exchange is None
        assert record.name == ""
        assert record.isin is None
        assert record.cusip is None
        assert record.cik is None
        assert record.security_type is None
        assert record.market_sector is None

    def test_equality(self, apple_record):
        copy = SecurityRecord(**apple_record.__dict__)
        assert copy == apple_record


class TestSecurity:
    """Tests for Security dataclass."""

    def test_defaults(self):
        sec = Security(security_id=1)
        assert sec.name == ""
        assert sec.ticker is None
        assert sec.isin is None
        assert sec.cusip is None
        assert sec.source is None
        assert sec.created_at is None

    def test_full_construction(self, apple_security):
        assert apple_security.ticker == "AAPL"
        assert apple_security.exchange == "NASDAQ"
        assert apple_security.isin == "US0378331005"
        assert apple_security.cusip == "037833100"
        assert apple_security.created_at.tzinfo is not None
