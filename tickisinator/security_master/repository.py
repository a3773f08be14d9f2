"""Database repository for securities and their identifier tables."""

import logging
import re
from collections.abc import Sequence
from dataclasses import replace

import asyncpg

from tickisinator.identifiers import validate_isin
from tickisinator.security_master.schemas import (
    UNSPECIFIED_EXCHANGE,
    Security,
    SecurityRecord,
)
from tickisinator.storage.database import Database

logger = logging.getLogger(__name__)

_CUSIP_RE = re.compile(r"[A-Z0-9]{9}")

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS securities (
    id            BIGSERIAL PRIMARY KEY,
    name          TEXT NOT NULL DEFAULT '',
    security_type TEXT,
    market_sector TEXT,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS identifiers_ticker (
    ticker      TEXT NOT NULL,
    exchange    TEXT NOT NULL DEFAULT 'US',
    security_id BIGINT NOT NULL REFERENCES securities(id) ON DELETE CASCADE,
    source      TEXT NOT NULL,
    fetched_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (ticker, exchange)
);

CREATE TABLE IF NOT EXISTS identifiers_isin (
    isin        TEXT PRIMARY KEY CHECK (length(isin) = 12),
    security_id BIGINT NOT NULL REFERENCES securities(id) ON DELETE CASCADE,
    source      TEXT NOT NULL,
    fetched_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS identifiers_cusip (
    cusip       TEXT PRIMARY KEY CHECK (length(cusip) = 9),
    security_id BIGINT NOT NULL REFERENCES securities(id) ON DELETE CASCADE,
    source      TEXT NOT NULL,
    fetched_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS identifiers_cik (
    cik         TEXT PRIMARY KEY,
    security_id BIGINT NOT NULL REFERENCES securities(id) ON DELETE CASCADE,
    source      TEXT NOT NULL,
    fetched_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_identifiers_ticker_security
    ON identifiers_ticker(security_id);
CREATE INDEX IF NOT EXISTS idx_identifiers_isin_security
    ON identifiers_isin(security_id);
CREATE INDEX IF NOT EXISTS idx_identifiers_cusip_security
    ON identifiers_cusip(security_id);
CREATE INDEX IF NOT EXISTS idx_identifiers_cik_security
    ON identifiers_cik(security_id);
"""

# Probes used to attach an incoming record to an existing security.
_FIND_BY_TICKER_SQL = (
    "SELECT security_id FROM identifiers_ticker WHERE ticker = $1 AND exchange = $2"
)
_FIND_BY_ISIN_SQL = "SELECT security_id FROM identifiers_isin WHERE isin = $1"
_FIND_BY_CUSIP_SQL = "SELECT security_id FROM identifiers_cusip WHERE cusip = $1"

_INSERT_SECURITY_SQL = """
INSERT INTO securities (name, security_type, market_sector)
VALUES ($1, $2, $3)
RETURNING id
"""

_UPDATE_SECURITY_SQL = """
UPDATE securities
SET name = $2, security_type = $3, market_sector = $4, updated_at = NOW()
WHERE id = $1
"""

_UPSERT_TICKER_SQL = """
INSERT INTO identifiers_ticker (ticker, exchange, security_id, source)
VALUES ($1, $2, $3, $4)
ON CONFLICT (ticker, exchange) DO UPDATE SET
    security_id = EXCLUDED.security_id,
    source = EXCLUDED.source,
    fetched_at = NOW()
"""


def _single_key_upsert_sql(table: str, column: str) -> str:
    return f"""
INSERT INTO {table} ({column}, security_id, source)
VALUES ($1, $2, $3)
ON CONFLICT ({column}) DO UPDATE SET
    security_id = EXCLUDED.security_id,
    source = EXCLUDED.source,
    fetched_at = NOW()
"""


_UPSERT_ISIN_SQL = _single_key_upsert_sql("identifiers_isin", "isin")
_UPSERT_CUSIP_SQL = _single_key_upsert_sql("identifiers_cusip", "cusip")
_UPSERT_CIK_SQL = _single_key_upsert_sql("identifiers_cik", "cik")


def _sibling_join(table: str, columns: str, alias: str) -> str:
    """LEFT JOIN one row of a sibling identifier table, newest first."""
    return f"""
LEFT JOIN LATERAL (
    SELECT {columns} FROM {table}
    WHERE security_id = s.id
    ORDER BY fetched_at DESC, {columns}
    LIMIT 1
) AS {alias} ON TRUE"""


_TICKER_JOIN = _sibling_join("identifiers_ticker", "ticker, exchange", "t")
_ISIN_JOIN = _sibling_join("identifiers_isin", "isin", "i")
_CUSIP_JOIN = _sibling_join("identifiers_cusip", "cusip", "c")
_CIK_JOIN = _sibling_join("identifiers_cik", "cik", "k")

_SECURITY_COLUMNS = """
    s.id AS security_id, s.name, s.security_type, s.market_sector,
    s.created_at, s.updated_at,
    t.ticker, t.exchange, i.isin, c.cusip, k.cik"""

_LOOKUP_BY_TICKER_SQL = f"""
SELECT {_SECURITY_COLUMNS}, t.source, t.fetched_at
FROM identifiers_ticker AS t
JOIN securities AS s ON s.id = t.security_id
{_ISIN_JOIN}
{_CUSIP_JOIN}
{_CIK_JOIN}
WHERE t.ticker = $1 AND t.exchange = $2
"""

_LOOKUP_BY_TICKER_ANY_EXCHANGE_SQL = f"""
SELECT {_SECURITY_COLUMNS}, t.source, t.fetched_at
FROM identifiers_ticker AS t
JOIN securities AS s ON s.id = t.security_id
{_ISIN_JOIN}
{_CUSIP_JOIN}
{_CIK_JOIN}
WHERE t.ticker = $1
ORDER BY array_position($2::text[], t.exchange) NULLS LAST, t.exchange
LIMIT 1
"""

_LOOKUP_BY_ISIN_SQL = f"""
SELECT {_SECURITY_COLUMNS}, i.source, i.fetched_at
FROM identifiers_isin AS i
JOIN securities AS s ON s.id = i.security_id
{_TICKER_JOIN}
{_CUSIP_JOIN}
{_CIK_JOIN}
WHERE i.isin = $1
"""

_LOOKUP_BY_CUSIP_SQL = f"""
SELECT {_SECURITY_COLUMNS}, c.source, c.fetched_at
FROM identifiers_cusip AS c
JOIN securities AS s ON s.id = c.security_id
{_TICKER_JOIN}
{_ISIN_JOIN}
{_CIK_JOIN}
WHERE c.cusip = $1
"""

_LOOKUP_BY_CIK_SQL = f"""
SELECT {_SECURITY_COLUMNS}, k.source, k.fetched_at
FROM identifiers_cik AS k
JOIN securities AS s ON s.id = k.security_id
{_TICKER_JOIN}
{_ISIN_JOIN}
{_CUSIP_JOIN}
WHERE k.cik = $1
"""

_COUNT_ROWS_SQL = """
SELECT
    (SELECT COUNT(*) FROM securities)         AS securities,
    (SELECT COUNT(*) FROM identifiers_ticker) AS identifiers_ticker,
    (SELECT COUNT(*) FROM identifiers_isin)   AS identifiers_isin,
    (SELECT COUNT(*) FROM identifiers_cusip)  AS identifiers_cusip,
    (SELECT COUNT(*) FROM identifiers_cik)    AS identifiers_cik
"""

TABLES = (
    "securities",
    "identifiers_ticker",
    "identifiers_isin",
    "identifiers_cusip",
    "identifiers_cik",
)


class InvalidRecordError(ValueError):
    """A SecurityRecord that cannot be stored as given."""


def _clean_code(value: str | None) -> str | None:
    """Trim and uppercase an identifier code; blank becomes None."""
    if value is None:
        return None
    value = value.strip().upper()
    return value or None


def normalize_record(
    record: SecurityRecord, default_exchange: str = UNSPECIFIED_EXCHANGE
) -> SecurityRecord:
    """Normalize identifier codes and reject values the store must not hold.

    Raises:
        InvalidRecordError: missing ticker/source, bad ISIN or bad CUSIP
    """
    ticker = _clean_code(record.ticker)
    if not ticker:
        raise InvalidRecordError("Security record requires a ticker")

    source = (record.source or "").strip()
    if not source:
        raise InvalidRecordError(f"Security record for {ticker} has no source")

    isin = _clean_code(record.isin)
    if isin is not None:
        result = validate_isin(isin)
        if not result.valid:
            raise InvalidRecordError(f"Invalid ISIN {isin}: {result.error}")

    cusip = _clean_code(record.cusip)
    if cusip is not None and not _CUSIP_RE.fullmatch(cusip):
        raise InvalidRecordError(
            f"Invalid CUSIP {cusip}: must be 9 alphanumeric characters"
        )

    cik = record.cik.strip() if record.cik else None

    return replace(
        record,
        ticker=ticker,
        source=source,
        exchange=_clean_code(record.exchange) or default_exchange,
        name=(record.name or "").strip(),
        isin=isin,
        cusip=cusip,
        cik=cik or None,
    )


def _record_to_security(record) -> Security:
    """Convert an asyncpg Record to a Security dataclass."""
    return Security(
        security_id=record["security_id"],
        name=record["name"],
        ticker=record["ticker"],
        exchange=record["exchange"],
        isin=record["isin"],
        cusip=record["cusip"],
        cik=record["cik"],
        security_type=record["security_type"],
        market_sector=record["market_sector"],
        source=record["source"],
        fetched_at=record["fetched_at"],
        created_at=record["created_at"],
        updated_at=record["updated_at"],
    )


class SecurityMasterRepository:
    """Upsert and multi-key lookup over securities and identifier tables.

    Each identifier kind lives in its own table keyed by its value
    ((ticker, exchange) for tickers), pointing back at one securities
    row. Uniqueness and referential integrity are enforced by the
    schema, not by callers.
    """

    def __init__(
        self,
        database: Database,
        default_exchange: str = UNSPECIFIED_EXCHANGE,
        exchange_preference: Sequence[str] = (),
    ) -> None:
        self._db = database
        self._default_exchange = default_exchange
        self._exchange_preference = list(exchange_preference)

    @property
    def default_exchange(self) -> str:
        return self._default_exchange

    async def create_tables(self) -> None:
        """Create the securities and identifier tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Security master tables ensured")

    async def upsert_security(self, record: SecurityRecord) -> int:
        """Attach a record to its security, creating one if needed.

        The existing security is found by probing, in order, the
        (ticker, exchange) pair, the ISIN and the CUSIP; the first hit
        wins. Descriptive fields are overwritten (last write wins) and
        every supplied identifier is inserted or re-pointed in place.
        Repeating a call with the same record only moves timestamps.

        Returns:
            The security's stable id
        """
        record = normalize_record(record, self._default_exchange)

        async with self._db.transaction() as conn:
            security_id = await self._find_existing(conn, record)

            if security_id is None:
                security_id = await conn.fetchval(
                    _INSERT_SECURITY_SQL,
                    record.name,
                    record.security_type,
                    record.market_sector,
                )
                logger.debug(f"Created security {security_id} for {record.ticker}")
            else:
                await conn.execute(
                    _UPDATE_SECURITY_SQL,
                    security_id,
                    record.name,
                    record.security_type,
                    record.market_sector,
                )

            await conn.execute(
                _UPSERT_TICKER_SQL,
                record.ticker,
                record.exchange,
                security_id,
                record.source,
            )
            if record.isin:
                await conn.execute(
                    _UPSERT_ISIN_SQL, record.isin, security_id, record.source
                )
            if record.cusip:
                await conn.execute(
                    _UPSERT_CUSIP_SQL, record.cusip, security_id, record.source
                )
            if record.cik:
                await conn.execute(
                    _UPSERT_CIK_SQL, record.cik, security_id, record.source
                )

        return security_id

    async def _find_existing(
        self, conn: asyncpg.Connection, record: SecurityRecord
    ) -> int | None:
        """Run the ordered probes and return the first matching security id."""
        probes: list[tuple[str, tuple]] = [
            (_FIND_BY_TICKER_SQL, (record.ticker, record.exchange)),
        ]
        if record.isin:
            probes.append((_FIND_BY_ISIN_SQL, (record.isin,)))
        if record.cusip:
            probes.append((_FIND_BY_CUSIP_SQL, (record.cusip,)))

        for sql, args in probes:
            security_id = await conn.fetchval(sql, *args)
            if security_id is not None:
                return security_id
        return None

    async def bulk_upsert(self, records: list[SecurityRecord]) -> int:
        """Upsert several records, one transaction each.

        Returns the number of records processed.
        """
        for record in records:
            await self.upsert_security(record)
        if records:
            logger.info("Bulk upserted %d security records", len(records))
        return len(records)

    async def lookup_by_ticker(
        self, ticker: str, exchange: str | None = None
    ) -> Security | None:
        """Fetch a security by ticker, optionally qualified by exchange.

        Without an exchange, several listings may match; the one whose
        exchange comes first in the configured preference list wins,
        then the alphabetically first exchange.
        """
        ticker = _clean_code(ticker)
        if ticker is None:
            return None
        exchange = _clean_code(exchange)
        if exchange:
            row = await self._db.fetchrow(
                _LOOKUP_BY_TICKER_SQL, ticker, exchange
            )
        else:
            row = await self._db.fetchrow(
                _LOOKUP_BY_TICKER_ANY_EXCHANGE_SQL,
                ticker,
                self._exchange_preference,
            )
        return _record_to_security(row) if row else None

    async def lookup_by_isin(self, isin: str) -> Security | None:
        """Fetch a security by ISIN."""
        isin = _clean_code(isin)
        if isin is None:
            return None
        row = await self._db.fetchrow(_LOOKUP_BY_ISIN_SQL, isin)
        return _record_to_security(row) if row else None

    async def lookup_by_cusip(self, cusip: str) -> Security | None:
        """Fetch a security by CUSIP."""
        cusip = _clean_code(cusip)
        if cusip is None:
            return None
        row = await self._db.fetchrow(_LOOKUP_BY_CUSIP_SQL, cusip)
        return _record_to_security(row) if row else None

    async def lookup_by_cik(self, cik: str) -> Security | None:
        """Fetch a security by SEC Central Index Key."""
        cik = (cik or "").strip()
        if not cik:
            return None
        row = await self._db.fetchrow(_LOOKUP_BY_CIK_SQL, cik)
        return _record_to_security(row) if row else None

    async def count(self) -> int:
        """Count securities."""
        return await self._db.fetchval("SELECT COUNT(*) FROM securities")

    async def count_rows(self) -> dict[str, int]:
        """Row counts for the securities table and every identifier table."""
        row = await self._db.fetchrow(_COUNT_ROWS_SQL)
        if row is None:
            return {table: 0 for table in TABLES}
        return {table: row[table] for table in TABLES}
