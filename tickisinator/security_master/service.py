"""Security master service with read-through caching and seed support."""

import json
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from pathlib import Path

from tickisinator.observability.metrics import get_metrics
from tickisinator.security_master.cache import LookupCache
from tickisinator.security_master.config import SecurityMasterConfig
from tickisinator.security_master.repository import SecurityMasterRepository
from tickisinator.security_master.schemas import Security, SecurityRecord
from tickisinator.storage.database import Database

logger = logging.getLogger(__name__)

_SEED_FILE = Path(__file__).parent / "data" / "seed_securities.json"


def _parse_seed_entry(entry: dict) -> SecurityRecord:
    """Convert a JSON seed entry to a SecurityRecord."""
    return SecurityRecord(
        ticker=entry["ticker"],
        source=entry.get("source", "seed"),
        exchange=entry.get("exchange"),
        name=entry.get("name", ""),
        isin=entry.get("isin"),
        cusip=entry.get("cusip"),
        cik=entry.get("cik"),
        security_type=entry.get("security_type"),
        market_sector=entry.get("market_sector"),
    )


class SecurityMasterService:
    """The store contract used by the resolution engine.

    Wraps SecurityMasterRepository with an optional TTL/LRU lookup
    cache. Upserts clear the cache, so lookups read their own writes
    whether or not caching is enabled.
    """

    def __init__(
        self,
        database: Database,
        config: SecurityMasterConfig | None = None,
    ) -> None:
        self._config = config or SecurityMasterConfig()
        self._repo = SecurityMasterRepository(
            database,
            default_exchange=self._config.default_exchange,
            exchange_preference=self._config.exchange_preference,
        )
        self._cache = LookupCache(
            ttl_seconds=self._config.cache_ttl_seconds,
            max_entries=self._config.cache_max_entries,
        )
        self._metrics = get_metrics()

    @property
    def repository(self) -> SecurityMasterRepository:
        """Access the underlying repository for direct DB operations."""
        return self._repo

    @property
    def cache(self) -> LookupCache:
        return self._cache

    async def ensure_schema(self) -> None:
        """Create tables if missing, then seed if configured to."""
        await self._repo.create_tables()
        await self.ensure_seeded()

    # ── Writes ──────────────────────────────────────────────────

    async def upsert_security(self, record: SecurityRecord) -> int:
        """Upsert a record and return the owning security id."""
        start = time.perf_counter()
        try:
            return await self._repo.upsert_security(record)
        finally:
            self.invalidate_cache()
            self._metrics.record_store_latency("upsert", time.perf_counter() - start)

    def invalidate_cache(self) -> None:
        """Force-clear the lookup cache so next access hits the DB."""
        self._cache.clear()

    # ── Cached lookups ──────────────────────────────────────────

    async def lookup_by_ticker(
        self, ticker: str, exchange: str | None = None
    ) -> Security | None:
        return await self._read_through(
            ("ticker", ticker, exchange),
            "lookup_ticker",
            lambda: self._repo.lookup_by_ticker(ticker, exchange),
        )

    async def lookup_by_isin(self, isin: str) -> Security | None:
        return await self._read_through(
            ("isin", isin), "lookup_isin", lambda: self._repo.lookup_by_isin(isin)
        )

    async def lookup_by_cusip(self, cusip: str) -> Security | None:
        return await self._read_through(
            ("cusip", cusip), "lookup_cusip", lambda: self._repo.lookup_by_cusip(cusip)
        )

    async def lookup_by_cik(self, cik: str) -> Security | None:
        return await self._read_through(
            ("cik", cik), "lookup_cik", lambda: self._repo.lookup_by_cik(cik)
        )

    async def _read_through(
        self,
        key: Hashable,
        operation: str,
        loader: Callable[[], Awaitable[Security | None]],
    ) -> Security | None:
        if self._cache.enabled:
            cached = self._cache.get(key)
            self._metrics.record_cache(hit=cached is not None)
            if cached is not None:
                return cached

        start = time.perf_counter()
        security = await loader()
        self._metrics.record_store_latency(operation, time.perf_counter() - start)

        if security is not None:
            self._cache.put(key, security)
        return security

    # ── Seed ────────────────────────────────────────────────────

    async def seed_from_json(self, path: Path | None = None) -> int:
        """Load security records from a JSON file into the database.

        Returns the number of records upserted.
        """
        seed_path = path or _SEED_FILE
        with open(seed_path) as f:
            entries = json.load(f)

        records = [_parse_seed_entry(e) for e in entries]
        count = await self._repo.bulk_upsert(records)
        self.invalidate_cache()
        logger.info("Seeded %d securities from %s", count, seed_path)
        return count

    async def ensure_seeded(self) -> None:
        """Seed from default JSON if the store is empty and seed_on_init is True."""
        if not self._config.seed_on_init:
            return

        existing = await self._repo.count()
        if existing > 0:
            logger.debug("Securities table has %d rows, skipping seed", existing)
            return

        logger.info("Securities table empty, seeding from default JSON")
        await self.seed_from_json()
