"""
Resolution engine.

Drives one designator at a time through the store, the external
resolver (ticker queries only) and identifier math (CUSIP queries),
and turns every outcome into a ResolutionResult. This is the single
recovery boundary: identifier, store and resolver failures become
per-query results so one bad query never stops a batch.
"""

import time
from collections.abc import Callable, Iterable

import asyncpg
import structlog

from tickisinator.identifiers import IdentifierError, cusip_to_isin, validate_isin
from tickisinator.observability.logging import bind_context, clear_context
from tickisinator.observability.metrics import get_metrics
from tickisinator.resolution.config import ResolutionConfig
from tickisinator.resolution.designators import (
    DesignatorError,
    parse_designator,
    validate_designator,
)
from tickisinator.resolution.schemas import BatchSummary, Designator, ResolutionResult
from tickisinator.resolver.base import BaseResolver
from tickisinator.resolver.errors import ResolverError
from tickisinator.security_master.repository import InvalidRecordError
from tickisinator.security_master.service import SecurityMasterService

logger = structlog.get_logger(__name__)

STORE_ERRORS = (asyncpg.PostgresError, InvalidRecordError, OSError)

ISIN_MISS_MESSAGE = (
    "Reverse lookup (ISIN -> ticker) only works for stored entries. "
    "Please look up the ticker first to populate the store."
)
CUSIP_MISS_MESSAGE = (
    "CUSIP not found in store. Computed ISIN, but ticker lookup requires "
    "a reverse-lookup source. Please look up the ticker first."
)
NO_RESOLVER_MESSAGE = (
    "FMP_API_KEY environment variable not set. Cannot fetch from API."
)


class ResolutionEngine:
    """
    Resolve ticker, ISIN and CUSIP designators against the store.

    Ticker misses make exactly one resolver call and persist the result.
    When the query names an exchange and the provider reports a
    different listing, that listing is still stored but the query is a
    not_found miss.
    ISIN and CUSIP misses are terminal: there is no reverse lookup, so
    the caller is told to look the ticker up first.

    Usage:
        engine = ResolutionEngine(store, resolver)
        result = await engine.resolve_text("ticker:AAPL")
    """

    def __init__(
        self,
        store: SecurityMasterService,
        resolver: BaseResolver | None = None,
        config: ResolutionConfig | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._config = config or ResolutionConfig()
        self._metrics = get_metrics()

    async def resolve_text(
        self, raw: str, exchange: str | None = None
    ) -> ResolutionResult:
        """Parse, validate and resolve one ``kind:value`` string."""
        try:
            designator = parse_designator(raw, exchange=exchange)
            validate_designator(designator)
        except DesignatorError as e:
            logger.debug("Rejected designator", input=raw, error=str(e))
            result = ResolutionResult.failure(raw.strip(), "validation", str(e))
            self._metrics.record_query("unknown", result.status, None)
            return result

        return await self.resolve(designator)

    async def resolve_all(
        self,
        raws: Iterable[str],
        exchange: str | None = None,
        on_result: Callable[[ResolutionResult], None] | None = None,
    ) -> BatchSummary:
        """
        Resolve designators sequentially.

        Args:
            raws: Designator strings
            exchange: Exchange qualifier for ticker designators
            on_result: Called with each result as soon as it is ready

        Returns:
            BatchSummary over every result, in input order
        """
        summary = BatchSummary()
        for raw in raws:
            result = await self.resolve_text(raw, exchange=exchange)
            summary.results.append(result)
            if on_result is not None:
                on_result(result)

        logger.info(
            "Batch completed",
            resolved=summary.resolved,
            failed=summary.failed,
        )
        return summary

    async def resolve(self, designator: Designator) -> ResolutionResult:
        """Resolve a parsed designator. Never raises for expected failures."""
        bind_context(designator=designator.text)
        try:
            if designator.kind == "ticker":
                result = await self._resolve_ticker(designator)
            elif designator.kind == "isin":
                result = await self._resolve_isin(designator)
            else:
                result = await self._resolve_cusip(designator)
        except STORE_ERRORS as e:
            logger.error("Store failure", error=str(e), error_type=type(e).__name__)
            result = ResolutionResult.failure(
                designator.text,
                "store",
                f"Store error: {e}",
                kind=designator.kind,
            )
        finally:
            clear_context()

        self._metrics.record_query(designator.kind, result.status, result.provenance)
        return result

    # ── Per-kind state machines ─────────────────────────────────

    async def _resolve_ticker(self, designator: Designator) -> ResolutionResult:
        security = await self._store.lookup_by_ticker(
            designator.value, designator.exchange
        )
        if security is not None:
            logger.debug("Store hit", security_id=security.security_id)
            return ResolutionResult.from_security(designator, security, "store")

        if self._resolver is None:
            return ResolutionResult.failure(
                designator.text,
                "configuration",
                NO_RESOLVER_MESSAGE,
                kind=designator.kind,
            )

        logger.debug("Store miss, calling resolver", resolver=self._resolver.name)
        start = time.perf_counter()
        try:
            record = await self._resolver.resolve_ticker(designator.value)
        except ResolverError as e:
            self._metrics.record_resolver_call(
                self._resolver.name, e.kind, time.perf_counter() - start
            )
            logger.warning("Resolver failed", error_kind=e.kind, error=str(e))
            return ResolutionResult.failure(
                designator.text,
                e.kind,
                str(e),
                kind=designator.kind,
                status="miss" if e.kind == "not_found" else "error",
            )
        self._metrics.record_resolver_call(
            self._resolver.name, "ok", time.perf_counter() - start
        )

        security_id = None
        if self._config.persist_external_results:
            security_id = await self._store.upsert_security(record)
            logger.info("Stored resolver result", security_id=security_id)

        requested = designator.exchange
        if requested and (record.exchange or "").upper() != requested:
            reported = record.exchange or "no exchange"
            logger.info(
                "Exchange mismatch", requested=requested, reported=record.exchange
            )
            return ResolutionResult.failure(
                designator.text,
                "not_found",
                f"{designator.value} not listed on {requested}; "
                f"provider reports {reported}",
                kind=designator.kind,
                status="miss",
            )

        return ResolutionResult(
            input=designator.text,
            kind=designator.kind,
            status="resolved",
            provenance="external",
            ticker=record.ticker,
            exchange=record.exchange,
            isin=record.isin,
            cusip=record.cusip,
            cik=record.cik,
            name=record.name or None,
            security_id=security_id,
        )

    async def _resolve_isin(self, designator: Designator) -> ResolutionResult:
        validation = validate_isin(designator.value)
        if not validation:
            return ResolutionResult.failure(
                designator.text,
                "validation",
                f'Invalid ISIN "{designator.value}": {validation.error}',
                kind=designator.kind,
            )

        security = await self._store.lookup_by_isin(designator.value)
        if security is not None:
            return ResolutionResult.from_security(designator, security, "store")

        return ResolutionResult.failure(
            designator.text,
            "not_resolvable",
            ISIN_MISS_MESSAGE,
            kind=designator.kind,
            status="miss",
            isin=designator.value,
        )

    async def _resolve_cusip(self, designator: Designator) -> ResolutionResult:
        try:
            isin = cusip_to_isin(designator.value)
        except IdentifierError as e:
            return ResolutionResult.failure(
                designator.text,
                "validation",
                f"Failed to compute ISIN: {e}",
                kind=designator.kind,
                cusip=designator.value,
            )
        logger.debug("Computed ISIN from CUSIP", isin=isin)

        security = await self._store.lookup_by_isin(isin)
        if security is None and self._config.cusip_direct_fallback:
            security = await self._store.lookup_by_cusip(designator.value)
        if security is not None:
            return ResolutionResult.from_security(
                designator, security, "store+computed"
            )

        return ResolutionResult.failure(
            designator.text,
            "not_resolvable",
            CUSIP_MISS_MESSAGE,
            kind=designator.kind,
            status="miss",
            provenance="computed",
            cusip=designator.value,
            isin=isin,
        )
