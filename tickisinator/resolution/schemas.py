"""Schema definitions for designators and per-query resolution outcomes.

Every query produces exactly one ResolutionResult, whether it was
answered, cleanly missed, or failed. A batch of results is summarized
by BatchSummary, which also carries the process exit status.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from tickisinator.security_master.schemas import Security

DesignatorKind = Literal["ticker", "isin", "cusip"]

VALID_DESIGNATOR_KINDS: tuple[str, ...] = ("ticker", "isin", "cusip")

Provenance = Literal["store", "external", "store+computed", "computed"]

ResultStatus = Literal["resolved", "miss", "error"]

ErrorKind = Literal[
    "validation",
    "not_found",
    "not_resolvable",
    "auth",
    "rate_limit",
    "external",
    "configuration",
    "store",
]

EXIT_OK = 0
EXIT_PARTIAL = 1
EXIT_ALL_FAILED = 2
EXIT_USAGE = 3


@dataclass(frozen=True)
class Designator:
    """A classified query: kind plus normalized (uppercased) value.

    Attributes:
        kind: ticker / isin / cusip.
        value: Normalized identifier value.
        raw: The text the caller supplied, echoed back in the result.
        exchange: Optional exchange qualifier for ticker queries.
    """

    kind: DesignatorKind
    value: str
    raw: str = ""
    exchange: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in VALID_DESIGNATOR_KINDS:
            raise ValueError(
                f"Invalid designator kind {self.kind!r}. "
                f"Must be one of: {list(VALID_DESIGNATOR_KINDS)}"
            )

    @property
    def text(self) -> str:
        """The designator as typed, or its canonical ``kind:value`` form."""
        return self.raw or f"{self.kind}:{self.value}"


@dataclass
class ResolutionResult:
    """Outcome of resolving one designator.

    Attributes:
        input: The designator text as supplied.
        kind: Designator kind, when it could be parsed.
        status: resolved / miss / error.
        provenance: Where the identifiers came from (store, external,
            store+computed, computed). None when nothing was produced.
        ticker, exchange, isin, cusip, cik, name: Identifier fields.
        security_id: Store identity of the matched security.
        error_kind: Machine-readable failure class for misses and errors.
        error: Human-readable message for misses and errors.
    """

    input: str
    kind: DesignatorKind | None = None
    status: ResultStatus = "resolved"
    provenance: Provenance | None = None
    ticker: str | None = None
    exchange: str | None = None
    isin: str | None = None
    cusip: str | None = None
    cik: str | None = None
    name: str | None = None
    security_id: int | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "resolved"

    @classmethod
    def from_security(
        cls,
        designator: Designator,
        security: Security,
        provenance: Provenance,
    ) -> "ResolutionResult":
        """Build a resolved result from a store lookup."""
        return cls(
            input=designator.text,
            kind=designator.kind,
            status="resolved",
            provenance=provenance,
            ticker=security.ticker,
            exchange=security.exchange,
            isin=security.isin,
            cusip=security.cusip,
            cik=security.cik,
            name=security.name or None,
            security_id=security.security_id,
        )

    @classmethod
    def failure(
        cls,
        input: str,
        error_kind: ErrorKind,
        error: str,
        kind: DesignatorKind | None = None,
        status: ResultStatus = "error",
        **fields: Any,
    ) -> "ResolutionResult":
        """Build a miss or error result, optionally carrying partial fields."""
        return cls(
            input=input,
            kind=kind,
            status=status,
            error_kind=error_kind,
            error=error,
            **fields,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to a dictionary for JSONL output, omitting unset fields."""
        data = {
            "input": self.input,
            "kind": self.kind,
            "status": self.status,
            "provenance": self.provenance,
            "ticker": self.ticker,
            "exchange": self.exchange,
            "isin": self.isin,
            "cusip": self.cusip,
            "cik": self.cik,
            "name": self.name,
            "security_id": self.security_id,
            "error_kind": self.error_kind,
            "error": self.error,
        }
        return {key: value for key, value in data.items() if value is not None}


@dataclass
class BatchSummary:
    """Aggregated outcome of a batch of queries."""

    results: list[ResolutionResult] = field(default_factory=list)

    @property
    def resolved(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return len(self.results) - self.resolved

    @property
    def exit_code(self) -> int:
        """0 when every query resolved, 1 on partial success, 2 when all failed.

        An empty batch is a usage error (3).
        """
        if not self.results:
            return EXIT_USAGE
        if self.failed == 0:
            return EXIT_OK
        if self.resolved > 0:
            return EXIT_PARTIAL
        return EXIT_ALL_FAILED
