"""Failure taxonomy for external resolvers."""


class ResolverError(Exception):
    """Base exception for external resolver failures."""

    kind = "external"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TickerNotFoundError(ResolverError):
    """The provider has no record for the ticker."""

    kind = "not_found"

    def __init__(self, ticker: str):
        super().__init__(f"Ticker not found: {ticker}", status_code=404)
        self.ticker = ticker


class ResolverAuthError(ResolverError):
    """The provider rejected the API key."""

    kind = "auth"


class ResolverRateLimitError(ResolverError):
    """The provider quota is exhausted."""

    kind = "rate_limit"


class ResolverNetworkError(ResolverError):
    """Transient transport or server-side failure."""


class MalformedResponseError(ResolverError):
    """The provider answered with a payload we cannot interpret."""
