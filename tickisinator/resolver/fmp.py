"""
Financial Modeling Prep (FMP) resolver.

Looks up a ticker via FMP's /stable/profile endpoint, which returns
ISIN, CUSIP and CIK for US listings. FMP's free tier allows 250
requests per day and has no reverse (ISIN to ticker) lookup.
"""

import logging
import re
from typing import Any

import httpx

from tickisinator.identifiers import cusip_from_isin, validate_isin
from tickisinator.resolver.base import BaseResolver
from tickisinator.resolver.config import FMPConfig
from tickisinator.resolver.errors import (
    MalformedResponseError,
    ResolverAuthError,
    ResolverError,
    ResolverNetworkError,
    ResolverRateLimitError,
    TickerNotFoundError,
)
from tickisinator.resolver.http_client import (
    APIKeyRotator,
    HTTPClient,
    HTTPClientError,
    RateLimitError,
    RetryConfig,
    TransportError,
)
from tickisinator.security_master.schemas import SecurityRecord

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = (
    "Rate limit exceeded (250 requests/day). "
    "Please try again tomorrow or upgrade your plan."
)

_CUSIP_RE = re.compile(r"[A-Z0-9]{9}")


def _text(value: Any) -> str | None:
    """Stringify a payload value; blank or missing becomes None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _security_type(profile: dict[str, Any]) -> str | None:
    if profile.get("isEtf"):
        return "ETF"
    if profile.get("isFund"):
        return "Fund"
    if profile.get("isAdr"):
        return "ADR"
    if "isEtf" in profile or "isFund" in profile:
        return "Common Stock"
    return None


def parse_profile(ticker: str, data: Any, source: str = "fmp") -> SecurityRecord:
    """Map an FMP profile payload onto a SecurityRecord.

    Identifiers that fail validation are dropped with a warning rather
    than failing the whole lookup; a missing CUSIP is recovered from a
    US ISIN.

    Raises:
        ResolverAuthError, ResolverRateLimitError, TickerNotFoundError,
        MalformedResponseError
    """
    if isinstance(data, dict) and "Error Message" in data:
        message = str(data["Error Message"])
        if "api key" in message.lower():
            raise ResolverAuthError(
                "Invalid API KEY. Please check your FMP_API_KEY environment variable.",
                status_code=401,
            )
        raise MalformedResponseError(f"FMP error: {message}")

    if not isinstance(data, list):
        raise MalformedResponseError(
            f"Invalid response format: expected array, got {type(data).__name__}"
        )

    # FMP sometimes reports quota exhaustion as a 200 with a message body
    if (
        len(data) == 1
        and isinstance(data[0], dict)
        and "rate limit" in str(data[0].get("message", "")).lower()
    ):
        raise ResolverRateLimitError(RATE_LIMIT_MESSAGE, status_code=429)

    if not data:
        raise TickerNotFoundError(ticker)

    profile = data[0]
    if not isinstance(profile, dict) or not _text(profile.get("symbol")):
        raise MalformedResponseError("Invalid response format: profile has no symbol")

    isin = _text(profile.get("isin"))
    if isin is not None:
        isin = isin.upper()
        validation = validate_isin(isin)
        if not validation.valid:
            logger.warning(f"Dropping ISIN {isin} for {ticker}: {validation.error}")
            isin = None

    cusip = _text(profile.get("cusip"))
    if cusip is not None:
        cusip = cusip.upper()
        if not _CUSIP_RE.fullmatch(cusip):
            logger.warning(f"Dropping malformed CUSIP {cusip} for {ticker}")
            cusip = None
    if cusip is None and isin is not None:
        cusip = cusip_from_isin(isin)

    return SecurityRecord(
        ticker=_text(profile["symbol"]).upper(),
        source=source,
        exchange=_text(profile.get("exchange")),
        name=_text(profile.get("companyName")) or "",
        isin=isin,
        cusip=cusip,
        cik=_text(profile.get("cik")),
        security_type=_security_type(profile),
        market_sector=_text(profile.get("sector")),
    )


class FMPResolver(BaseResolver):
    """
    Ticker resolver backed by the FMP profile endpoint.

    Usage:
        async with FMPResolver(FMPConfig()) as resolver:
            record = await resolver.resolve_ticker("AAPL")
    """

    def __init__(
        self,
        config: FMPConfig | None = None,
        http_client: HTTPClient | None = None,
    ) -> None:
        """
        Args:
            config: FMP settings (read from the environment when omitted)
            http_client: An already-entered client; the caller keeps
                ownership and closes it
        """
        self._config = config or FMPConfig()
        self._rotator = APIKeyRotator.from_env_var(self._config.api_keys)
        self._owns_client = http_client is None
        self._http = http_client or HTTPClient(
            RetryConfig(max_retries=self._config.max_retries),
            timeout=self._config.timeout_seconds,
        )
        self._open = http_client is not None

    @property
    def name(self) -> str:
        return "fmp"

    async def __aenter__(self) -> "FMPResolver":
        if self._owns_client and not self._open:
            await self._http.__aenter__()
            self._open = True
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client and self._open:
            await self._http.__aexit__(None, None, None)
            self._open = False

    async def resolve_ticker(self, ticker: str) -> SecurityRecord:
        if self._rotator is None:
            raise ResolverAuthError(
                "FMP_API_KEY environment variable not set. Cannot fetch from API."
            )
        if not self._open:
            raise RuntimeError("FMPResolver must be used as async context manager")

        try:
            response = await self._http.get(
                self._config.profile_url,
                params={"symbol": ticker},
                api_key_rotator=self._rotator,
                api_key_param="apikey",
            )
        except RateLimitError as e:
            raise ResolverRateLimitError(RATE_LIMIT_MESSAGE, status_code=429) from e
        except TransportError as e:
            raise ResolverNetworkError(f"Network error: {e}") from e
        except HTTPClientError as e:
            raise self._classify_status(e) from e
        except httpx.HTTPError as e:
            raise ResolverNetworkError(f"Network error: {type(e).__name__}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Failed to parse JSON response: {e}") from e

        record = parse_profile(ticker, data, source=self.name)
        logger.info(f"Fetched {ticker} from FMP (isin={record.isin}, cusip={record.cusip})")
        return record

    @staticmethod
    def _classify_status(error: HTTPClientError) -> ResolverError:
        status = error.status_code
        if status in (401, 403):
            if error.response_body and "invalid api key" in error.response_body.lower():
                return ResolverAuthError(
                    "Invalid API KEY. Please check your FMP_API_KEY environment variable.",
                    status_code=status,
                )
            return ResolverAuthError(
                f"Authentication failed: HTTP {status}", status_code=status
            )
        if status is not None and status >= 500:
            return ResolverNetworkError(
                f"FMP server error: HTTP {status}", status_code=status
            )
        return ResolverError(f"FMP request failed: HTTP {status}", status_code=status)
