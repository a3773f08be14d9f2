"""Data models for the security master."""

from dataclasses import dataclass
from datetime import datetime

UNSPECIFIED_EXCHANGE = "US"


@dataclass
class SecurityRecord:
    """A partial, source-tagged identifier bundle to upsert.

    This is the single normalized shape every data source maps into
    before anything reaches the store. Only ``ticker`` and ``source``
    are required; a record with no ISIN or CUSIP yet is normal.
    ``exchange`` left as None is stored under the unspecified-exchange
    token.
    """

    ticker: str
    source: str
    exchange: str | None = None
    name: str = ""
    isin: str | None = None
    cusip: str | None = None
    cik: str | None = None
    security_type: str | None = None
    market_sector: str | None = None


@dataclass
class Security:
    """A security joined with every identifier recorded for it.

    Sibling identifiers that have never been observed are None.
    ``source`` and ``fetched_at`` describe the identifier row the
    lookup matched on.
    """

    security_id: int
    name: str = ""
    ticker: str | None = None
    exchange: str | None = None
    isin: str | None = None
    cusip: str | None = None
    cik: str | None = None
    security_type: str | None = None
    market_sector: str | None = None
    source: str | None = None
    fetched_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
