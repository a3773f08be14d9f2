"""External resolvers: remote ticker to identifier lookups."""

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
from tickisinator.resolver.fmp import FMPResolver

__all__ = [
    "BaseResolver",
    "FMPConfig",
    "FMPResolver",
    "MalformedResponseError",
    "ResolverAuthError",
    "ResolverError",
    "ResolverNetworkError",
    "ResolverRateLimitError",
    "TickerNotFoundError",
]
