"""
Base resolver interface.

A resolver turns a ticker into a best-effort SecurityRecord from a
remote source. Implementations must map their source-shaped payload
into SecurityRecord before returning and raise only ResolverError
subclasses.
"""

from abc import ABC, abstractmethod

from tickisinator.security_master.schemas import SecurityRecord


class BaseResolver(ABC):
    """Abstract base class for external identifier resolvers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provenance tag written with every record (e.g. "fmp")."""
        pass

    @abstractmethod
    async def resolve_ticker(self, ticker: str) -> SecurityRecord:
        """
        Look up a ticker at the remote source.

        Raises:
            TickerNotFoundError: The source has no such ticker
            ResolverAuthError: Credentials rejected
            ResolverRateLimitError: Quota exhausted
            ResolverNetworkError: Transient failure
            MalformedResponseError: Unusable payload
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
