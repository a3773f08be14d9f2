"""Configuration for the security master service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tickisinator.security_master.schemas import UNSPECIFIED_EXCHANGE


class SecurityMasterConfig(BaseSettings):
    """Settings for the identifier store and its lookup cache."""

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_MASTER_",
        case_sensitive=False,
        extra="ignore",
    )

    default_exchange: str = Field(
        default=UNSPECIFIED_EXCHANGE,
        min_length=1,
        description="Exchange stored for records that arrive without one",
    )
    exchange_preference: list[str] = Field(
        default_factory=lambda: ["US", "NASDAQ", "NYSE", "AMEX", "NYSEARCA", "BATS"],
        description=(
            "Tie-break order for ticker lookups without an exchange; "
            "unlisted exchanges follow in alphabetical order"
        ),
    )
    cache_ttl_seconds: int = Field(
        default=300,
        ge=0,
        description="TTL for the in-memory lookup cache (0 = no caching)",
    )
    cache_max_entries: int = Field(
        default=10_000,
        ge=1,
        description="Least recently used entries are evicted beyond this size",
    )
    seed_on_init: bool = Field(
        default=False,
        description="Seed from the bundled JSON on init if the store is empty",
    )
