"""Configuration for the resolution engine."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ResolutionConfig(BaseSettings):
    """Settings controlling how queries fall through store and resolver."""

    model_config = SettingsConfigDict(
        env_prefix="RESOLUTION_",
        case_sensitive=False,
        extra="ignore",
    )

    persist_external_results: bool = Field(
        default=True,
        description="Upsert records fetched from the external resolver",
    )
    cusip_direct_fallback: bool = Field(
        default=True,
        description=(
            "After a miss on the computed ISIN, also look the CUSIP up "
            "in its own identifier table"
        ),
    )
