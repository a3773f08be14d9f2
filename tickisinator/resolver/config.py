"""Configuration for the Financial Modeling Prep resolver."""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FMPConfig(BaseSettings):
    """Settings for the FMP /stable/profile lookup."""

    model_config = SettingsConfigDict(
        env_prefix="FMP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_keys: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FMP_API_KEYS", "FMP_API_KEY"),
        description="FMP API key, or several comma-separated keys to rotate",
    )
    base_url: str = Field(default="https://financialmodelingprep.com")
    profile_endpoint: str = Field(default="/stable/profile")
    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries on 5xx and transport errors (never on 429)",
    )

    @property
    def configured(self) -> bool:
        """Check if at least one API key is set."""
        return bool(self.api_keys and self.api_keys.strip(" ,"))

    @property
    def profile_url(self) -> str:
        return self.base_url.rstrip("/") + self.profile_endpoint
