"""Runtime settings, loaded from ``IMPACT_LEDGER_*`` environment variables."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

TESTNET_URL = "wss://s.altnet.rippletest.net:51233"
BACKUP_TESTNET_URL = "wss://s.altnet.rippletest.net:51234"
TESTNET_FAUCET_URL = "https://faucet.altnet.rippletest.net/accounts"


class LedgerSettings(BaseSettings):
    """Settings for the ledger interaction layer."""

    model_config = SettingsConfigDict(
        env_prefix="IMPACT_LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Endpoints
    primary_url: str = TESTNET_URL
    fallback_url: str | None = BACKUP_TESTNET_URL
    faucet_url: str = TESTNET_FAUCET_URL
    connect_timeout: float = Field(default=10.0, gt=0)

    # Connection lifecycle
    reconnect_attempts: int = Field(default=3, ge=1)
    reconnect_delay: float = Field(default=2.0, ge=0)
    liveness_interval: float = Field(default=30.0, gt=0)

    # Ledgers added to the current index for LastLedgerSequence
    ledger_margin: int = Field(default=10, ge=1)

    # Payments
    payment_attempts: int = Field(default=3, ge=1)
    payment_retry_delay: float = Field(default=1.0, ge=0)

    # Mints
    mint_attempts: int = Field(default=3, ge=1)
    mint_retry_delay: float = Field(default=2.0, ge=0)

    # NFT listing
    fetch_attempts: int = Field(default=3, ge=1)
    fetch_retry_delay: float = Field(default=1.0, ge=0)
    fetch_timeout: float = Field(default=10.0, gt=0)

    # Logging
    log_level: str = "INFO"

    @property
    def endpoints(self) -> tuple[str, ...]:
        """Primary endpoint followed by the fallback, if configured."""
        if self.fallback_url and self.fallback_url != self.primary_url:
            return (self.primary_url, self.fallback_url)
        return (self.primary_url,)


@lru_cache()
def get_settings() -> LedgerSettings:
    """Get cached settings instance."""
    return LedgerSettings()
