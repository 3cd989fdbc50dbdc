"""
Configuration management for the Solana Pay checkout service.

Loads settings from .env via pydantic-settings.

Notes:
    - poll/validation intervals are configured in milliseconds (matching
      the wallet-facing polling cadence), converted to seconds via properties
    - validate_production_settings() enforces strict CORS in production
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Solana RPC ──────────────────────────────────────────────────
    solana_rpc_url: str = "https://api.devnet.solana.com"
    rpc_timeout_seconds: float = 15.0
    commitment: str = "confirmed"  # confirmed | finalized

    # ── Merchant ────────────────────────────────────────────────────
    merchant_wallet: str = "2FJZ49vWsN3LE3tmNsd14DmtSmxNtsr32vsrgKBUv77p"

    # ── Reference Locator ───────────────────────────────────────────
    poll_interval_ms: int = 1000
    max_poll_attempts: int = 0            # 0 = unlimited (bounded by timeout)
    payment_timeout_seconds: float = 600.0

    # ── Transfer Validator ──────────────────────────────────────────
    validation_attempts: int = 5
    validation_retry_ms: int = 1000

    # ── Sessions ────────────────────────────────────────────────────
    session_ttl_seconds: int = 900

    # ── QR rendering ────────────────────────────────────────────────
    qr_size: int = 250
    qr_background: str = "transparent"
    qr_foreground: str = "#FFFFFF"

    # ── Rate limiting ───────────────────────────────────────────────
    checkout_rate_limit: int = 10
    checkout_rate_window_seconds: int = 60

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def validation_retry_seconds(self) -> float:
        return self.validation_retry_ms / 1000

    @property
    def poll_attempt_cap(self) -> Optional[int]:
        """Maximum poll count, or None when only the timeout bounds the loop."""
        return self.max_poll_attempts or None

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        from utils.validators import validate_solana_address
        from domain.enums import Commitment

        # Raises InvalidAddressError on a malformed merchant wallet
        validate_solana_address(self.merchant_wallet, field="merchant_wallet")
        Commitment(self.commitment)

        if self.environment == "production":
            if "*" in self.cors_origins:
                raise ValueError(
                    "CORS_ORIGINS must not contain '*' in production. "
                    "Set explicit allowed origins."
                )
            if "devnet" in self.solana_rpc_url or "testnet" in self.solana_rpc_url:
                raise ValueError(
                    "SOLANA_RPC_URL points at a test cluster in production. "
                    "Payments would never settle on mainnet."
                )
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if "mainnet" in self.solana_rpc_url:
                warnings.append("SOLANA_RPC_URL targets mainnet outside production")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
