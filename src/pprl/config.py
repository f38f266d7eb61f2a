"""
PPRL Configuration Module

Provides centralized configuration management with:
- Environment variable loading (PPRL_ prefix)
- Type validation via Pydantic
- Development overrides via .env file

Environment Variable Naming Convention:
- All variables use the PPRL_ prefix (e.g., PPRL_HE_BACKEND, PPRL_MAP_BOUND)
"""

import logging
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class PPRLSettings(BaseSettings):
    """
    PPRL runtime settings.

    Usage:
        from pprl.config import get_settings

        settings = get_settings()
        codec = IntegerCodec(bound=settings.MAP_BOUND, coeff=settings.Q_INT_COEFF)
    """

    model_config = SettingsConfigDict(
        env_prefix="PPRL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # GENERAL
    # ==========================================================================
    ENVIRONMENT: str = Field(default="development", description="Runtime environment: development, production")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # ==========================================================================
    # HOMOMORPHIC SCHEME
    # ==========================================================================
    HE_BACKEND: str = Field(default="tenseal", description="BFV backend: tenseal, toy")
    TOY_HE: bool = Field(default=False, description="Allow the insecure toy backend (testing only)")
    POLY_MODULUS_DEGREE: int = Field(default=8192, description="BFV ring degree")
    PLAIN_MODULUS: int = Field(default=65537, description="BFV plaintext modulus t (batching prime)")
    COEFF_MOD_BIT_SIZES: Optional[List[int]] = Field(default=None, description="Coefficient modulus chain; backend default when unset")

    # ==========================================================================
    # FIXED-POINT CODEC
    # ==========================================================================
    MAP_BOUND: int = Field(
        default=30000, description="N: fixed-point integers live in [-N, N); FrozenLake Q-values pass +-10"
    )
    Q_INT_COEFF: float = Field(default=1000.0, description="Fixed-point scaling coefficient")

    # ==========================================================================
    # TRANSPORT
    # ==========================================================================
    RSA_KEY_BITS: int = Field(default=2048, description="Transport RSA modulus size")
    TRANSPORT_WORKERS: Optional[int] = Field(default=None, description="Parallel chunk decrypt workers (None = executor default)")
    CHUNK_STORE_DIR: Optional[str] = Field(default=None, description="Stage sealed chunks on disk for audit (None = in memory)")

    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    def validate_config(self) -> List[str]:
        """
        Validate configuration consistency.

        Returns:
            List of configuration warnings/errors
        """
        issues = []

        if 2 * self.MAP_BOUND > self.PLAIN_MODULUS:
            issues.append(
                f"CRITICAL: 2*PPRL_MAP_BOUND ({2 * self.MAP_BOUND}) exceeds PPRL_PLAIN_MODULUS ({self.PLAIN_MODULUS})"
            )
        if self.RSA_KEY_BITS < 2048:
            issues.append("WARNING: PPRL_RSA_KEY_BITS below 2048")
        if self.is_production() and (self.HE_BACKEND == "toy" or self.TOY_HE):
            issues.append("CRITICAL: toy HE backend enabled in production")

        return issues


_settings: Optional[PPRLSettings] = None


def get_settings() -> PPRLSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = PPRLSettings()
        for issue in _settings.validate_config():
            if issue.startswith("CRITICAL"):
                logger.critical(issue)
            else:
                logger.warning(issue)
    return _settings


def reset_settings() -> None:
    """Drop cached settings so the next call re-reads the environment."""
    global _settings
    _settings = None
