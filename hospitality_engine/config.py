from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from decimal import Decimal
from datetime import time
from typing import List


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./hospitality_engine.db",
        alias="DATABASE_URL"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # CORS - Frontend URLs from environment (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        alias="ALLOWED_ORIGINS"
    )

    # Rate limiting (slowapi); memory:// or redis://host:6379
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")

    # ==============================================
    # Pricing defaults
    # ==============================================
    currency: str = Field(default="INR", alias="CURRENCY")

    # Presentation rounding step, e.g. "1" for whole rupees, "0.01" for cents
    currency_quantum: Decimal = Field(default=Decimal("1"), alias="CURRENCY_QUANTUM")

    default_tax_rate: Decimal = Field(default=Decimal("0.12"), alias="DEFAULT_TAX_RATE")
    default_service_fee_rate: Decimal = Field(default=Decimal("0.05"), alias="DEFAULT_SERVICE_FEE_RATE")

    # ==============================================
    # Availability defaults
    # ==============================================
    # Venue operating window used for free-slot suggestions
    venue_window_open: time = Field(default=time(8, 0), alias="VENUE_WINDOW_OPEN")
    venue_window_close: time = Field(default=time(22, 0), alias="VENUE_WINDOW_CLOSE")

    # Gaps shorter than this are never suggested
    min_suggested_gap_minutes: int = Field(default=120, alias="MIN_SUGGESTED_GAP_MINUTES")

    # Upper bound on stay length when no stay rule says otherwise
    max_stay_nights: int = Field(default=365, alias="MAX_STAY_NIGHTS")

    @field_validator('default_tax_rate', 'default_service_fee_rate')
    @classmethod
    def validate_rate(cls, v: Decimal) -> Decimal:
        """Rates are fractions, not percentages"""
        if v < 0 or v > 1:
            raise ValueError("rates must be between 0 and 1 (e.g. 0.12 for 12%)")
        return v

    @field_validator('currency_quantum')
    @classmethod
    def validate_quantum(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("CURRENCY_QUANTUM must be positive")
        return v

    @field_validator('min_suggested_gap_minutes', 'max_stay_nights')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be > 0")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        if not self.allowed_origins:
            return ["http://localhost:5173"]

        origins = []
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)

        return origins if origins else ["http://localhost:5173"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


# Initialize settings on module load
settings = get_settings()
