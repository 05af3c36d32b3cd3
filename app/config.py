from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
from functools import lru_cache


# Secrets that must never be used outside development
WEAK_SECRET_KEYS = {
    "secret",
    "changeme",
    "change-me",
    "password",
    "development",
    "development-secret-key-change-in-production",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/warehouse"

    @field_validator('DATABASE_URL', mode='before')
    @classmethod
    def convert_database_url(cls, v: str) -> str:
        """Convert postgresql:// to postgresql+asyncpg:// for async support."""
        if v and v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    # Auth
    SECRET_KEY: str = "development-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440

    # CORS
    FRONTEND_URL: str = "http://localhost:5173"

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    DOCS_ENABLED: bool | None = None

    # Inventory defaults
    DEFAULT_WAREHOUSE_NAME: str = "Main"
    DEFAULT_WAREHOUSE_LOCATION: str = "HQ"
    DEFAULT_PRODUCT_CATEGORY: str = "General"
    PRODUCT_CATEGORIES: list[str] = ["Electronics", "Clothing", "Home & Garden", "Automotive", "General"]
    DEFAULT_MIN_STOCK: int = 10

    # Bulk inbound rows carrying a positive cost overwrite Product.cost_price
    IMPORT_UPDATES_COST_PRICE: bool = True

    AUDIT_LOG_LIMIT: int = 50

    class Config:
        env_file = ".env"
        case_sensitive = True

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Reject insecure configuration in production-like environments."""
        if self.is_production:
            if self.SECRET_KEY in WEAK_SECRET_KEYS or len(self.SECRET_KEY) < 32:
                raise ValueError("SECRET_KEY must be a strong secret of at least 32 characters in production")
            self.DEBUG = False
        return self

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "staging")

    @property
    def sqlalchemy_echo(self) -> bool:
        """SQL echo only in local development - statements may contain customer data."""
        return self.DEBUG and not self.is_production

    @property
    def docs_enabled(self) -> bool:
        if self.DOCS_ENABLED is not None:
            return self.DOCS_ENABLED
        return not self.is_production


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
