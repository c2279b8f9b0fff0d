"""
Centralized application configuration
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings (environment variables and .env)"""

    # API Settings
    API_TITLE: str = "Order Engine API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Order pricing and inventory commit engine"
    API_DEBUG: bool = False

    # Storage backend: "postgres" or "memory"
    STORE_BACKEND: str = "postgres"

    # Database
    DATABASE_URL: Optional[str] = None
    DB_CONNECT_RETRIES: int = 3
    DB_RETRY_DELAY: float = 1.0
    CONNECTION_TIMEOUT: int = 10
    AUTO_CREATE_SCHEMA: bool = False

    # Unit of work bounds
    TRANSACTION_TIMEOUT_MS: int = 5000
    MEMORY_LOCK_TIMEOUT_S: float = 5.0

    # Pricing rules (JSON file); built-in catalog when unset
    PRICING_RULES_PATH: Optional[str] = None

    # Demo customers and products for the in-memory backend
    SEED_DEMO_DATA: bool = False

    LOG_LEVEL: str = "INFO"

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:3000,https://yourdomain.com" or '["http://localhost:3000"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        # Try JSON parse first (for array format)
        import json
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


settings = Settings()
