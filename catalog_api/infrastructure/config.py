"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"
    database_pool_size: int = 10

    # Authentication
    jwt_secret: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    seller_id_header: str = "X-Seller-ID"

    # Listing
    default_page_size: int = 10
    max_page_size: int = 100

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
