"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings

DEV_JWT_SECRET_KEY = "dev-jwt-secret-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment."""
    
    # ==========================================================================
    # Environment
    # ==========================================================================
    
    environment: str = "development"
    
    # ==========================================================================
    # Authentication
    # ==========================================================================
    
    jwt_secret_key: str = DEV_JWT_SECRET_KEY
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60
    
    # ==========================================================================
    # Public journeys
    # ==========================================================================
    
    passphrase_min_length: int = 6
    passphrase_hash_iterations: int = 100_000
    public_link_bytes: int = 24
    passphrase_header: str = "X-Journey-Passphrase"
    
    # ==========================================================================
    # Helpers
    # ==========================================================================
    
    @property
    def is_production(self) -> bool:
        return self.environment == "production"
    
    @model_validator(mode="after")
    def _check_production_secret(self) -> Settings:
        if self.is_production and self.jwt_secret_key == DEV_JWT_SECRET_KEY:
            raise ValueError("JOURNEYLOG_JWT_SECRET_KEY must be set in production")
        return self
    
    class Config:
        env_prefix = "JOURNEYLOG_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
