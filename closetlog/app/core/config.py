"""Configuration management for the Closetlog application.

This module handles all configuration aspects of the application including:
- Environment variable loading and validation using Pydantic
- Azure Key Vault integration for secrets
- Feature flag management
- Environment-specific configurations
- Domain constants used by the matcher and analytics

The configuration system is designed to be type-safe through Pydantic
validation and flexible for testing and local development.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from azure.identity.aio import DefaultAzureCredential
from azure.keyvault.secrets.aio import SecretClient
import logging
from enum import Enum

# Configure logging
logger = logging.getLogger(__name__)

_ENV = SettingsConfigDict(
    env_file=".env",
    env_file_encoding="utf-8",
    case_sensitive=True,
    extra="ignore"
)

class EnvironmentType(str, Enum):
    """Environment types for configuration management"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"

class FeatureFlags(BaseSettings):
    """Feature flag configurations"""

    # Vision analysis; when off the analyze step reports manual selection mode
    ENABLE_VISION_ANALYSIS: bool = True

    # Monitoring features
    ENABLE_DEBUG_LOGGING: bool = False

    model_config = _ENV

class DatabaseSettings(BaseSettings):
    """Database-specific configurations"""

    DATABASE_URL: str = "sqlite+aiosqlite:///./closetlog.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800
    DB_SLOW_QUERY_SECONDS: float = 1.0

    @property
    def is_sqlite(self) -> bool:
        """Check whether the configured store is SQLite"""
        return self.DATABASE_URL.startswith("sqlite")

    model_config = _ENV

class AzureSettings(BaseSettings):
    """Azure-specific configurations"""

    # Azure Key Vault
    AZURE_KEY_VAULT_NAME: Optional[str] = None

    # Azure Storage
    AZURE_STORAGE_CONNECTION_STRING: Optional[str] = None
    BLOB_CONTAINER_NAME: str = "images"

    # Azure Monitor
    APPLICATIONINSIGHTS_CONNECTION_STRING: Optional[str] = None

    model_config = _ENV

class Settings(BaseSettings):
    """Main application settings with environment-specific configurations"""

    # Basic application settings
    APP_NAME: str = "Closetlog"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: EnvironmentType = EnvironmentType.DEVELOPMENT

    # Security settings
    SECRET_KEY: str
    ALLOWED_ORIGINS: List[str] = ["*"]
    JWT_ALGORITHM: str = "HS256"
    JWT_AUDIENCE: Optional[str] = None
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Feature flags - defaults that can be overridden
    FEATURES: FeatureFlags = Field(default_factory=FeatureFlags)

    # Database settings
    DB: DatabaseSettings = Field(default_factory=DatabaseSettings)

    # Azure settings
    AZURE: AzureSettings = Field(default_factory=AzureSettings)

    # Vision model settings
    OPENAI_API_KEY: Optional[str] = None
    VISION_MODEL: str = "gpt-4o"
    VISION_MAX_TOKENS: int = 1000

    # Matching and analytics
    MATCH_THRESHOLD: float = 0.3
    DEFAULT_DONATION_THRESHOLD_MONTHS: int = 6
    ANALYTICS_TOP_N: int = 5
    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024

    # API settings
    API_V1_PREFIX: str = "/api/v1"

    @property
    def PROD(self) -> bool:
        """Check if environment is production"""
        return self.ENVIRONMENT == EnvironmentType.PRODUCTION

    model_config = _ENV

class ConfigurationManager:
    """Resolves secrets from Azure Key Vault with a local settings fallback"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._key_vault_client = None

        if settings.AZURE.AZURE_KEY_VAULT_NAME:
            self._initialize_azure_clients()

    def _initialize_azure_clients(self):
        """Initialize Azure service clients"""
        try:
            credential = DefaultAzureCredential()
            vault_url = f"https://{self.settings.AZURE.AZURE_KEY_VAULT_NAME}.vault.azure.net"
            self._key_vault_client = SecretClient(
                vault_url=vault_url,
                credential=credential
            )
        except Exception as e:
            logger.error(f"Failed to initialize Azure clients: {str(e)}")
            if self.settings.PROD:
                raise

    def feature_enabled(self, feature_name: str) -> bool:
        """Get feature flag value from local settings"""
        return getattr(self.settings.FEATURES, feature_name, False)

    async def get_secret(self, secret_name: str) -> Optional[str]:
        """Get secret from Azure Key Vault or local settings"""
        if self._key_vault_client:
            try:
                # Key Vault names cannot contain underscores
                secret = await self._key_vault_client.get_secret(
                    secret_name.replace("_", "-")
                )
                return secret.value
            except Exception as e:
                logger.error(f"Error fetching secret {secret_name}: {str(e)}")

        # Fallback to local settings
        return getattr(self.settings, secret_name, None)

@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings"""
    return Settings()

@lru_cache()
def get_config_manager() -> ConfigurationManager:
    """Get cached configuration manager instance"""
    return ConfigurationManager(get_settings())
