"""
Configuration management for PKI Agent
"""
import os
from pathlib import Path
from typing import Optional, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class PkiAgentSettings(BaseSettings):
    """PKI Agent configuration settings"""

    # Application settings
    STORE_BACKEND: Literal["memory", "aws"] = Field(
        default="memory",
        description="Certificate store backend: 'memory' or 'aws'"
    )

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the server to"
    )

    PORT: int = Field(
        default=8080,
        description="Port to bind the server to"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )

    # Issuance settings
    HASH_ALGORITHM: Literal["SHA256", "SHA384", "SHA512"] = Field(
        default="SHA256",
        description="Hash algorithm used to sign certificates"
    )

    MIN_KEY_SIZE: int = Field(
        default=2048,
        description="Smallest RSA key size accepted for issuance, in bits"
    )

    CLOCK_SKEW_SECONDS: int = Field(
        default=300,
        description="How far notBefore is backdated from the issuance time"
    )

    CHAIN_VALIDITY_DAYS: int = Field(
        default=365,
        description="Default validity of leaf certificates re-issued during chaining"
    )

    # AWS Secrets Manager settings (if using aws store)
    AWS_REGION: Optional[str] = Field(
        default=None,
        description="AWS region for Secrets Manager"
    )

    AWS_PROFILE: Optional[str] = Field(
        default=None,
        description="Named AWS profile to authenticate with"
    )

    AWS_ACCESS_KEY_ID: Optional[str] = Field(
        default=None,
        description="AWS access key ID"
    )

    AWS_SECRET_ACCESS_KEY: Optional[str] = Field(
        default=None,
        description="AWS secret access key"
    )

    AWS_RECOVERY_WINDOW_DAYS: int = Field(
        default=7,
        description="Days a deleted certificate stays recoverable in Secrets Manager"
    )

    # CORS settings
    CORS_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins"
    )

    CORS_ALLOW_CREDENTIALS: bool = Field(
        default=False,
        description="Allow credentials in CORS requests"
    )

    model_config = SettingsConfigDict(
        env_prefix="PKI_AGENT_",
        env_file=os.path.join(Path(__file__).parent, ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list"""
        if self.CORS_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    def store_config(self) -> dict:
        """Build the config dict handed to store adapters"""
        return {
            "aws_region": self.AWS_REGION,
            "aws_profile": self.AWS_PROFILE,
            "aws_access_key_id": self.AWS_ACCESS_KEY_ID,
            "aws_secret_access_key": self.AWS_SECRET_ACCESS_KEY,
            "recovery_window_days": self.AWS_RECOVERY_WINDOW_DAYS,
        }


# Global settings instance
_settings: Optional[PkiAgentSettings] = None


def get_settings() -> PkiAgentSettings:
    """Get or create settings instance (singleton pattern)"""
    global _settings
    if _settings is None:
        _settings = PkiAgentSettings()
    return _settings


def reload_settings() -> PkiAgentSettings:
    """Reload settings from environment"""
    global _settings
    _settings = PkiAgentSettings()
    return _settings
