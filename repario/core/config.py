"""
Configuration for the Repario API.

Every setting can be overridden through an environment variable of the same
name or a `.env` file in the working directory.
"""

from functools import lru_cache
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "Repario API"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = Field(default="development")
    API_URL: Optional[str] = Field(default=None)
    PRODUCTION_API_URL: str = Field(default="https://api.repario.app")
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=3001)
    LOG_LEVEL: str = Field(default="INFO")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///db.sqlite")

    # Tokens
    JWT_SECRET: str = Field(default="dev-access-secret-change-me")
    JWT_REFRESH_SECRET: str = Field(default="dev-refresh-secret-change-me")
    JWT_ALGORITHM: str = Field(default="HS256")
    TOKEN_EXPIRE_DAYS: int = Field(default=30)

    # CORS
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(
        default=[
            "http://localhost:5173",
            "http://localhost:5174",
            "http://localhost:5175",
            "http://localhost:3000",
        ]
    )
    ALLOWED_DOMAINS: Annotated[List[str], NoDecode] = Field(default=["repario.app"])

    # WhatsApp Cloud API
    WHATSAPP_TOKEN: Optional[str] = Field(default=None)
    WHATSAPP_PHONE_NUMBER_ID: Optional[str] = Field(default=None)
    WHATSAPP_API_URL: str = Field(default="https://graph.facebook.com/v17.0")
    WHATSAPP_TIMEOUT: float = Field(default=10.0)

    @field_validator("ALLOWED_ORIGINS", "ALLOWED_DOMAINS", mode="before")
    @classmethod
    def split_comma_separated(cls, v: Any) -> List[str]:
        """Split comma-separated strings into lists."""
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        return v

    @field_validator("ALLOWED_DOMAINS")
    @classmethod
    def validate_domain_count(cls, v: List[str]) -> List[str]:
        if len(v) > 2:
            raise ValueError("ALLOWED_DOMAINS accepts at most two domains")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if str(v).upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return str(v).upper()

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def public_api_url(self) -> str:
        if self.API_URL:
            return self.API_URL
        if self.ENVIRONMENT == "production":
            return self.PRODUCTION_API_URL
        return f"http://localhost:{self.PORT}"

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
