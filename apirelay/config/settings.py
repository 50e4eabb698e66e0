"""Application settings loaded from environment variables."""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings

from apirelay.security.auth import (
    ApiKeyCredentials,
    BearerCredentials,
    Credentials,
    OAuth2Credentials,
)


class Settings(BaseSettings):
    # Upstream API authentication
    auth_type: Literal["bearer", "apikey", "oauth2"] = "bearer"
    bearer_token: str = ""
    api_token: str = ""  # Fallback when BEARER_TOKEN is unset
    api_key: str = ""
    client_id: str = ""
    client_secret: str = ""
    token_url: str = ""

    # Upstream APIs
    api_base_url: str = "https://api.example.com"
    insights_api_host: str = "https://api.docker.com"
    insights_org: str = "docker"
    request_timeout: float = 30.0
    user_agent: str = "api-relay/1.0"

    # Rate limiting (per base_url + endpoint)
    rate_limit_points: int = 100
    rate_limit_duration: int = 60  # seconds
    rate_limit_block_duration: int = 60  # seconds

    # Response cache
    cache_ttl: int = 300  # seconds
    cache_check_period: int = 60  # seconds between expiry sweeps

    # Model provider
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-haiku-20241022"
    anthropic_max_tokens: int = 512
    anthropic_temperature: float = 0.2

    # Local agent API (insights gateway)
    agent_api_url: str = "http://localhost:8080"
    agent_name: str = "root"
    agent_timeout: float = 30.0
    session_reuse_seconds: int = 300

    # Serving
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://localhost:8080"
    host: str = "0.0.0.0"
    port: int = 3000
    gateway_port: int = 3001

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stream only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("api_base_url", "insights_api_host", "agent_api_url")
    @classmethod
    def _non_empty_url(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must be set and non-empty")
        return v.strip().rstrip("/")

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def credential_config(self) -> Credentials:
        """Build the credential variant selected by AUTH_TYPE."""
        if self.auth_type == "apikey":
            return ApiKeyCredentials(key=self.api_key)
        if self.auth_type == "oauth2":
            return OAuth2Credentials(
                client_id=self.client_id,
                client_secret=self.client_secret,
                token_url=self.token_url,
            )
        return BearerCredentials(token=self.bearer_token or self.api_token)


@lru_cache
def get_settings() -> Settings:
    return Settings()
