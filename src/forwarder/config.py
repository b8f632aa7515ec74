"""Configuration management for the forwarder."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DomainRewritePair


class Settings(BaseSettings):
    """Application settings.

    Constructed once at process start and handed to the components that need
    it. Instances are frozen, so a running forwarder never sees its upstream
    change underneath it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Upstream Configuration
    upstream_base_url: str = Field(
        "https://api.qrserver.com/v1/read-qr-code/",
        description="Site to forward requests to",
    )
    upstream_domain: str = Field(
        "api.qrserver.com", description="Domain of the upstream, used for rewrites"
    )
    proxy_domain: str = Field(
        "azurewebsites.net", description="Public domain of this forwarder"
    )
    request_timeout: float = Field(
        30.0, gt=0, description="Upstream request timeout in seconds"
    )
    verify_tls: bool = Field(True, description="Verify upstream TLS certificates")

    # Inbound Configuration
    mount_path: str = Field("/forward", description="Path the forwarder is served at")
    upload_field: str = Field(
        "file", description="Multipart field carrying the uploaded file"
    )
    reject_post_without_file: bool = Field(
        False, description="Answer 400 to a POST that carries no upload"
    )

    # Application Configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Logging level"
    )
    debug: bool = Field(False, description="Enable debug mode")
    log_headers: bool = Field(
        False, description="Append verbose transport diagnostics to the headers log"
    )
    headers_log_path: Path | None = Field(
        Path("headers.txt"),
        description="File for transport diagnostics; unset sends them to the logger",
    )

    # API Configuration
    api_host: str = Field("0.0.0.0", description="API host")
    api_port: int = Field(8000, description="API port")

    @field_validator("upstream_domain", "proxy_domain")
    @classmethod
    def _domain_not_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("domain must not be empty")
        return value

    @field_validator("mount_path")
    @classmethod
    def _normalize_mount(cls, value: str) -> str:
        value = "/" + value.strip().strip("/")
        return value.rstrip("/") or "/"

    @property
    def rewrite_pair(self) -> DomainRewritePair:
        """Domain pair used to rewrite headers in both directions."""
        return DomainRewritePair(
            upstream_domain=self.upstream_domain, proxy_domain=self.proxy_domain
        )


# Global settings instance
settings = Settings()
