"""Configuration management using Pydantic Settings."""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

WRITE_SLICES = ["create", "update", "delete"]


def parse_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated env value, dropping blank items."""
    if not value or not value.strip():
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8000
    server_url: str = Field(
        default="http://localhost:8000",
        description="The canonical URL of this MCP server",
    )
    server_name: str = "umbraco-hosted-mcp"
    server_version: str = "0.1.0"

    # Umbraco instance
    umbraco_base_url: str = Field(
        default="https://localhost:44331",
        description="Browser-reachable Umbraco base URL (used for the authorize redirect)",
    )
    umbraco_server_url: Optional[str] = Field(
        default=None,
        description="Server-reachable Umbraco base URL override (token exchange, API calls)",
    )

    # Umbraco OAuth client registration
    umbraco_oauth_client_id: str = ""
    umbraco_oauth_client_secret: Optional[str] = Field(
        default=None,
        description="Only set when the bridge is registered as a confidential client",
    )
    umbraco_scopes: List[str] = ["openid", "offline_access"]

    # Token storage
    token_store_backend: str = Field(default="memory", description="memory or redis")
    redis_url: str = ""
    redis_key_prefix: str = "umbraco_hosted_mcp"
    token_encryption_key: str = Field(
        default="",
        description="Secret used to derive the at-rest encryption key (openssl rand -hex 32)",
    )
    oauth_state_ttl_seconds: int = 600
    token_ttl_buffer_seconds: int = 300
    default_token_ttl_seconds: int = 3600

    # Outbound HTTP
    http_timeout_seconds: float = 30.0

    # Tool filtering (comma-separated)
    umbraco_tool_modes: str = ""
    umbraco_include_slices: str = ""
    umbraco_exclude_slices: str = ""
    umbraco_readonly: bool = False

    # Browser origins allowed to call /mcp besides localhost and this server (comma-separated)
    mcp_allowed_origins: str = "https://claude.ai,https://claude.com"

    # Outer OAuth provider, as "package.module:attribute"
    oauth_provider: str = ""

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def umbraco_server_base_url(self) -> str:
        """Base URL for server-side calls, falling back to the browser URL."""
        return (self.umbraco_server_url or self.umbraco_base_url).rstrip("/")

    @property
    def is_confidential_client(self) -> bool:
        return bool(self.umbraco_oauth_client_secret)

    @property
    def tool_modes(self) -> List[str]:
        return parse_csv(self.umbraco_tool_modes)

    @property
    def include_slices(self) -> List[str]:
        return parse_csv(self.umbraco_include_slices)

    @property
    def exclude_slices(self) -> List[str]:
        """Excluded slices, with the write slices added in readonly mode."""
        excluded = parse_csv(self.umbraco_exclude_slices)
        if self.umbraco_readonly:
            excluded.extend(s for s in WRITE_SLICES if s not in excluded)
        return excluded


# Singleton instance
settings = Settings()
