"""Centralized configuration for hise-mcp-server using Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every field can be set through an environment variable of the same name with
    the ``HISE_`` prefix (e.g. ``HISE_DATA_DIR``) or through a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="HISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Corpus
    data_dir: Path = Field(default=Path("data"), description="Directory holding the HISE JSON source files")
    cache_enabled: bool = Field(default=True, description="Persist canonicalized records between startups")
    cache_file_name: str = Field(default=".cache.json", min_length=1, description="Snapshot file name in data_dir")

    # Search
    default_search_limit: int = Field(default=10, ge=1, description="Result count when a caller gives no limit")
    max_search_limit: int = Field(default=50, ge=1, description="Upper bound applied to caller supplied limits")
    suggestion_limit: int = Field(default=3, ge=1, description="'Did you mean' suggestions for exact lookups")
    related_limit: int = Field(default=5, ge=0, description="Related items attached to enriched lookups")

    # Server settings
    mcp_transport: Literal["stdio", "http"] = Field(default="stdio", description="MCP transport")
    mcp_host: str = Field(default="127.0.0.1", description="MCP server host (http transport)")
    mcp_port: int = Field(default=3000, ge=1, le=65535, description="MCP server port (http transport)")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    # Security
    mask_error_details: bool = Field(
        default=True, description="Mask internal error details in tool responses"
    )

    @model_validator(mode="after")
    def _check_limits(self) -> "Settings":
        if self.default_search_limit > self.max_search_limit:
            raise ValueError(
                f"DEFAULT_SEARCH_LIMIT ({self.default_search_limit}) must not exceed "
                f"MAX_SEARCH_LIMIT ({self.max_search_limit})"
            )
        return self

    @property
    def cache_path(self) -> Path:
        """Location of the corpus snapshot cache."""
        return self.data_dir / self.cache_file_name

    def clamp_limit(self, limit: int | None) -> int:
        """Clamp a caller supplied result limit to ``[1, max_search_limit]``.

        Args:
            limit: Requested limit, or None for the default

        Returns:
            A limit safe to hand to the search engine
        """
        if limit is None:
            return self.default_search_limit
        return min(max(1, limit), self.max_search_limit)
