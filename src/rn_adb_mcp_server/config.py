"""Runtime configuration."""

from functools import lru_cache
from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Server configuration read from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="RN_ADB_MCP_",
        case_sensitive=False,
        extra="ignore",
    )

    server_name: str = Field(
        default="rn-adb-mcp-server",
        description="Name announced to MCP clients",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("RN_ADB_MCP_LOG_LEVEL", "LOG_LEVEL"),
        description="Minimum level written to stderr",
    )

    # ADB execution
    default_timeout_ms: int = Field(
        default=30000,
        description="Timeout applied to adb commands when the caller gives none",
    )
    max_timeout_ms: int = Field(
        default=300000,
        description="Upper bound accepted by timeout validation",
    )
    max_output_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Combined stdout/stderr cap per adb invocation",
    )
    shell_allowed_commands: List[str] = Field(
        default_factory=list,
        description="Base commands accepted by run_shell_command; empty means any",
    )

    # Package managers
    package_command_timeout_ms: int = Field(
        default=600000,
        description="Timeout for npm/yarn/pnpm invocations",
    )

    # Performance monitoring
    perf_report: bool = Field(
        default=False,
        validation_alias=AliasChoices("MCP_PERF_REPORT", "RN_ADB_MCP_PERF_REPORT"),
        description="Write a performance report to stderr on exit",
    )
    perf_max_metrics: int = Field(
        default=1000,
        description="Number of recent metrics kept in memory",
    )

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache()
def get_settings() -> Settings:
    return Settings()
