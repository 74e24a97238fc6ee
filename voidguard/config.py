"""
VoidGuard Configuration — pydantic-settings based.

All settings are read from environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


APP_VERSION = "1.0.0"


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Analysis ──
    default_references: list[str] = Field(
        default=["Microsoft.AspNetCore.App"],
        description="Metadata references used when a scan request names none",
    )
    concurrent_execution: bool = Field(
        default=True,
        description="Allow analyzers that opt in to run class callbacks on a thread pool",
    )
    analysis_max_workers: int = Field(
        default=4, ge=1, description="Thread pool size for concurrent analyzer callbacks"
    )
    scan_timeout_seconds: float = Field(
        default=30.0, gt=0, description="Scan budget before analysis is cancelled"
    )

    # ── Scanning ──
    max_file_size_bytes: int = Field(
        default=500_000, description="Max file size to accept (bytes)"
    )
    max_files_per_scan: int = Field(
        default=500, description="Max number of files accepted in one scan request"
    )

    # ── Cache ──
    cache_ttl_seconds: int = Field(
        default=3600, description="Time-to-live for parsed syntax tree cache entries"
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Singleton instance — imported by other modules
settings = Settings()
