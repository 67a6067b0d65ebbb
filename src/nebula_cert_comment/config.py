"""
Configuration — typed, validated settings loaded from environment/.env.

Uses pydantic-settings to:
  - Load defaults from NEBULA_CERT_COMMENT_* environment variables
  - Fall back to a .env file in the working directory
  - Validate types and constraints before any file is touched

Command-line flags are applied as init arguments, so a flag given on the
command line always wins over the environment.
"""

from __future__ import annotations

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from nebula_cert_comment.adapters.file_walker import DEFAULT_LARGE_FILE_LIMIT
from nebula_cert_comment.format_entries import DEFAULT_FORMAT
from nebula_cert_comment.scanner import DEFAULT_COMMENT_PREFIX

_LOG_LEVELS = frozenset(logging.getLevelNamesMapping())


class AppSettings(BaseSettings):
    """
    Root application settings.

    Load order (highest priority first):
      1. Init arguments (command-line flags)
      2. Environment variables (NEBULA_CERT_COMMENT_FORMAT, ...)
      3. .env file
      4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="NEBULA_CERT_COMMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    comment_prefix: str = Field(
        default=DEFAULT_COMMENT_PREFIX,
        min_length=1,
        description="Prefix of annotation lines",
    )
    format: str = Field(
        default=DEFAULT_FORMAT,
        min_length=1,
        description="Comma separated formatters with optional modifiers",
    )
    large_file_limit: int = Field(
        default=DEFAULT_LARGE_FILE_LIMIT,
        ge=0,
        description="Skip files larger than this many bytes; 0 disables the limit",
    )
    log_level: str = Field(default="WARNING")

    @field_validator("comment_prefix")
    @classmethod
    def validate_comment_prefix(cls, value: str) -> str:
        """An annotation is a single line, so the prefix cannot span lines."""
        if "\n" in value or "\r" in value:
            raise ValueError(f"comment prefix must be a single line, got {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"unknown log level: {value!r}")
        return level
