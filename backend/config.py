"""Application configuration using Pydantic Settings.

This module provides centralized configuration for the A2UI streaming engine.
All settings can be overridden via environment variables or a .env file.
"""

import logging
from typing import Any

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        gemini_api_key: API key for Google Gemini models (agent credential).
        default_model: Model for single-agent A2UI generation.
        agent_model: Model used by the coordinator's specialist agents.
        llm_request_timeout_seconds: Timeout for opening an LLM stream.
        llm_max_retries: Retries for transient LLM errors before giving up.
        orchestration_timeout_seconds: Wall-time budget for one coordinator
            dispatch (all agents together).
        status_event_delay_seconds: Advisory pause after the first status event.
            Purely cosmetic pacing for visualizers; 0 disables it.
        coordinator_root_id: Component id of the coordinator's shell root.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        log_format: Log format (json or text).
    """

    # LLM Configuration
    gemini_api_key: str = ""
    # Model names must include provider prefix for LiteLLM (e.g., gemini/)
    default_model: str = "gemini/gemini-2.5-flash"
    agent_model: str = "gemini/gemini-2.5-pro"
    llm_request_timeout_seconds: int = 120
    llm_max_retries: int = 2

    # Coordinator
    orchestration_timeout_seconds: float = 180.0
    status_event_delay_seconds: float = 0.0
    coordinator_root_id: str = "main_root"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_format", mode="before")
    @classmethod
    def parse_log_format(cls, v: Any) -> str:
        """Normalize the log format, falling back to json for unknown values."""
        if isinstance(v, str) and v.strip().lower() in ("json", "text"):
            return v.strip().lower()
        return "json"

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Configure structured logging for the application.

    Sets up structlog with appropriate processors for either JSON or console output.

    Args:
        log_level: The minimum log level to emit (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format - 'json' for production, 'text' for development.
    """
    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Global settings instance
settings = Settings()

# Configure logging on module import
configure_logging(settings.log_level, settings.log_format)
