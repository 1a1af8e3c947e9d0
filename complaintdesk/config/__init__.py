"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="complaint-desk", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/complaints",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Auth (managed provider) ==========
    auth_jwt_secret: Optional[str] = Field(
        default=None,
        description="Shared secret used by the auth provider to sign access tokens"
    )
    auth_jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    auth_jwt_audience: str = Field(default="authenticated", description="Expected JWT audience")
    auth_webhook_secret: Optional[str] = Field(
        default=None,
        description="Secret the auth provider sends with account registration hooks"
    )
    auto_provision_accounts: bool = Field(
        default=True,
        description="Create profile and student role on first authenticated request"
    )

    # ========== LLM (OpenAI-compatible gateway) ==========
    llm_api_key: Optional[str] = Field(default=None, description="API key for the LLM gateway")
    llm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of an OpenAI-compatible gateway (None uses api.openai.com)"
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Model used for classification")
    llm_temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    llm_max_tokens: int = Field(default=800, ge=1, le=8000)
    llm_timeout_seconds: float = Field(default=30.0, ge=1.0)
    llm_max_retries: int = Field(
        default=2,
        description="Retries after a rate-limit rejection before giving up",
        ge=0,
        le=10
    )
    llm_retry_backoff_seconds: float = Field(default=1.0, ge=0.0)
    mock_llm: bool = Field(
        default=False,
        description="Use mock LLM responses for testing (no API calls)"
    )

    # ========== Intake ==========
    intake_requires_classification: bool = Field(
        default=True,
        description="Block complaint creation when the classification call fails"
    )

    # ========== Ticket codes ==========
    ticket_code_prefix: str = Field(default="CMP", description="Ticket code prefix")
    ticket_code_width: int = Field(default=3, description="Zero-padded sequence width", ge=1)
    ticket_code_max_attempts: int = Field(
        default=5,
        description="Insert attempts before a ticket code collision is fatal",
        ge=1
    )

    # ========== Slack (operator alerts) ==========
    slack_webhook_url: Optional[str] = Field(
        default=None,
        description="Slack webhook URL for operator alerts"
    )
    slack_channel: str = Field(default="#complaints-ops", description="Slack channel for alerts")
    slack_timeout_seconds: float = Field(default=5.0, ge=0.1, le=30)

    # ========== Change feed ==========
    change_feed_buffer_size: int = Field(
        default=500,
        description="Number of recent change events kept for polling clients",
        ge=10
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "testing", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class AppRole(str, Enum):
    """Roles a user can hold."""
    STUDENT = "student"
    ADMIN = "admin"


class ComplaintCategory(str, Enum):
    """Complaint categories offered to students and to the classifier."""
    INFRASTRUCTURE = "Infrastructure"
    FACULTY = "Faculty"
    CURRICULUM = "Curriculum"
    ADMINISTRATION = "Administration"
    FACILITIES = "Facilities"
    OTHER = "Other"


class ComplaintPriority(str, Enum):
    """Advisory priority assigned by the classifier."""
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ComplaintStatus(str, Enum):
    """Complaint lifecycle statuses."""
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    WITHDRAWN = "Withdrawn"


class ChangeEventType(str, Enum):
    """Kinds of complaint change events."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"


# ========== Lists for validation ==========

COMPLAINT_CATEGORIES = [c.value for c in ComplaintCategory]
COMPLAINT_PRIORITIES = [p.value for p in ComplaintPriority]
COMPLAINT_STATUSES = [s.value for s in ComplaintStatus]
APP_ROLES = [r.value for r in AppRole]
