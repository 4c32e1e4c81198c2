"""Pydantic configuration models for the interaction middleware.

Every model accepts both the camelCase keys used by the bot's
configuration files (``maxLength``, ``windowMs``) and their snake_case
attribute names.
"""

from __future__ import annotations

import re
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from bwaincell.constants import (
    DEFAULT_MAX_INPUT_LENGTH,
    DEFAULT_RATE_LIMIT_PER_GUILD,
    DEFAULT_RATE_LIMIT_PER_USER,
    DEFAULT_RATE_LIMIT_WINDOW_MS,
    DEFAULT_SLOW_INTERACTION_THRESHOLD_MS,
)


class _Settings(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


# ── Validation ───────────────────────────────────────────────────────────


def _default_field_limits() -> Dict[str, int]:
    return {
        "task_description": 200,
        "description": 200,
        "list_item": 100,
        "item": 100,
        "list_name": 50,
        "message": 200,
    }


class ValidationSettings(_Settings):
    """Input validation settings."""

    max_length: int = Field(
        default=DEFAULT_MAX_INPUT_LENGTH,
        gt=0,
        description="Upper bound for any validated text field.",
    )
    allow_empty_strings: bool = Field(
        default=False,
        description="Accept whitespace-only values instead of rejecting them.",
    )
    sanitize_html: bool = Field(
        default=True,
        description="Reject HTML/script markup in text inputs.",
    )
    field_limits: Dict[str, int] = Field(
        default_factory=_default_field_limits,
        description="Per-field length limits, capped by max_length.",
    )
    custom_patterns: Dict[str, str] = Field(
        default_factory=dict,
        description="Extra rejection patterns (name → regular expression).",
    )

    @field_validator("field_limits")
    @classmethod
    def _positive_limits(cls, v: Dict[str, int]) -> Dict[str, int]:
        for name, limit in v.items():
            if limit <= 0:
                raise ValueError(f"field limit for '{name}' must be greater than 0")
        return v

    @field_validator("custom_patterns")
    @classmethod
    def _compilable(cls, v: Dict[str, str]) -> Dict[str, str]:
        for name, pattern in v.items():
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"custom pattern '{name}' is not a valid regex: {exc}") from exc
        return v

    def limit_for(self, field: str) -> int:
        """Effective length limit for *field*."""
        return min(self.field_limits.get(field, self.max_length), self.max_length)


# ── Rate limiting ────────────────────────────────────────────────────────


class RateLimitRule(_Settings):
    """Quota for one command category."""

    max_requests: int = Field(..., gt=0)
    window_ms: int = Field(default=DEFAULT_RATE_LIMIT_WINDOW_MS, gt=0)
    message: Optional[str] = Field(
        default=None,
        description="User-facing explanation shown when the quota is exhausted.",
    )


def _default_custom_limits() -> Dict[str, RateLimitRule]:
    return {
        "task_create": RateLimitRule(
            max_requests=5,
            window_ms=60_000,
            message="You can only create 5 tasks per minute.",
        ),
        "list_modify": RateLimitRule(
            max_requests=20,
            window_ms=60_000,
            message="Too many list operations.",
        ),
        "command": RateLimitRule(
            max_requests=15,
            window_ms=60_000,
            message="Too many commands. Please slow down.",
        ),
    }


class RateLimitSettings(_Settings):
    """Per-user / per-guild request quotas."""

    per_user: int = Field(default=DEFAULT_RATE_LIMIT_PER_USER, gt=0)
    per_guild: int = Field(default=DEFAULT_RATE_LIMIT_PER_GUILD, gt=0)
    window_ms: int = Field(default=DEFAULT_RATE_LIMIT_WINDOW_MS, gt=0)
    skip_successful: bool = Field(
        default=False,
        description="Only count requests whose downstream handling failed.",
    )
    custom_limits: Dict[str, RateLimitRule] = Field(default_factory=_default_custom_limits)

    def rule_for(self, category: str) -> RateLimitRule:
        """Per-user rule for *category*, falling back to the default quota."""
        rule = self.custom_limits.get(category)
        if rule is not None:
            return rule
        return RateLimitRule(max_requests=self.per_user, window_ms=self.window_ms)

    def guild_rule_for(self, category: str) -> RateLimitRule:
        """Guild-wide rule for *category*; shares the category's window."""
        return RateLimitRule(
            max_requests=self.per_guild,
            window_ms=self.rule_for(category).window_ms,
        )


# ── Logging / errors / audit ─────────────────────────────────────────────


class LoggingSettings(_Settings):
    """Interaction logging settings."""

    enabled: bool = True
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    slow_interaction_threshold: int = Field(
        default=DEFAULT_SLOW_INTERACTION_THRESHOLD_MS,
        gt=0,
        description="Milliseconds after which an interaction is logged as slow.",
    )
    log_user_ids: bool = Field(
        default=True,
        description="Keep user/guild identifiers in log records.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, v: str) -> str:
        if isinstance(v, str):
            v = v.strip().lower()
            if v == "warn":
                return "warning"
        return v


class ErrorSettings(_Settings):
    """Error recovery settings."""

    report_critical_errors: bool = False
    enable_recovery: bool = True
    user_friendly_messages: bool = True
    # Reserved: the recovery middleware answers exactly once and never retries.
    retry_attempts: int = Field(default=3, ge=0)


class AuditSettings(_Settings):
    """Audit trail settings."""

    enabled: bool = False
    file: str = Field(default="logs/interactions.jsonl")
    max_size_mb: int = Field(default=100, gt=0)
    backup_count: int = Field(default=5, ge=0)


# ── Top-level config ────────────────────────────────────────────────────


class MiddlewareConfig(_Settings):
    """Top-level validated configuration for the interaction pipeline::

        {
            "logging": { ... },
            "rateLimit": { ... },
            "validation": { ... },
            "error": { ... },
            "audit": { ... }
        }
    """

    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    error: ErrorSettings = Field(default_factory=ErrorSettings)
    audit: AuditSettings = Field(default_factory=AuditSettings)
