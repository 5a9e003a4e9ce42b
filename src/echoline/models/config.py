"""Configuration models for Echoline sessions and components."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator


class ReconnectConfig(BaseModel):
    """Exponential backoff policy for the live event stream."""

    base_delay: float = Field(
        default=2.0,
        gt=0,
        description="Seconds to wait before the first reconnect attempt.",
    )

    multiplier: float = Field(
        default=1.5,
        ge=1.0,
        description="Growth factor applied to the delay on each consecutive failure.",
    )

    max_delay: float = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single reconnect delay, in seconds.",
    )

    max_retries: int = Field(
        default=15,
        ge=0,
        description=(
            "Consecutive failed attempts tolerated before the supervisor gives up "
            "and reports a terminal disconnect."
        ),
    )

    @model_validator(mode="after")
    def validate_delays(self) -> ReconnectConfig:
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be greater than or equal to base_delay")
        return self


class HydrationConfig(BaseModel):
    """Configuration for the initial snapshot fetch."""

    enabled: bool = True
    """Whether to fetch a snapshot before streaming. The stream alone converges eventually."""

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for responses whose status is in retryable_statuses.",
    )

    retryable_statuses: list[int] = Field(
        default_factory=lambda: [503],
        description="HTTP statuses that mean 'session still starting, try again'.",
    )

    base_delay: float = Field(default=1.0, ge=0)
    """Seconds before the first snapshot retry; doubled on each retry."""

    max_delay: float = Field(default=8.0, ge=0)

    timeout: float = Field(
        default=30.0,
        gt=0,
        description="Seconds allowed for a single snapshot request.",
    )


class EndpointConfig(BaseModel):
    """Where the snapshot and event stream endpoints live."""

    base_url: str = "http://localhost:3000"

    events_path: str = "/api/sessions/{session_id}/events"
    messages_path: str = "/api/sessions/{session_id}/messages"
    child_messages_path: str = "/api/sessions/{session_id}/children/{child_id}"

    headers: dict[str, str] = Field(default_factory=dict)
    """Extra headers sent with every request (e.g. a cookie or bearer token)."""

    read_timeout: float | None = Field(
        default=None,
        description="Seconds of stream silence tolerated before the read fails. None = wait forever.",
    )

    @field_validator("events_path", "messages_path", "child_messages_path")
    @classmethod
    def validate_session_placeholder(cls, value: str) -> str:
        if "{session_id}" not in value:
            raise ValueError("endpoint path templates must contain '{session_id}'")
        return value

    def url(self, path: str, **params: str) -> str:
        """Expand a path template against ``base_url``."""
        return self.base_url.rstrip("/") + path.format(**params)


class SyncConfig(BaseModel):
    """
    Top-level configuration for a :class:`~echoline.session.SessionSync`.

    All sub-configs have sensible defaults and can be overridden individually.

    Example::

        config = SyncConfig(
            endpoint=EndpointConfig(base_url="https://agents.example.com"),
            reconnect=ReconnectConfig(max_retries=5),
        )
    """

    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)
    hydration: HydrationConfig = Field(default_factory=HydrationConfig)
