from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from deckhub.constants import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_HUB_HOST,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_RECONNECT_INITIAL_BACKOFF_S,
    DEFAULT_RECONNECT_MAX_ATTEMPTS,
    DEFAULT_RECONNECT_MAX_BACKOFF_S,
    DEFAULT_RECONNECT_MULTIPLIER,
    DEFAULT_RELAY_TIMEOUT_S,
    DEFAULT_REPLAY_LOG_BYTES,
    DEFAULT_SCROLLBACK_LINES,
)


class HubConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    host: str = DEFAULT_HUB_HOST
    # Overrides `host` for API and shell traffic (UI served from one host, hub on another)
    api_host: Optional[str] = None
    secure: bool = False

    @field_validator("host", "api_host")
    @classmethod
    def validate_host(cls, v: Optional[str]) -> Optional[str]:
        """Hosts are bare `host[:port]` values, never URLs."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("host must not be empty")
        if "://" in v or "/" in v:
            raise ValueError(f"Invalid host: {v}. Expected host[:port] without scheme or path")
        return v

    @property
    def effective_host(self) -> str:
        return self.api_host or self.host


class ReconnectConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    max_attempts: int = Field(default=DEFAULT_RECONNECT_MAX_ATTEMPTS, ge=0)
    initial_backoff: float = Field(default=DEFAULT_RECONNECT_INITIAL_BACKOFF_S, gt=0)
    max_backoff: float = Field(default=DEFAULT_RECONNECT_MAX_BACKOFF_S, gt=0)
    multiplier: float = Field(default=DEFAULT_RECONNECT_MULTIPLIER, ge=1.0)

    @model_validator(mode="after")
    def validate_backoff(self) -> "ReconnectConfig":
        if self.max_backoff < self.initial_backoff:
            raise ValueError("'max_backoff' must be >= 'initial_backoff'")
        return self


class ShellConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT_S, gt=0)
    scrollback_lines: int = Field(default=DEFAULT_SCROLLBACK_LINES, ge=0)
    replay_log_bytes: int = Field(default=DEFAULT_REPLAY_LOG_BYTES, ge=0)
    reconnect: ReconnectConfig = ReconnectConfig()


class RelayConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    timeout: float = Field(default=DEFAULT_RELAY_TIMEOUT_S, gt=0)


class PollingConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    interval: float = Field(default=DEFAULT_POLL_INTERVAL_S, gt=0)


class ConsoleConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    hub: HubConfig = HubConfig()
    shell: ShellConfig = ShellConfig()
    relay: RelayConfig = RelayConfig()
    polling: PollingConfig = PollingConfig()
