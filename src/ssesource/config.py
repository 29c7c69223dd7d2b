"""Event source configuration via environment variables (SSESOURCE_ prefix) or defaults."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class EventSourceConfig(BaseSettings):
    default_retry_ms: int = 3000
    max_buffer_bytes: int = 50_000_000  # 50 MB of unterminated frame
    max_redirects: int = 20
    connect_timeout_seconds: float = 10.0
    log_dir: str = "logs"
    log_level: str = "INFO"
    log_to_file: bool = False

    model_config = {"env_prefix": "SSESOURCE_"}
