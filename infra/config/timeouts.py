"""Timeout values."""

from dataclasses import dataclass


@dataclass
class Timeouts:
    RETRY_DELAY_SECONDS: float = 5.0
    RECEIVE_WAIT_MS: int = 3000
    FRONTEND_MAX_RETRY_DELAY_SECONDS: float = 30.0
