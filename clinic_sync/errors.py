from typing import Optional


class SyncError(Exception):
    """Base class for every error raised by clinic_sync."""


class ConfigError(SyncError):
    """Missing or invalid configuration. Never retried."""


class AuthError(SyncError):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class HttpError(SyncError):
    def __init__(self, status: int, body: str = ""):
        super().__init__(f"HTTP {status}: {body[:500]}")
        self.status = status
        self.body = body


class RateLimited(HttpError):
    """429/503 from the upstream API."""


class TransientTransportError(SyncError):
    """Network-level failure before any HTTP status was received."""


class RetriesExhausted(SyncError):
    def __init__(self, attempts: int, last_status: Optional[int] = None):
        super().__init__(
            f"Request still failing after {attempts} attempts"
            + (f" (last status {last_status})" if last_status else "")
        )
        self.attempts = attempts
        self.last_status = last_status
