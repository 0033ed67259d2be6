import asyncio
from enum import Enum
from functools import wraps
from typing import Coroutine, Any, Optional

import aiohttp
from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

# --- Error and severity classes ---

class ErrorSeverity(str, Enum):
    """How bad an error is for the running session."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    FATAL = "fatal"

class InterviewError(Exception):
    """Base error for the interview client."""
    def __init__(self, message, severity=ErrorSeverity.MEDIUM, recoverable=False, recovery_suggestion=""):
        super().__init__(message)
        self.severity = severity
        self.recoverable = recoverable
        self.recovery_suggestion = recovery_suggestion
    
    def __str__(self):
        return f"[{self.severity.value.upper()}] {super().__str__()}"


class AuthenticationRejectedError(InterviewError):
    """Credentials did not match any known identity."""
    def __init__(self, message="Invalid credentials"):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            recoverable=True,
            recovery_suggestion="Check your email and password and try again",
        )


class CaptureUnavailableError(InterviewError):
    """Camera or microphone could not be opened."""
    def __init__(self, message="Camera or microphone unavailable"):
        super().__init__(
            message,
            severity=ErrorSeverity.FATAL,
            recoverable=False,
            recovery_suggestion="Allow camera and microphone access and make sure a device is connected",
        )


class UploadFailedError(InterviewError):
    """A recorded take could not be stored or registered."""
    def __init__(self, message):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            recoverable=True,
            recovery_suggestion="Your recording was kept, submit it again",
        )


class AttemptLimitExceededError(InterviewError):
    """Re-record requested after the per-question cap was used."""
    def __init__(self, message="Maximum attempts reached"):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            recoverable=True,
            recovery_suggestion="Please submit your current recording",
        )


class InvalidTransitionError(InterviewError):
    """An input arrived that the current phase does not accept."""
    def __init__(self, message):
        super().__init__(message, severity=ErrorSeverity.HIGH, recoverable=False)


class AccessDeniedError(InterviewError):
    """Navigation blocked by a route guard; `redirect_to` is where to go instead."""
    def __init__(self, message, redirect_to):
        super().__init__(message, severity=ErrorSeverity.LOW, recoverable=True)
        self.redirect_to = redirect_to


class BackendError(InterviewError):
    """The backend service answered with an error."""
    def __init__(self, message, status: Optional[int] = None):
        super().__init__(message, severity=ErrorSeverity.MEDIUM, recoverable=True)
        self.status = status


# --- Decorators ---

def api_retry_handler(attempts: int = 3, min_wait: float = 2, max_wait: float = 10):
    """
    Retry decorator for backend read calls.
    Only transport failures are retried; backend error answers are raised at once.
    """
    def decorator(func: Coroutine) -> Coroutine:
        @wraps(func)
        @retry(
            retry=retry_if_exception_type((aiohttp.ClientError, asyncio.TimeoutError)),
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            reraise=True  # after the last attempt the original error propagates
        )
        async def wrapper(*args, **kwargs) -> Any:
            try:
                return await func(*args, **kwargs)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.warning(f"Retrying backend call: {func.__name__}, error: {e!r}")
                raise
        return wrapper
    return decorator

def timeout_handler(seconds: float, message: str, error_cls=InterviewError):
    """Force a coroutine to finish within `seconds`."""
    def decorator(func: Coroutine) -> Coroutine:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=seconds)
            except asyncio.TimeoutError:
                raise error_cls(f"{message} ({seconds}s timeout)")
        return wrapper
    return decorator
