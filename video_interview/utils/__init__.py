from .logger import setup_logging
from .error_handlers import (
    ErrorSeverity,
    InterviewError,
    AuthenticationRejectedError,
    CaptureUnavailableError,
    UploadFailedError,
    AttemptLimitExceededError,
    InvalidTransitionError,
    AccessDeniedError,
    BackendError,
    api_retry_handler,
    timeout_handler,
)
from .notifications import Notification, NotificationStatus, Notifier, LogNotifier

__all__ = [
    # logger.py
    'setup_logging',

    # error_handlers.py
    'ErrorSeverity',
    'InterviewError',
    'AuthenticationRejectedError',
    'CaptureUnavailableError',
    'UploadFailedError',
    'AttemptLimitExceededError',
    'InvalidTransitionError',
    'AccessDeniedError',
    'BackendError',
    'api_retry_handler',
    'timeout_handler',

    # notifications.py
    'Notification',
    'NotificationStatus',
    'Notifier',
    'LogNotifier',
]
