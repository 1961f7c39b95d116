"""
Defines the application's error taxonomy.

Every fallible operation raises an ``AppError`` (or one of its category
subclasses) carrying a stable code, a technical message for the logs, a
user-facing message for the screens, and a retryability flag fixed at
construction.
"""

from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Closed set of error codes, grouped by category prefix."""

    # Authentication
    SESSION_EXPIRED = "AUTH_001"
    INVALID_CREDENTIALS = "AUTH_002"
    NO_SUBSCRIPTION = "AUTH_003"
    INVALID_COOKIES = "AUTH_004"

    # Network and API
    NETWORK = "NET_001"
    API = "NET_002"
    RATE_LIMIT = "NET_003"
    TIMEOUT = "NET_004"

    # Validation
    VALIDATION = "VAL_001"
    INVALID_INPUT = "VAL_002"

    # Storage
    DATABASE = "STOR_001"
    FILE = "STOR_002"

    # EPUB
    EPUB_GENERATION = "EPUB_001"
    EPUB_INVALID_FORMAT = "EPUB_002"

    # Configuration
    CONFIG = "CFG_001"
    CONFIG_NOT_FOUND = "CFG_002"
    CONFIG_INVALID_YAML = "CFG_003"

    # Download
    DOWNLOAD = "DL_001"
    DOWNLOAD_CANCELED = "DL_002"

    @property
    def category(self) -> str:
        return self.value.split("_", 1)[0]

    @property
    def default_retryable(self) -> bool:
        return self.category == "NET"


class AppError(Exception):
    """Base exception for all application-specific errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        user_message: str = "",
        retryable: Optional[bool] = None,
        cause: Optional[BaseException] = None,
    ):
        self.code = ErrorCode(code)
        self.message = message
        self._user_message = user_message
        self.retryable = (
            self.code.default_retryable if retryable is None else retryable
        )
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def cause(self) -> Optional[BaseException]:
        return self.__cause__

    @property
    def user_message(self) -> str:
        """The message to display, falling back to the technical one."""
        return self._user_message or self.message

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"[{self.code.value}] {self.message}: {self.__cause__}"
        return f"[{self.code.value}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code.value!r}, "
            f"message={self.message!r}, retryable={self.retryable!r})"
        )


class AuthenticationError(AppError):
    """Raised when the session is expired, invalid, or lacks a subscription."""


class NetworkError(AppError):
    """Raised for transport failures, unexpected API responses, and rate limits."""


class AppValidationError(AppError):
    """Raised when input or a decoded payload fails validation."""


class StorageError(AppError):
    """Raised for database and file persistence failures."""


class EpubError(AppError):
    """Raised when EPUB generation fails."""


class ConfigurationError(AppError):
    """Raised for issues related to configuration loading or validation."""


class DownloadError(AppError):
    """Raised when a download fails or is cancelled."""


_CATEGORY_CLASSES = {
    "AUTH": AuthenticationError,
    "NET": NetworkError,
    "VAL": AppValidationError,
    "STOR": StorageError,
    "EPUB": EpubError,
    "CFG": ConfigurationError,
    "DL": DownloadError,
}


def make(
    code: ErrorCode,
    message: str,
    user_message: str = "",
    retryable: Optional[bool] = None,
) -> AppError:
    """Creates an error of the category class matching ``code``."""
    code = ErrorCode(code)
    error_cls = _CATEGORY_CLASSES.get(code.category, AppError)
    return error_cls(code, message, user_message, retryable)


def wrap(
    cause: Optional[BaseException],
    code: ErrorCode,
    message: str,
    user_message: str = "",
    retryable: Optional[bool] = None,
) -> Optional[AppError]:
    """
    Wraps ``cause`` in a classified error.

    Returns None when there is nothing to wrap, so callers can pass through
    an optional error without checking it first.
    """
    if cause is None:
        return None
    err = make(code, message, user_message, retryable)
    err.__cause__ = cause
    return err


def _find_app_error(err: Optional[BaseException]) -> Optional[AppError]:
    """Walks the exception chain looking for the first AppError."""
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, AppError):
            return err
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return None


def is_retryable(err: Optional[BaseException]) -> bool:
    app_err = _find_app_error(err)
    return app_err.retryable if app_err else False


def user_message(err: Optional[BaseException]) -> str:
    if err is None:
        return ""
    app_err = _find_app_error(err)
    return app_err.user_message if app_err else str(err)


def error_code(err: Optional[BaseException]) -> str:
    app_err = _find_app_error(err)
    return app_err.code.value if app_err else ""


# Predefined errors. Each call returns a fresh instance so tracebacks and
# causes never leak between raises.


def session_expired() -> AuthenticationError:
    return AuthenticationError(
        ErrorCode.SESSION_EXPIRED,
        "Session has expired or is invalid",
        "Your session has expired. Please enter your cookies again.",
        retryable=False,
    )


def invalid_credentials() -> AuthenticationError:
    return AuthenticationError(
        ErrorCode.INVALID_CREDENTIALS,
        "Invalid authentication credentials",
        "The provided credentials are not valid.",
        retryable=False,
    )


def no_subscription() -> AuthenticationError:
    return AuthenticationError(
        ErrorCode.NO_SUBSCRIPTION,
        "Active O'Reilly subscription required",
        "You need an active O'Reilly subscription to use this feature.",
        retryable=False,
    )


def invalid_cookies(
    message: str = "Cookies format is invalid or incomplete",
) -> AuthenticationError:
    return AuthenticationError(
        ErrorCode.INVALID_COOKIES,
        message,
        "The cookies format is invalid. Verify that they are valid cookies "
        "from learning.oreilly.com",
        retryable=False,
    )


def network_error(message: str = "Network connection error") -> NetworkError:
    return NetworkError(
        ErrorCode.NETWORK,
        message,
        "Connection error. Check your internet connection and try again.",
        retryable=True,
    )


def rate_limited(message: str = "Rate limit exceeded") -> NetworkError:
    return NetworkError(
        ErrorCode.RATE_LIMIT,
        message,
        "Too many requests have been made. Wait a moment and try again.",
        retryable=True,
    )


def request_timeout(message: str = "Request timeout") -> NetworkError:
    return NetworkError(
        ErrorCode.TIMEOUT,
        message,
        "The operation took too long. Try again.",
        retryable=True,
    )


def config_not_found(path: str = "") -> ConfigurationError:
    message = "Configuration file not found"
    if path:
        message = f"{message}: {path}"
    return ConfigurationError(
        ErrorCode.CONFIG_NOT_FOUND,
        message,
        "Configuration file not found. A new one will be created.",
        retryable=False,
    )
