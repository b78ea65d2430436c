"""Exception hierarchy for site2md."""

from __future__ import annotations


class Site2MdError(Exception):
    """Base class for all site2md errors."""


class NetworkError(Site2MdError):
    """
    Raised when a resource cannot be fetched.

    Covers timeouts, DNS and connection failures, non-success status codes
    and oversized responses.

    Attributes:
        url: The URL that failed
        status_code: HTTP status code when the server answered
    """

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(Site2MdError):
    """Raised when an API description cannot be parsed by any strategy."""


class ValidationError(Site2MdError):
    """
    Raised when an API description fails validation in strict mode.

    Attributes:
        errors: Individual validation messages
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class ContentLengthError(Site2MdError):
    """
    Raised when converted content is shorter than the configured minimum.

    Attributes:
        length: Length of the converted Markdown
        minimum: Configured minimum length
    """

    def __init__(self, length: int, minimum: int) -> None:
        super().__init__(f"Content too short: {length} characters (minimum {minimum})")
        self.length = length
        self.minimum = minimum


class BrowserInitError(Site2MdError):
    """Raised when the headless browser cannot be started."""


class RetryExhaustedError(Site2MdError):
    """
    Raised when every retry attempt has failed.

    The message repeats the last error's message. The original exception is
    available as ``last_error`` and as ``__cause__``.

    Attributes:
        attempts: Number of attempts performed
        last_error: The exception raised by the final attempt
    """

    def __init__(self, message: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error
