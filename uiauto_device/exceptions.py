# uiauto_device/exceptions.py
"""
@file exceptions.py
@brief Exception classes for lifecycle synchronization.
"""

from __future__ import annotations
from typing import Optional


class UIAutoError(Exception):
    """Base exception for the framework."""
    pass


class ConfigError(UIAutoError):
    """Raised when a manifest or timing configuration is invalid."""
    pass


class TimeoutError(UIAutoError):
    """
    Raised when a bounded wait expires.

    Attributes:
        original_exception: The last exception raised before the timeout, if any
        description: Human-readable description of what was being waited for
        timeout: The timeout value in seconds
        attempt_count: Number of attempts made (if applicable)
        elapsed_time: Actual elapsed time in seconds (if applicable)
        stage: Lifecycle stage or phase being waited on (if applicable)
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.original_exception: Optional[BaseException] = None
        self.description: Optional[str] = None
        self.timeout: Optional[float] = None
        self.attempt_count: Optional[int] = None
        self.elapsed_time: Optional[float] = None
        self.stage: Optional[str] = None

    def __str__(self) -> str:
        base_msg = super().__str__()

        details = []
        if self.original_exception is not None:
            details.append(f"Original exception: {type(self.original_exception).__name__}")
        if self.attempt_count is not None:
            details.append(f"Attempts: {self.attempt_count}")
        if self.elapsed_time is not None:
            details.append(f"Elapsed: {self.elapsed_time:.2f}s")
        if self.stage is not None:
            details.append(f"Stage: {self.stage}")

        if details:
            return f"{base_msg} [{', '.join(details)}]"
        return base_msg


class HelperScreenError(UIAutoError):
    """Raised when the helper screen cannot be brought to a known state."""
    pass


class HelperScreenTimeoutError(TimeoutError, HelperScreenError):
    """Raised when the helper screen never reports that it was resumed."""
    pass


class WaitInterruptedError(UIAutoError):
    """Raised by a latch whose wait was cancelled from another thread."""

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason
        msg = "Wait was interrupted"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class MetadataUnavailableError(UIAutoError):
    """
    Raised when static metadata for a live screen identity cannot be resolved.

    A live screen should always resolve, so this is not retried.
    """

    def __init__(self, identity: str, cause: Optional[BaseException] = None):
        self.identity = identity
        self.cause = cause
        super().__init__(self.__str__())

    def __str__(self) -> str:
        base = f"MetadataUnavailableError: screen='{self.identity}'"
        if self.cause:
            base += f" cause='{type(self.cause).__name__}: {self.cause}'"
        return base
