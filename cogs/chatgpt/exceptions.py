"""
Custom Exceptions for ChatGPT Module
====================================

Every failure the cog converts into user-facing text derives from
ChatException, so the message handler can catch one type.
"""

from typing import Optional


class ChatException(Exception):
    """Base exception for the ChatGPT module."""

    def __init__(self, message: str = "An error occurred in the chat system"):
        self.message = message
        super().__init__(self.message)


class ConfigurationException(ChatException):
    """Raised when required configuration is missing or invalid."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class StorageException(ChatException):
    """Raised when the key-value store cannot be read or written."""


class ProviderException(ChatException):
    """Raised when the upstream AI service fails."""

    def __init__(
        self,
        provider_name: str,
        message: str,
        original_error: Optional[Exception] = None
    ):
        self.provider_name = provider_name
        self.original_error = original_error
        super().__init__(f"[{provider_name}] {message}")


class TimeoutException(ProviderException):
    """Raised when the upstream call does not settle in time."""

    def __init__(self, provider_name: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            provider_name,
            f"Request timed out after {timeout:.1f}s"
        )


class AuthenticationException(ProviderException):
    """Raised when the session token is rejected."""

    def __init__(self, provider_name: str, detail: str = "Session token is invalid or expired"):
        super().__init__(provider_name, detail)
