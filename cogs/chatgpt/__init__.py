"""
ChatGPT Module - Mention-triggered ChatGPT relay for Discord
===========================================================

This module provides:
- A listener that forwards bot mentions to ChatGPT
- Concurrency cap and cooldown between upstream requests
- Session token refresh with persistence
- Denylist and length validation of answers
"""

from .cog import MentionResponder, setup
from .providers import ChatGPTClient
from .rate_limiter import RateLimiter
from .safety import SafetyFilter
from .storage import KeyValueStore
from .config import ChatGPTConfig
from .exceptions import (
    ChatException,
    ProviderException,
    TimeoutException,
    AuthenticationException,
    ConfigurationException,
    StorageException
)

__all__ = [
    'MentionResponder',
    'setup',
    'ChatGPTClient',
    'RateLimiter',
    'SafetyFilter',
    'KeyValueStore',
    'ChatGPTConfig',
    'ChatException',
    'ProviderException',
    'TimeoutException',
    'AuthenticationException',
    'ConfigurationException',
    'StorageException'
]

__version__ = '1.0.0'
