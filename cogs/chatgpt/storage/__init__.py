"""Storage layer for persisted counters and credentials."""

from .kv_storage import KeyValueStore

__all__ = ["KeyValueStore"]
