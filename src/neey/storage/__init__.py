"""Local key-value persistence for neey.

Backs the conversation, the language preference and stored credentials.
"""

from .base import KeyValueStore
from .factory import create_key_value_store
from .in_memory import InMemoryKeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "create_key_value_store",
]
