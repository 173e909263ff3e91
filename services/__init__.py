"""
Services package for business logic and external integrations.

This package contains the storage adapter, the per-user stores built on it,
the derived views, and the Cognito and Parameter Store integrations.
"""

from .cards import CardStore
from .profiles import ProfileStore
from .stages import StageConfigStore
from .storage import DynamoDBStorage, StorageAdapter, get_storage

__all__ = [
    "CardStore",
    "ProfileStore",
    "StageConfigStore",
    "DynamoDBStorage",
    "StorageAdapter",
    "get_storage",
]
