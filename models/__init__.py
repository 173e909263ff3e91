"""
Models package for data structures and database entities.

This package contains Pydantic models for request validation and the
DynamoDB item shapes of the cards and profiles tables.
"""

from .card import CardCreate, CardFilter, CardUpdate
from .dynamodb import CardItem, DynamoDBItem, ProfileItem, StageConfigItem
from .stage import StageRecord

__all__ = [
    "CardCreate",
    "CardUpdate",
    "CardFilter",
    "CardItem",
    "DynamoDBItem",
    "ProfileItem",
    "StageConfigItem",
    "StageRecord",
]
