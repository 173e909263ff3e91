"""
Storage adapter over partitioned DynamoDB tables.

Every operation takes the owning user id explicitly; there is no method that
reads across partitions except the degraded scan used by read-only
aggregations, which still filters on the user id.
"""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
import botocore
from boto3.dynamodb.conditions import Attr, Key
from pydantic import BaseModel

from models.dynamodb import PARTITION_KEY, SORT_KEY

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

# Shared boto3 resource, created on first use and reused across warm invocations.
_dynamodb_resource = None
_storage = None


def get_dynamodb_resource():
    """Get or create the process-wide DynamoDB resource."""
    global _dynamodb_resource
    if _dynamodb_resource is None:
        _dynamodb_resource = boto3.resource("dynamodb")
    return _dynamodb_resource


def to_dynamodb(value: Any) -> Any:
    """Convert floats to Decimal recursively; DynamoDB rejects float."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_dynamodb(v) for v in value]
    return value


def from_dynamodb(value: Any) -> Any:
    """Convert Decimals back to int/float and sets to sorted lists."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted(from_dynamodb(v) for v in value)
    return value


class QueryPage(BaseModel):
    """One page of a partition query."""

    items: List[Dict[str, Any]]
    last_evaluated: Optional[Dict[str, Any]] = None


class StorageAdapter(ABC):
    """Operations the API core performs against its tables."""

    @abstractmethod
    def point_get(
        self, table: str, user_id: str, sort_key: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Fetch one item, or None."""

    @abstractmethod
    def query(
        self,
        table: str,
        user_id: str,
        limit: Optional[int] = None,
        exclusive_start: Optional[Dict[str, Any]] = None,
    ) -> QueryPage:
        """Read one page of the user's partition."""

    @abstractmethod
    def scan_partition(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        """Degraded full-table read filtered to one user."""

    @abstractmethod
    def put(self, table: str, item: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert a full item."""

    @abstractmethod
    def update(
        self,
        table: str,
        user_id: str,
        sort_key: Optional[str],
        patch: Dict[str, Any],
        set_if_missing: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Merge attributes into an item and return the merged item."""

    @abstractmethod
    def delete(self, table: str, user_id: str, sort_key: Optional[str] = None) -> None:
        """Remove an item; missing items are not an error."""

    def query_all(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        """Read the whole partition, following continuation keys."""
        items: List[Dict[str, Any]] = []
        start = None
        while True:
            page = self.query(table, user_id, exclusive_start=start)
            items.extend(page.items)
            start = page.last_evaluated
            if not start:
                return items

    def load_partition(self, table: str, user_id: str) -> List[Dict[str, Any]]:
        """
        Read the whole partition for an aggregation.

        Falls back to a filtered scan when the query fails. Only read-only
        endpoints may use this; mutations never fall back.
        """
        try:
            return self.query_all(table, user_id)
        except botocore.exceptions.ClientError as err:
            logger.warning(
                "Partition query failed for user %s on table %s (%s); falling back to scan",
                user_id,
                table,
                err.response.get("Error", {}).get("Code"),
            )
            return self.scan_partition(table, user_id)


class DynamoDBStorage(StorageAdapter):
    """
    StorageAdapter backed by boto3 DynamoDB tables.

    Tables are keyed by `userId`, and by `cardId` when a sort key is given.
    Table handles are cached per name on the shared resource.
    """

    def __init__(self, resource=None):
        self._resource = resource
        self._tables: Dict[str, Any] = {}

    def _table(self, name: str):
        if name not in self._tables:
            resource = self._resource or get_dynamodb_resource()
            self._tables[name] = resource.Table(name)
        return self._tables[name]

    @staticmethod
    def _key(user_id: str, sort_key: Optional[str]) -> Dict[str, str]:
        key = {PARTITION_KEY: user_id}
        if sort_key is not None:
            key[SORT_KEY] = sort_key
        return key

    @staticmethod
    def _log_client_error(action: str, err, table: str, user_id: str, **context) -> None:
        logger.error(
            "Couldn't %s for user %s in table %s. Error: %s: %s",
            action,
            user_id,
            table,
            err.response["Error"]["Code"],
            err.response["Error"]["Message"],
            extra={"user_id": user_id, "table": table, **context},
        )

    def point_get(self, table, user_id, sort_key=None):
        try:
            response = self._table(table).get_item(
                Key=self._key(user_id, sort_key), ConsistentRead=True
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error("get item", err, table, user_id, sort_key=sort_key)
            raise
        item = response.get("Item")
        return from_dynamodb(item) if item else None

    def query(self, table, user_id, limit=None, exclusive_start=None):
        kwargs: Dict[str, Any] = {
            "KeyConditionExpression": Key(PARTITION_KEY).eq(user_id)
        }
        if limit:
            kwargs["Limit"] = limit
        if exclusive_start:
            kwargs["ExclusiveStartKey"] = exclusive_start
        try:
            response = self._table(table).query(**kwargs)
        except botocore.exceptions.ClientError as err:
            self._log_client_error("query partition", err, table, user_id)
            raise
        return QueryPage(
            items=[from_dynamodb(item) for item in response.get("Items", [])],
            last_evaluated=response.get("LastEvaluatedKey"),
        )

    def scan_partition(self, table, user_id):
        items: List[Dict[str, Any]] = []
        kwargs: Dict[str, Any] = {"FilterExpression": Attr(PARTITION_KEY).eq(user_id)}
        try:
            while True:
                response = self._table(table).scan(**kwargs)
                items.extend(from_dynamodb(item) for item in response.get("Items", []))
                if not response.get("LastEvaluatedKey"):
                    return items
                kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        except botocore.exceptions.ClientError as err:
            self._log_client_error("scan table", err, table, user_id)
            raise

    def put(self, table, item):
        try:
            self._table(table).put_item(Item=to_dynamodb(item))
        except botocore.exceptions.ClientError as err:
            self._log_client_error(
                "put item", err, table, item.get(PARTITION_KEY), sort_key=item.get(SORT_KEY)
            )
            raise
        return item

    def update(self, table, user_id, sort_key, patch, set_if_missing=None):
        names: Dict[str, str] = {}
        values: Dict[str, Any] = {}
        clauses: List[str] = []

        for index, (field, value) in enumerate(patch.items()):
            names[f"#f{index}"] = field
            values[f":v{index}"] = to_dynamodb(value)
            clauses.append(f"#f{index} = :v{index}")

        for index, (field, value) in enumerate((set_if_missing or {}).items()):
            names[f"#m{index}"] = field
            values[f":m{index}"] = to_dynamodb(value)
            clauses.append(f"#m{index} = if_not_exists(#m{index}, :m{index})")

        try:
            response = self._table(table).update_item(
                Key=self._key(user_id, sort_key),
                UpdateExpression="SET " + ", ".join(clauses),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except botocore.exceptions.ClientError as err:
            self._log_client_error("update item", err, table, user_id, sort_key=sort_key)
            raise
        return from_dynamodb(response.get("Attributes") or {})

    def delete(self, table, user_id, sort_key=None):
        try:
            self._table(table).delete_item(Key=self._key(user_id, sort_key))
        except botocore.exceptions.ClientError as err:
            self._log_client_error("delete item", err, table, user_id, sort_key=sort_key)
            raise


def get_storage() -> StorageAdapter:
    """Process-wide storage adapter."""
    global _storage
    if _storage is None:
        _storage = DynamoDBStorage()
    return _storage
