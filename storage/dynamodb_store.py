"""DynamoDB-backed key-value store for discovery state."""
import json
import logging
import time
from typing import Any, Protocol

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Persistent store of JSON-serializable values."""

    def get(self, key: str, default: Any = None) -> Any:
        ...

    def put(self, key: str, value: Any) -> None:
        ...


class DynamoDBStore:
    """
    Key-value store over a DynamoDB table.

    Each key is one item: {'store_key': key, 'payload': <JSON text>,
    'last_updated': <epoch seconds>}. Values are stored as JSON text so floats
    survive without Decimal conversion.
    """

    KEY_ATTRIBUTE = 'store_key'

    def __init__(self, table_name: str, region_name: str = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: Optional AWS region override
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBStore for table: {table_name}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Read a value.

        Args:
            key: Store key
            default: Returned when the key is missing or unreadable

        Returns:
            Decoded value or default

        Raises:
            ClientError: If DynamoDB rejects the request
        """
        try:
            response = self.table.get_item(Key={self.KEY_ATTRIBUTE: key})
        except ClientError as e:
            logger.error(f"Error reading key '{key}' from DynamoDB: {e}")
            raise

        item = response.get('Item')
        if not item:
            return default

        try:
            return json.loads(item['payload'])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Discarding unreadable value for key '{key}': {e}")
            return default

    def put(self, key: str, value: Any) -> None:
        """
        Write a value, replacing any previous one.

        Raises:
            ClientError: If DynamoDB rejects the request
        """
        item = {
            self.KEY_ATTRIBUTE: key,
            'payload': json.dumps(value),
            'last_updated': int(time.time())
        }
        try:
            self.table.put_item(Item=item)
        except ClientError as e:
            logger.error(f"Error writing key '{key}' to DynamoDB: {e}")
            raise
