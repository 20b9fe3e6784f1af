"""DynamoDB client wrapper for single-table design."""

from datetime import UTC, datetime
from typing import Any

import boto3
from aws_lambda_powertools import Logger
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

logger = Logger(child=True)

# Calls fail fast instead of hanging the persistence worker
BOTO_CONFIG = BotoConfig(
    connect_timeout=2,
    read_timeout=2,
    retries={"max_attempts": 2, "mode": "standard"},
)


class DynamoDBClient:
    """DynamoDB client wrapper with consistent error handling and logging.

    Implements single-table design patterns with PK/SK composite keys.
    """

    def __init__(self, table_name: str) -> None:
        """Initialize with table name.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource("dynamodb", config=BOTO_CONFIG)
        self.table = self.dynamodb.Table(table_name)

    def put_item(self, pk: str, sk: str, data: dict[str, Any]) -> dict[str, Any]:
        """Put an item into the table, replacing any existing item.

        Args:
            pk: Partition key value
            sk: Sort key value
            data: Additional attributes to store

        Returns:
            The complete item that was stored
        """
        item = {
            "PK": pk,
            "SK": sk,
            **data,
            "updated_at": datetime.now(UTC).isoformat(),
        }

        try:
            self.table.put_item(Item=item)
            logger.debug("Item stored", extra={"pk": pk, "sk": sk})
            return item
        except ClientError as e:
            logger.error("Failed to put item", extra={"error": str(e), "pk": pk, "sk": sk})
            raise

    def get_item(self, pk: str, sk: str) -> dict[str, Any] | None:
        """Get a single item by PK and SK.

        Args:
            pk: Partition key value
            sk: Sort key value

        Returns:
            Item dict or None if not found
        """
        try:
            response = self.table.get_item(Key={"PK": pk, "SK": sk}, ConsistentRead=True)
            item = response.get("Item")
            if item:
                logger.debug("Item found", extra={"pk": pk, "sk": sk})
            return item
        except ClientError as e:
            logger.error("Failed to get item", extra={"error": str(e), "pk": pk, "sk": sk})
            raise

    def delete_item(self, pk: str, sk: str) -> bool:
        """Delete an item by PK and SK.

        Args:
            pk: Partition key value
            sk: Sort key value

        Returns:
            True if deleted, False if not found
        """
        try:
            self.table.delete_item(
                Key={"PK": pk, "SK": sk},
                ConditionExpression="attribute_exists(PK)",
            )
            logger.info("Item deleted", extra={"pk": pk, "sk": sk})
            return True
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.warning("Item not found for delete", extra={"pk": pk, "sk": sk})
                return False
            logger.error("Failed to delete", extra={"error": str(e), "pk": pk, "sk": sk})
            raise
