"""
File Upload Repository

DynamoDB operations for upload records and the catalog records
(products and product images) that uploads are attached to.
"""

import os
import logging
from datetime import datetime
from typing import List, Optional, Sequence

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from .models import (
    ALLOWED_TRANSITIONS,
    Product,
    ProductImage,
    UploadRecord,
    UploadStatus,
    isoformat_utc,
    utcnow,
)

logger = logging.getLogger(__name__)


class FileUploadRepository:
    """
    Repository for upload and catalog records in DynamoDB.

    Key Patterns (uploads table):
    - Upload: PK=UPLOAD#{uploadId}, SK=METADATA

    GSIs (uploads table):
    - KeyIndex: GSI1PK=KEY#{key}
    - StatusIndex: GSI2PK=STATUS#{status}, GSI2SK={createdAt}

    Key Patterns (catalog table):
    - Product: PK=PRODUCT#{productId}, SK=METADATA
    - Image: PK=PRODUCT#{productId}, SK=IMAGE#{imageId}
    """

    def __init__(
        self,
        table_name: Optional[str] = None,
        catalog_table_name: Optional[str] = None,
        region: Optional[str] = None,
        dynamodb=None,
    ):
        """Initialize repository with DynamoDB tables."""
        self.table_name = table_name or os.environ.get(
            "DYNAMODB_FILE_UPLOADS_TABLE_NAME", "file-uploads"
        )
        self.catalog_table_name = catalog_table_name or os.environ.get(
            "DYNAMODB_CATALOG_TABLE_NAME", "catalog"
        )
        self.region = region or os.environ.get("AWS_REGION", os.environ.get("AWS_DEFAULT_REGION"))
        self._dynamodb = dynamodb or boto3.resource("dynamodb", region_name=self.region)
        self._table = self._dynamodb.Table(self.table_name)
        self._catalog_table = self._dynamodb.Table(self.catalog_table_name)

    # =========================================================================
    # Upload Records
    # =========================================================================

    async def create_upload(self, record: UploadRecord) -> UploadRecord:
        """
        Create a new upload record.

        Raises:
            ValueError: If a record with the same upload ID already exists
        """
        try:
            self._table.put_item(
                Item=record.to_dynamo_item(),
                ConditionExpression="attribute_not_exists(PK)",
            )
            logger.info(f"Created upload record: {record.upload_id}")
            return record

        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                raise ValueError(f"Upload '{record.upload_id}' already exists")
            logger.error(f"Error creating upload record: {e}")
            raise

    async def get_upload(self, upload_id: str) -> Optional[UploadRecord]:
        """
        Get an upload record by ID.

        Returns:
            UploadRecord if found, None otherwise
        """
        try:
            response = self._table.get_item(
                Key={"PK": f"UPLOAD#{upload_id}", "SK": "METADATA"}
            )
            item = response.get("Item")
            if not item:
                return None
            return UploadRecord.from_dynamo_item(item)
        except ClientError as e:
            logger.error(f"Error getting upload {upload_id}: {e}")
            raise

    async def update_upload_status(
        self,
        upload_id: str,
        status: UploadStatus,
        file_size: Optional[int] = None,
        allowed_from: Optional[Sequence[UploadStatus]] = None,
    ) -> Optional[UploadRecord]:
        """
        Move an upload to a new status.

        The write is conditional on the current status being one the new status
        may be entered from (see ALLOWED_TRANSITIONS), or one of ``allowed_from``
        when given.

        Args:
            upload_id: The upload identifier
            status: New status
            file_size: Optional authoritative size to store with the update
            allowed_from: Narrower set of source statuses for this write

        Returns:
            Updated UploadRecord, or None if the record is missing or the
            transition is not allowed
        """
        if allowed_from is None:
            allowed_from = ALLOWED_TRANSITIONS[status]
        update_expression = "SET #status = :status, GSI2PK = :gsi2pk, updatedAt = :now"
        values = {
            ":status": status.value,
            ":gsi2pk": f"STATUS#{status.value}",
            ":now": isoformat_utc(utcnow()),
        }
        if file_size is not None:
            update_expression += ", fileSize = :size"
            values[":size"] = file_size

        placeholders = []
        for i, source in enumerate(allowed_from):
            values[f":from{i}"] = source.value
            placeholders.append(f":from{i}")

        try:
            response = self._table.update_item(
                Key={"PK": f"UPLOAD#{upload_id}", "SK": "METADATA"},
                UpdateExpression=update_expression,
                ExpressionAttributeNames={"#status": "status"},
                ExpressionAttributeValues=values,
                ConditionExpression=f"attribute_exists(PK) AND #status IN ({', '.join(placeholders)})",
                ReturnValues="ALL_NEW",
            )
            return UploadRecord.from_dynamo_item(response["Attributes"])
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                logger.info(f"Upload {upload_id} not moved to {status.value}: missing or not allowed")
                return None
            logger.error(f"Error updating upload status {upload_id}: {e}")
            raise

    async def list_uploads_by_key(self, key: str) -> List[UploadRecord]:
        """List upload records for a storage key using the KeyIndex GSI."""
        try:
            response = self._table.query(
                IndexName="KeyIndex",
                KeyConditionExpression=Key("GSI1PK").eq(f"KEY#{key}"),
            )
            return [UploadRecord.from_dynamo_item(item) for item in response.get("Items", [])]
        except ClientError as e:
            logger.error(f"Error listing uploads for key {key}: {e}")
            raise

    async def mark_key_deleted(self, key: str) -> int:
        """
        Mark every live upload record for a storage key as DELETED.

        Returns:
            Number of records updated
        """
        updated = 0
        for record in await self.list_uploads_by_key(key):
            if record.status not in ALLOWED_TRANSITIONS[UploadStatus.DELETED]:
                continue
            if await self.update_upload_status(record.upload_id, UploadStatus.DELETED):
                updated += 1
        return updated

    async def list_stale_pending(self, cutoff: datetime) -> List[UploadRecord]:
        """
        List PENDING uploads created before a cutoff using the StatusIndex GSI.

        Args:
            cutoff: Records created strictly before this time are returned
        """
        try:
            query_params = {
                "IndexName": "StatusIndex",
                "KeyConditionExpression": (
                    Key("GSI2PK").eq(f"STATUS#{UploadStatus.PENDING.value}")
                    & Key("GSI2SK").lt(isoformat_utc(cutoff))
                ),
            }
            response = self._table.query(**query_params)
            items = response.get("Items", [])

            # Handle pagination
            while "LastEvaluatedKey" in response:
                query_params["ExclusiveStartKey"] = response["LastEvaluatedKey"]
                response = self._table.query(**query_params)
                items.extend(response.get("Items", []))

            return [UploadRecord.from_dynamo_item(item) for item in items]
        except ClientError as e:
            logger.error(f"Error listing stale pending uploads: {e}")
            raise

    # =========================================================================
    # Catalog Records
    # =========================================================================

    async def get_product(self, product_id: str) -> Optional[Product]:
        """Get a product by ID."""
        try:
            response = self._catalog_table.get_item(
                Key={"PK": f"PRODUCT#{product_id}", "SK": "METADATA"}
            )
            item = response.get("Item")
            if not item:
                return None
            return Product.from_dynamo_item(item)
        except ClientError as e:
            logger.error(f"Error getting product {product_id}: {e}")
            raise

    async def list_product_images(self, product_id: str, key: str) -> List[ProductImage]:
        """List a product's images whose URL references a storage key."""
        try:
            query_params = {
                "KeyConditionExpression": (
                    Key("PK").eq(f"PRODUCT#{product_id}") & Key("SK").begins_with("IMAGE#")
                ),
                "FilterExpression": Attr("url").contains(key),
            }
            response = self._catalog_table.query(**query_params)
            items = response.get("Items", [])

            # Filtered pages can be empty before the last one
            while "LastEvaluatedKey" in response:
                query_params["ExclusiveStartKey"] = response["LastEvaluatedKey"]
                response = self._catalog_table.query(**query_params)
                items.extend(response.get("Items", []))

            return [ProductImage.from_dynamo_item(item) for item in items]
        except ClientError as e:
            logger.error(f"Error listing images for product {product_id}: {e}")
            raise

    async def find_product_image(
        self, product_id: str, user_id: str, key: str
    ) -> Optional[ProductImage]:
        """
        Find an image referencing a key on a product owned by a user.

        Returns:
            ProductImage if the product belongs to the user and has an image
            referencing the key, None otherwise
        """
        product = await self.get_product(product_id)
        if product is None or product.user_id != user_id:
            return None

        images = await self.list_product_images(product_id, key)
        return images[0] if images else None

    async def delete_product_images(self, product_id: str, key: str) -> int:
        """
        Delete a product's images that reference a storage key.

        Returns:
            Number of image records deleted
        """
        images = await self.list_product_images(product_id, key)
        try:
            with self._catalog_table.batch_writer() as batch:
                for image in images:
                    batch.delete_item(
                        Key={"PK": f"PRODUCT#{product_id}", "SK": f"IMAGE#{image.image_id}"}
                    )
        except ClientError as e:
            logger.error(f"Error deleting images for product {product_id}: {e}")
            raise

        if images:
            logger.info(f"Deleted {len(images)} image(s) of product {product_id} for key {key}")
        return len(images)


# Global repository instance
_repository_instance: Optional[FileUploadRepository] = None


def get_file_upload_repository() -> FileUploadRepository:
    """Get or create the global FileUploadRepository instance."""
    global _repository_instance
    if _repository_instance is None:
        _repository_instance = FileUploadRepository()
    return _repository_instance
