# src/object_concat/clients.py

"""
Client wrapper for an S3-compatible object store.

This class provides a narrow interface over a raw boto3 S3 client, exposing
only the operations the concatenation job needs: list, get (to memory or to a
local path), bucket-exists, make-bucket and put (from memory or from a local
path). Every botocore failure is mapped onto the job's exception taxonomy here,
so the stages above never see a raw `ClientError`.
"""

import logging
from pathlib import Path
from typing import Any, BinaryIO, Iterator, TYPE_CHECKING

import boto3
import pydantic
from boto3.exceptions import (
    RetriesExceededError,
    S3TransferFailedError,
    S3UploadFailedError,
)
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import AppConfig
from .exceptions import (
    BucketOwnershipError,
    StoreConnectionError,
    TransferError,
)
from .schemas import SourceObject

if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client as S3ClientType

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
_NOT_FOUND_CODES = {"404", "NoSuchBucket", "NotFound"}


def _error_details(e: ClientError) -> tuple[str, str]:
    error = e.response.get("Error", {})
    return str(error.get("Code", "Unknown")), str(error.get("Message", ""))


def create_client(config: AppConfig) -> "StoreClient":
    """
    Builds a boto3 S3 client against the configured endpoint with static
    credentials and path-style addressing, as S3-compatible stores expect.
    """
    try:
        boto_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            region_name=config.region,
            config=BotoConfig(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
            ),
        )
    except (BotoCoreError, ValueError) as e:
        raise StoreConnectionError(config.endpoint_url, str(e)) from e

    logger.debug(
        "Store client created",
        extra={"endpoint": config.endpoint_url, "region": config.region},
    )
    return StoreClient(boto_client, region=config.region)


class StoreClient:
    """
    A wrapper for S3 client operations used by the concatenation pipeline.
    """

    def __init__(self, s3_client: "S3ClientType", region: str | None = None):
        """
        Initializes the StoreClient.

        Args:
            s3_client: A typed boto3 S3 client.
            region: Region used as the location constraint for new buckets.
        """
        self._client = s3_client
        self._region = region

    def list_objects(
        self, bucket: str, prefix: str, recursive: bool = True
    ) -> Iterator[SourceObject]:
        """
        Yields every object under *prefix* in the order the store returns
        them. Non-recursive listings stop at the next '/' delimiter.
        """
        kwargs: dict[str, Any] = {"Bucket": bucket, "Prefix": prefix}
        if not recursive:
            kwargs["Delimiter"] = "/"

        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(**kwargs):
                for entry in page.get("Contents", []):
                    yield SourceObject.model_validate(entry)
        except ClientError as e:
            error_code, error_message = _error_details(e)
            raise TransferError(
                f"Failed to list objects: {error_message}",
                error_code="LIST_FAILED",
                context={
                    "bucket": bucket,
                    "prefix": prefix,
                    "aws_error_code": error_code,
                    "aws_error_message": error_message,
                },
            ) from e
        except BotoCoreError as e:
            raise TransferError(
                f"Failed to list objects: {e}",
                error_code="LIST_FAILED",
                context={"bucket": bucket, "prefix": prefix},
            ) from e
        except pydantic.ValidationError as e:
            raise TransferError(
                "Store returned a malformed listing entry",
                error_code="LIST_FAILED",
                context={"bucket": bucket, "prefix": prefix, "errors": str(e)},
            ) from e

    def get_object(self, bucket: str, key: str) -> bytes:
        """Reads an object's whole body into memory."""
        try:
            response = self._client.get_object(Bucket=bucket, Key=key)
            body: BinaryIO = response["Body"]
            try:
                return b"".join(iter(lambda: body.read(READ_CHUNK_SIZE), b""))
            finally:
                body.close()
        except ClientError as e:
            error_code, error_message = _error_details(e)
            raise TransferError(
                f"Failed to fetch object: {error_message}",
                error_code="FETCH_FAILED",
                context={
                    "bucket": bucket,
                    "key": key,
                    "aws_error_code": error_code,
                    "aws_error_message": error_message,
                },
            ) from e
        except BotoCoreError as e:
            raise TransferError(
                f"Failed to fetch object: {e}",
                error_code="FETCH_FAILED",
                context={"bucket": bucket, "key": key},
            ) from e

    def fget_object(self, bucket: str, key: str, path: Path) -> None:
        """Downloads an object straight to a local file."""
        try:
            self._client.download_file(Bucket=bucket, Key=key, Filename=str(path))
        except ClientError as e:
            error_code, error_message = _error_details(e)
            raise TransferError(
                f"Failed to download object: {error_message}",
                error_code="FETCH_FAILED",
                context={
                    "bucket": bucket,
                    "key": key,
                    "path": str(path),
                    "aws_error_code": error_code,
                    "aws_error_message": error_message,
                },
            ) from e
        except (BotoCoreError, RetriesExceededError, S3TransferFailedError) as e:
            raise TransferError(
                f"Failed to download object: {e}",
                error_code="FETCH_FAILED",
                context={"bucket": bucket, "key": key, "path": str(path)},
            ) from e
        except OSError as e:
            raise TransferError(
                f"Failed to write downloaded object: {e.strerror or e}",
                error_code="FETCH_FAILED",
                context={
                    "bucket": bucket,
                    "key": key,
                    "path": str(path),
                    "errno": e.errno,
                },
            ) from e

    def bucket_exists(self, bucket: str) -> bool:
        try:
            self._client.head_bucket(Bucket=bucket)
            return True
        except ClientError as e:
            error_code, error_message = _error_details(e)
            if error_code in _NOT_FOUND_CODES:
                return False
            raise TransferError(
                f"Failed to check bucket: {error_message}",
                error_code="BUCKET_CHECK_FAILED",
                context={
                    "bucket": bucket,
                    "aws_error_code": error_code,
                    "aws_error_message": error_message,
                },
            ) from e
        except BotoCoreError as e:
            raise TransferError(
                f"Failed to check bucket: {e}",
                error_code="BUCKET_CHECK_FAILED",
                context={"bucket": bucket},
            ) from e

    def make_bucket(self, bucket: str) -> None:
        """
        Creates *bucket*. Raises BucketOwnershipError when the name is taken by
        another owner; any other failure surfaces as a TransferError carrying
        the store's error code so the caller can decide whether to tolerate it.
        """
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if self._region and self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {
                "LocationConstraint": self._region
            }
        try:
            self._client.create_bucket(**kwargs)
        except ClientError as e:
            error_code, error_message = _error_details(e)
            context = {
                "bucket": bucket,
                "aws_error_code": error_code,
                "aws_error_message": error_message,
            }
            if error_code == "BucketAlreadyExists":
                raise BucketOwnershipError(bucket, context=context) from e
            raise TransferError(
                f"Failed to create bucket: {error_message}",
                error_code=error_code,
                context=context,
            ) from e
        except BotoCoreError as e:
            raise TransferError(
                f"Failed to create bucket: {e}",
                error_code="MAKE_BUCKET_FAILED",
                context={"bucket": bucket},
            ) from e

    def put_object(
        self,
        bucket: str,
        key: str,
        body: BinaryIO,
        size: int,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Uploads an in-memory stream of a known length with a single PUT."""
        logger.info(
            "Uploading object",
            extra={"bucket": bucket, "key": key, "size": size},
        )
        try:
            self._client.put_object(
                Bucket=bucket,
                Key=key,
                Body=body,
                ContentLength=size,
                ContentType=content_type,
                Metadata=metadata or {},
            )
        except ClientError as e:
            error_code, error_message = _error_details(e)
            raise TransferError(
                f"Failed to upload object: {error_message}",
                error_code="UPLOAD_FAILED",
                context={
                    "bucket": bucket,
                    "key": key,
                    "aws_error_code": error_code,
                    "aws_error_message": error_message,
                },
            ) from e
        except BotoCoreError as e:
            raise TransferError(
                f"Failed to upload object: {e}",
                error_code="UPLOAD_FAILED",
                context={"bucket": bucket, "key": key},
            ) from e

    def fput_object(
        self,
        bucket: str,
        key: str,
        path: Path,
        content_type: str,
        metadata: dict[str, str] | None = None,
    ) -> None:
        """Uploads a local file via boto3's managed transfer."""
        extra_args: dict[str, Any] = {"ContentType": content_type}
        if metadata:
            extra_args["Metadata"] = metadata
        logger.info(
            "Uploading file",
            extra={"bucket": bucket, "key": key, "path": str(path)},
        )
        try:
            self._client.upload_file(
                Filename=str(path), Bucket=bucket, Key=key, ExtraArgs=extra_args
            )
        except S3UploadFailedError as e:
            raise TransferError(
                f"Failed to upload file: {e}",
                error_code="UPLOAD_FAILED",
                context={"bucket": bucket, "key": key, "path": str(path)},
            ) from e
        except ClientError as e:
            error_code, error_message = _error_details(e)
            raise TransferError(
                f"Failed to upload file: {error_message}",
                error_code="UPLOAD_FAILED",
                context={
                    "bucket": bucket,
                    "key": key,
                    "path": str(path),
                    "aws_error_code": error_code,
                    "aws_error_message": error_message,
                },
            ) from e
        except BotoCoreError as e:
            raise TransferError(
                f"Failed to upload file: {e}",
                error_code="UPLOAD_FAILED",
                context={"bucket": bucket, "key": key, "path": str(path)},
            ) from e
