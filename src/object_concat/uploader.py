# src/object_concat/uploader.py

import logging

from .clients import StoreClient
from .exceptions import BucketOwnershipError, TransferError
from .schemas import AppendedArtifact

logger = logging.getLogger(__name__)

CONTENT_TYPE = "application/octet-stream"


def ensure_bucket(client: StoreClient, bucket: str) -> None:
    """
    Creates *bucket* if it is absent. A bucket we already own is fine; one
    owned by someone else, or one that neither exists nor can be created,
    fails the run.
    """
    try:
        client.make_bucket(bucket)
    except BucketOwnershipError:
        logger.error("Bucket is owned by another account", extra={"bucket": bucket})
        raise
    except TransferError as e:
        if e.error_code == "BucketAlreadyOwnedByYou":
            logger.info("Bucket already exists", extra={"bucket": bucket})
            return
        # Some stores report an existing bucket with other codes; confirm it.
        logger.debug(
            "Bucket creation failed, checking existence",
            extra={"bucket": bucket, "error_code": e.error_code},
        )
        if client.bucket_exists(bucket):
            logger.info("Bucket already exists", extra={"bucket": bucket})
            return
        raise
    logger.info("Successfully created bucket", extra={"bucket": bucket})


def upload_artifact(
    client: StoreClient, bucket: str, artifact: AppendedArtifact
) -> None:
    """Ensures the target bucket exists, then uploads the appended artifact."""
    ensure_bucket(client, bucket)

    metadata = {"content-sha256": artifact.sha256}
    logger.info(
        "Uploading artifact",
        extra={"bucket": bucket, "key": artifact.key, "size": artifact.size},
    )
    if artifact.path is not None:
        client.fput_object(
            bucket, artifact.key, artifact.path, CONTENT_TYPE, metadata=metadata
        )
    elif artifact.buffer is not None:
        artifact.buffer.seek(0)
        client.put_object(
            bucket,
            artifact.key,
            artifact.buffer,
            artifact.size,
            CONTENT_TYPE,
            metadata=metadata,
        )
    else:
        raise TransferError(
            "Artifact has neither a path nor a buffer",
            error_code="UPLOAD_FAILED",
            context={"bucket": bucket, "key": artifact.key},
        )
    logger.info(
        "Successfully uploaded artifact",
        extra={"bucket": bucket, "key": artifact.key, "sha256": artifact.sha256},
    )
