# src/object_concat/staging.py

"""
Stager: materializes every object under the source bucket/prefix locally.

Objects are staged in listing order, either as files under the run's download
directory or as in-memory byte strings. The expected object count and total
size are accumulated on the run counters as the listing is consumed.
"""

import logging
import re
from pathlib import Path

from .clients import StoreClient
from .context import RunContext
from .exceptions import FilesystemError, NotFoundError, TransferError
from .schemas import SourceObject, StagedItem

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_MAX_NAME_LENGTH = 120


def scratch_name(index: int, key: str) -> str:
    """
    Flat, collision-free file name for the *index*-th object. Keys are
    flattened so '/' and '..' segments can never escape the download directory;
    the index prefix keeps names unique and sorted in listing order.
    """
    flattened = _UNSAFE_NAME_CHARS.sub("_", key).strip("._")
    return f"{index:08d}-{flattened[:_MAX_NAME_LENGTH] or 'object'}"


def ensure_directory(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(
            "mkdir", str(path), context={"errno": e.errno, "strerror": e.strerror}
        ) from e


def _stage_one(
    client: StoreClient, ctx: RunContext, index: int, obj: SourceObject
) -> StagedItem:
    bucket = ctx.config.source.bucket
    if ctx.uses_disk:
        path = ctx.download_dir / scratch_name(index, obj.key)
        client.fget_object(bucket, obj.key, path)
        return StagedItem(index=index, key=obj.key, size=obj.size, path=path)

    data = client.get_object(bucket, obj.key)
    return StagedItem(index=index, key=obj.key, size=obj.size, data=data)


def stage_objects(client: StoreClient, ctx: RunContext) -> list[StagedItem]:
    """
    Lists the source prefix recursively and stages each object.

    Raises:
        NotFoundError: the listing yielded zero objects.
        TransferError: listing or any single fetch failed; remaining objects
            are not attempted.
        FilesystemError: the download directory could not be created.
    """
    bucket = ctx.config.source.bucket
    prefix = ctx.config.source.prefix
    counters = ctx.counters

    if ctx.uses_disk:
        ensure_directory(ctx.download_dir)

    staged: list[StagedItem] = []
    for index, obj in enumerate(client.list_objects(bucket, prefix, recursive=True)):
        logger.info("Obtaining object", extra={"key": obj.key, "size": obj.size})
        try:
            item = _stage_one(client, ctx, index, obj)
        except TransferError as e:
            logger.error(
                "Failed to obtain object",
                extra={"key": obj.key, "error": e.to_dict()},
            )
            raise
        counters.record_object(obj.size)
        staged.append(item)

    if counters.object_count == 0:
        logger.error(
            "Failed to find objects", extra={"bucket": bucket, "prefix": prefix}
        )
        raise NotFoundError(bucket, prefix)

    logger.info(
        "Found objects",
        extra={
            "object_count": counters.object_count,
            "object_size": counters.object_size,
        },
    )
    return staged
