# src/object_concat/core.py

"""
Core logic for appending staged objects into a single artifact.

The main entry point, `append_staged_items`, concatenates every staged item
in listing order into one artifact (a file under the run's scratch area, or an
in-memory buffer) and then verifies it against what the Stager recorded:

1. the number of items appended equals the number of objects listed;
2. the bytes appended equal the total listed object size;
3. the finished artifact's size equals the total listed object size.

Items are never re-sorted. The artifact's byte layout follows the store's
listing order, so callers that care about order must name their objects
accordingly.
"""

import hashlib
import io
import logging
from contextlib import closing
from pathlib import Path
from typing import BinaryIO, cast

from .context import RunContext
from .exceptions import DataIntegrityError, FilesystemError
from .schemas import AppendedArtifact, StagedItem
from .staging import ensure_directory

logger = logging.getLogger(__name__)

COPY_CHUNK_SIZE = 64 * 1024


# --- Helpers ---
class DigestingSink:
    """Writes appended bytes to *target* and keeps a running SHA-256 of them."""

    def __init__(self, target: BinaryIO):
        self._target = target
        self._digest = hashlib.sha256()

    def write(self, chunk: bytes) -> None:
        self._digest.update(chunk)
        self._target.write(chunk)

    def hexdigest(self) -> str:
        return self._digest.hexdigest()


def _copy_counting(source: BinaryIO, sink: DigestingSink) -> int:
    copied = 0
    for chunk in iter(lambda: source.read(COPY_CHUNK_SIZE), b""):
        sink.write(chunk)
        copied += len(chunk)
    return copied


def _open_item(item: StagedItem) -> BinaryIO | None:
    """Opens a staged item for reading, or returns None if its file is gone."""
    if item.data is not None:
        return io.BytesIO(item.data)
    path = cast(Path, item.path)
    try:
        return cast(BinaryIO, path.open("rb"))
    except FileNotFoundError:
        logger.warning(
            "Staged file is missing. Skipping.",
            extra={"key": item.key, "path": str(path)},
        )
        return None
    except OSError as e:
        raise FilesystemError(
            "open", str(path), context={"key": item.key, "errno": e.errno}
        ) from e


def _remove_stale_artifact(path: Path) -> None:
    if not path.exists():
        return
    logger.debug("Removing previous artifact", extra={"path": str(path)})
    try:
        path.unlink()
    except OSError as e:
        raise FilesystemError(
            "unlink", str(path), context={"errno": e.errno, "strerror": e.strerror}
        ) from e


def _write_items(
    items: list[StagedItem], sink: DigestingSink, ctx: RunContext
) -> None:
    counters = ctx.counters
    for item in items:
        stream = _open_item(item)
        if stream is None:
            continue
        with closing(stream):
            copied = _copy_counting(stream, sink)
        counters.record_file(copied)
        logger.debug(
            "Appended object",
            extra={"key": item.key, "index": item.index, "bytes": copied},
        )


def verify_counts(ctx: RunContext, artifact_size: int) -> None:
    """Raises DataIntegrityError on the first check that does not hold."""
    counters = ctx.counters
    if counters.file_count != counters.object_count:
        raise DataIntegrityError(
            "object_count", counters.file_count, counters.object_count
        )
    if counters.file_size != counters.object_size:
        raise DataIntegrityError(
            "object_size", counters.file_size, counters.object_size
        )
    if artifact_size != counters.object_size:
        raise DataIntegrityError(
            "artifact_size", artifact_size, counters.object_size
        )


# --- Core Append Routine ---
def append_staged_items(items: list[StagedItem], ctx: RunContext) -> AppendedArtifact:
    """
    Concatenates *items* in order into the run's artifact and verifies it.

    The whole write-and-verify section runs under the run's append lock. Any
    artifact left at the target scratch path by an earlier attempt is removed
    first, so a retry always rebuilds from scratch.
    """
    counters = ctx.counters

    with ctx.append_lock:
        counters.reset_files()

        if ctx.uses_disk:
            artifact_path = ctx.artifact_path
            ensure_directory(ctx.append_dir)
            _remove_stale_artifact(artifact_path)

            try:
                with artifact_path.open("wb") as output:
                    sink = DigestingSink(cast(BinaryIO, output))
                    _write_items(items, sink, ctx)
                artifact_size = artifact_path.stat().st_size
            except OSError as e:
                raise FilesystemError(
                    "write",
                    str(artifact_path),
                    context={"errno": e.errno, "strerror": e.strerror},
                ) from e
            buffer = None
        else:
            artifact_path = None
            buffer = io.BytesIO()
            sink = DigestingSink(buffer)
            _write_items(items, sink, ctx)
            artifact_size = buffer.seek(0, io.SEEK_END)
            buffer.seek(0)

        logger.info(
            "Appended objects",
            extra={
                "file_count": counters.file_count,
                "file_size": counters.file_size,
                "artifact_size": artifact_size,
            },
        )
        verify_counts(ctx, artifact_size)

    return AppendedArtifact(
        key=ctx.target_key,
        size=artifact_size,
        sha256=sink.hexdigest(),
        path=artifact_path,
        buffer=buffer,
    )
