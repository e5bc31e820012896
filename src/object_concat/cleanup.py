# src/object_concat/cleanup.py

import logging
import shutil

from .context import RunContext
from .exceptions import FilesystemError, get_error_context

logger = logging.getLogger(__name__)


def remove_scratch(ctx: RunContext) -> None:
    """
    Removes the run's scratch directory tree, plus the per-bucket parent once
    it is empty. Raises FilesystemError if the tree cannot be removed.
    """
    run_dir = ctx.run_dir
    if run_dir.exists():
        try:
            shutil.rmtree(run_dir)
        except OSError as e:
            raise FilesystemError(
                "rmtree", str(run_dir), context={"errno": e.errno, "strerror": e.strerror}
            ) from e
        logger.info("Removed scratch directory", extra={"path": str(run_dir)})

    bucket_dir = run_dir.parent
    try:
        if bucket_dir.is_dir() and not any(bucket_dir.iterdir()):
            bucket_dir.rmdir()
    except OSError as e:
        # Another run may have just created its own directory here.
        logger.debug(
            "Left bucket scratch directory in place",
            extra={"path": str(bucket_dir), "errno": e.errno},
        )


def clean_up(ctx: RunContext) -> bool:
    """
    Best-effort clean-up gated by the run configuration. Returns True when the
    scratch area was removed, False when clean-up was disabled or failed.
    """
    if not ctx.config.clean_up_scratch:
        logger.info(
            "Clean-up disabled, keeping scratch directory",
            extra={"path": str(ctx.run_dir)},
        )
        return False
    try:
        remove_scratch(ctx)
    except FilesystemError as e:
        logger.error(
            "Failed to remove scratch directory",
            extra={"error": get_error_context(e)},
        )
        return False
    return True
