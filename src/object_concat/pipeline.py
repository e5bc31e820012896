# src/object_concat/pipeline.py

"""
High-level orchestration for one concatenation run.

Stager -> Appender -> Uploader, each a synchronous step. The first failure
short-circuits the remaining steps; Cleanup runs on every exit path.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from .cleanup import clean_up
from .clients import StoreClient
from .config import AppConfig
from .context import RunContext, RunCounters
from .core import append_staged_items
from .staging import stage_objects
from .uploader import upload_artifact

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RunResult:
    bucket: str
    key: str
    size: int
    sha256: str
    counters: RunCounters


def run_pipeline(
    client: StoreClient,
    config: AppConfig,
    now: datetime | None = None,
    ctx: RunContext | None = None,
) -> RunResult:
    """
    Concatenates every object under the configured source and uploads the
    result. Exceptions from any step propagate after Cleanup has run.
    """
    ctx = ctx or RunContext.create(config, now)
    logger.info(
        "Starting concatenation run",
        extra={
            "source": str(config.source),
            "target": str(config.target),
            "target_key": ctx.target_key,
            "staging_mode": config.staging_mode,
            "run_dir": str(ctx.run_dir),
        },
    )

    try:
        staged = stage_objects(client, ctx)
        artifact = append_staged_items(staged, ctx)
        upload_artifact(client, config.target.bucket, artifact)
    finally:
        clean_up(ctx)

    logger.info(
        "Concatenation run completed",
        extra={
            "bucket": config.target.bucket,
            "key": artifact.key,
            "object_count": ctx.counters.object_count,
            "size": artifact.size,
            "sha256": artifact.sha256,
        },
    )
    return RunResult(
        bucket=config.target.bucket,
        key=artifact.key,
        size=artifact.size,
        sha256=artifact.sha256,
        counters=ctx.counters,
    )
