# src/object_concat/context.py

"""
Per-run state for one invocation of the pipeline.

Everything a run mutates (counters, scratch paths, the append lock) lives on a
`RunContext` that is passed explicitly through each stage, so two runs in the
same process never share state.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from .config import AppConfig

TIME_FORMAT = "%Y%m%d%H%M%S"


def format_run_timestamp(now: datetime) -> str:
    """Renders *now* in UTC using the compact run timestamp format."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.strftime(TIME_FORMAT)


def build_target_key(target_prefix: str, source_bucket: str, timestamp: str) -> str:
    """`<target-prefix>/<source-bucket>-<timestamp>`; an empty prefix drops the leading '/'."""
    object_name = f"{source_bucket}-{timestamp}"
    prefix = target_prefix.rstrip("/")
    if not prefix:
        return object_name
    return f"{prefix}/{object_name}"


@dataclass(slots=True)
class RunCounters:
    """Expected values come from the listing, observed values from the append pass."""

    object_count: int = 0
    object_size: int = 0
    file_count: int = 0
    file_size: int = 0

    def record_object(self, size: int) -> None:
        self.object_count += 1
        self.object_size += size

    def record_file(self, size: int) -> None:
        self.file_count += 1
        self.file_size += size

    def reset_files(self) -> None:
        self.file_count = 0
        self.file_size = 0


@dataclass(slots=True)
class RunContext:
    config: AppConfig
    timestamp: str
    counters: RunCounters = field(default_factory=RunCounters)
    append_lock: threading.Lock = field(default_factory=threading.Lock)

    @classmethod
    def create(cls, config: AppConfig, now: datetime | None = None) -> "RunContext":
        now = now or datetime.now(timezone.utc)
        return cls(config=config, timestamp=format_run_timestamp(now))

    @property
    def object_name(self) -> str:
        return f"{self.config.source.bucket}-{self.timestamp}"

    @property
    def target_key(self) -> str:
        return build_target_key(
            self.config.target.prefix, self.config.source.bucket, self.timestamp
        )

    @property
    def run_dir(self) -> Path:
        return self.config.staging_root / self.config.source.bucket / self.timestamp

    @property
    def download_dir(self) -> Path:
        return self.run_dir / "objects"

    @property
    def append_dir(self) -> Path:
        return self.run_dir / "append"

    @property
    def artifact_path(self) -> Path:
        return self.append_dir / self.object_name

    @property
    def uses_disk(self) -> bool:
        return self.config.staging_mode == "disk"
