"""
Shared fixtures for unit tests.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest

from object_concat.cli import build_parser
from object_concat.config import AppConfig
from object_concat.context import RunContext
from object_concat.exceptions import BucketOwnershipError, TransferError
from object_concat.schemas import SourceObject

RUN_TIME = datetime(2024, 3, 1, 12, 30, 45, tzinfo=timezone.utc)
RUN_TIMESTAMP = "20240301123045"


class FakeStoreClient:
    """
    An in-memory stand-in for StoreClient. Lists keys in lexicographic order,
    like S3 does, and records every upload.
    """

    def __init__(self, objects: dict[str, dict[str, bytes]] | None = None):
        self.buckets: dict[str, dict[str, bytes]] = {
            name: dict(content) for name, content in (objects or {}).items()
        }
        self.uploads: list[dict] = []
        self.fail_fetch_keys: set[str] = set()
        self.fetched: list[str] = []
        self.foreign_buckets: set[str] = set()

    def list_objects(
        self, bucket: str, prefix: str, recursive: bool = True
    ) -> Iterator[SourceObject]:
        for key in sorted(self.buckets.get(bucket, {})):
            if key.startswith(prefix):
                data = self.buckets[bucket][key]
                yield SourceObject(key=key, size=len(data))

    def _fetch(self, bucket: str, key: str) -> bytes:
        self.fetched.append(key)
        if key in self.fail_fetch_keys:
            raise TransferError(
                "Failed to fetch object: boom",
                error_code="FETCH_FAILED",
                context={"bucket": bucket, "key": key},
            )
        return self.buckets[bucket][key]

    def get_object(self, bucket: str, key: str) -> bytes:
        return self._fetch(bucket, key)

    def fget_object(self, bucket: str, key: str, path: Path) -> None:
        Path(path).write_bytes(self._fetch(bucket, key))

    def bucket_exists(self, bucket: str) -> bool:
        return bucket in self.buckets or bucket in self.foreign_buckets

    def make_bucket(self, bucket: str) -> None:
        if bucket in self.foreign_buckets:
            raise BucketOwnershipError(bucket)
        if bucket in self.buckets:
            raise TransferError(
                "Failed to create bucket: exists",
                error_code="BucketAlreadyOwnedByYou",
                context={"bucket": bucket},
            )
        self.buckets[bucket] = {}

    def put_object(self, bucket, key, body, size, content_type, metadata=None):
        data = body.read()
        self.buckets[bucket][key] = data
        self.uploads.append(
            {
                "bucket": bucket,
                "key": key,
                "data": data,
                "size": size,
                "content_type": content_type,
                "metadata": metadata,
            }
        )

    def fput_object(self, bucket, key, path, content_type, metadata=None):
        data = Path(path).read_bytes()
        self.buckets[bucket][key] = data
        self.uploads.append(
            {
                "bucket": bucket,
                "key": key,
                "data": data,
                "size": len(data),
                "content_type": content_type,
                "metadata": metadata,
                "path": path,
            }
        )


def cli_args(*extra: str, **overrides: str):
    """Parses a complete, valid flag set; keyword overrides replace flag values."""
    flags = {
        "--source-bucket-prefix": "source-bucket/logs/",
        "--target-bucket-prefix": "target-bucket/merged",
        "--endpoint": "localhost:9000",
        "--accesskey": "access",
        "--secretkey": "secret",
    }
    for name, value in overrides.items():
        flags["--" + name.replace("_", "-")] = value
    argv = [item for pair in flags.items() for item in pair] + list(extra)
    return build_parser().parse_args(argv)


@pytest.fixture
def make_config(tmp_path: Path):
    """Builds an AppConfig staged under the test's tmp_path."""

    def _make(*extra: str, **overrides: str) -> AppConfig:
        overrides.setdefault("staging_root", str(tmp_path / "staging"))
        return AppConfig.load(cli_args(*extra, **overrides), environ={})

    return _make


@pytest.fixture
def config(make_config) -> AppConfig:
    return make_config()


@pytest.fixture
def run_context(config: AppConfig) -> RunContext:
    return RunContext.create(config, RUN_TIME)


@pytest.fixture
def store() -> FakeStoreClient:
    return FakeStoreClient(
        {
            "source-bucket": {
                "logs/a": b"AA",
                "logs/b": b"BB",
                "other/c": b"CC",
            }
        }
    )
