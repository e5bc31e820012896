# tests/unit/test_context.py

from datetime import datetime, timedelta, timezone

import pytest

from conftest import RUN_TIME, RUN_TIMESTAMP
from object_concat.context import (
    RunContext,
    RunCounters,
    build_target_key,
    format_run_timestamp,
)


def test_format_run_timestamp_uses_utc():
    plus_two = timezone(timedelta(hours=2))
    local = datetime(2024, 3, 1, 14, 30, 45, tzinfo=plus_two)

    assert format_run_timestamp(local) == RUN_TIMESTAMP
    assert format_run_timestamp(RUN_TIME) == RUN_TIMESTAMP


@pytest.mark.parametrize(
    "prefix, expected",
    [
        ("merged", "merged/source-20240301123045"),
        ("merged/", "merged/source-20240301123045"),
        ("a/b", "a/b/source-20240301123045"),
        ("", "source-20240301123045"),
    ],
)
def test_build_target_key(prefix, expected):
    assert build_target_key(prefix, "source", RUN_TIMESTAMP) == expected


def test_target_key_is_deterministic(config):
    first = RunContext.create(config, RUN_TIME)
    second = RunContext.create(config, RUN_TIME)

    assert first.target_key == second.target_key == f"merged/source-bucket-{RUN_TIMESTAMP}"


def test_scratch_layout(config):
    ctx = RunContext.create(config, RUN_TIME)

    assert ctx.run_dir == config.staging_root / "source-bucket" / RUN_TIMESTAMP
    assert ctx.download_dir.parent == ctx.run_dir
    assert ctx.append_dir.parent == ctx.run_dir
    assert ctx.artifact_path == ctx.append_dir / f"source-bucket-{RUN_TIMESTAMP}"
    assert ctx.uses_disk is True


def test_each_context_has_its_own_state(config):
    first = RunContext.create(config, RUN_TIME)
    second = RunContext.create(config, RUN_TIME)

    first.counters.record_object(10)

    assert second.counters.object_count == 0
    assert first.append_lock is not second.append_lock


def test_run_counters():
    counters = RunCounters()
    counters.record_object(3)
    counters.record_object(4)
    counters.record_file(3)

    assert (counters.object_count, counters.object_size) == (2, 7)
    assert (counters.file_count, counters.file_size) == (1, 3)

    counters.reset_files()

    assert (counters.file_count, counters.file_size) == (0, 0)
    assert counters.object_count == 2
