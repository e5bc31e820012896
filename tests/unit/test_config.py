# tests/unit/test_config.py

from pathlib import Path

import pytest

from conftest import cli_args
from object_concat.config import AppConfig, parse_bool_flag, parse_bucket_prefix
from object_concat.exceptions import ConfigurationError


def test_load_happy_path(tmp_path):
    """Tests that configuration loads correctly from a full flag set."""
    # ARRANGE
    args = cli_args(
        "--insecure",
        staging_root=str(tmp_path),
        staging_mode="memory",
        region="eu-west-1",
        log_level="debug",
    )

    # ACT
    config = AppConfig.load(args, environ={})

    # ASSERT
    assert config.source.bucket == "source-bucket"
    assert config.source.prefix == "logs/"
    assert config.target.bucket == "target-bucket"
    assert config.target.prefix == "merged"
    assert config.access_key == "access"
    assert config.secret_key == "secret"
    assert config.staging_mode == "memory"
    assert config.staging_root == tmp_path
    assert config.region == "eu-west-1"
    assert config.log_level == "DEBUG"
    assert config.endpoint_url == "http://localhost:9000"


def test_load_uses_defaults():
    """Tests that optional values fall back to their defaults."""
    config = AppConfig.load(cli_args(), environ={})

    assert config.enable_clean_up is False
    assert config.clean_up_scratch is True
    assert config.staging_mode == "disk"
    assert config.staging_root.name == "object-concat"
    assert config.region == "us-east-1"
    assert config.log_level == "INFO"
    assert config.service_name == "object-concat"
    assert config.endpoint_url == "https://localhost:9000"


def test_load_reads_environment_fallbacks():
    env = {
        "STAGING_MODE": "memory",
        "STAGING_ROOT": "/var/scratch",
        "AWS_REGION": "ap-south-1",
        "LOG_LEVEL": "warning",
        "SERVICE_NAME": "nightly-concat",
    }

    config = AppConfig.load(cli_args(), environ=env)

    assert config.staging_mode == "memory"
    assert config.staging_root == Path("/var/scratch")
    assert config.region == "ap-south-1"
    assert config.log_level == "WARNING"
    assert config.service_name == "nightly-concat"


def test_endpoint_with_scheme_is_used_verbatim():
    config = AppConfig.load(
        cli_args("--insecure", endpoint="https://minio.internal:9000"), environ={}
    )
    assert config.endpoint_url == "https://minio.internal:9000"


@pytest.mark.parametrize(
    "flag_value, clean_up_scratch",
    [("false", True), ("FALSE", True), ("true", False), ("True", False)],
)
def test_enable_clean_up_semantics_are_inverted(flag_value, clean_up_scratch):
    """'false' means the scratch area is removed; 'true' keeps it."""
    config = AppConfig.load(cli_args(enable_clean_up=flag_value), environ={})
    assert config.clean_up_scratch is clean_up_scratch


def test_invalid_enable_clean_up_value():
    with pytest.raises(ConfigurationError):
        AppConfig.load(cli_args(enable_clean_up="maybe"), environ={})


@pytest.mark.parametrize(
    "raw, bucket, prefix",
    [
        ("bucket/prefix", "bucket", "prefix"),
        ("bucket/nested/prefix/", "bucket", "nested/prefix/"),
        ("bucket/", "bucket", ""),
    ],
)
def test_parse_bucket_prefix_valid(raw, bucket, prefix):
    parsed = parse_bucket_prefix("source-bucket-prefix", raw)
    assert parsed.bucket == bucket
    assert parsed.prefix == prefix
    assert str(parsed) == raw


@pytest.mark.parametrize("raw", ["no-slash", "", "/prefix-only"])
def test_parse_bucket_prefix_invalid(raw):
    with pytest.raises(ConfigurationError) as exc_info:
        parse_bucket_prefix("target-bucket-prefix", raw)

    assert exc_info.value.error_code == "CONFIGURATION_ERROR"
    assert exc_info.value.context["flag"] == "target-bucket-prefix"


def test_malformed_source_fails_before_anything_else():
    with pytest.raises(ConfigurationError, match="source-bucket-prefix"):
        AppConfig.load(cli_args(source_bucket_prefix="nobucketprefix"), environ={})


@pytest.mark.parametrize(
    "overrides",
    [
        {"endpoint": "  "},
        {"accesskey": ""},
        {"log_level": "verbose"},
    ],
)
def test_invalid_values_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        AppConfig.load(cli_args(**overrides), environ={})


def test_invalid_staging_mode_from_environment():
    with pytest.raises(ConfigurationError):
        AppConfig.load(cli_args(), environ={"STAGING_MODE": "tape"})


@pytest.mark.parametrize(
    "raw, expected",
    [("true", True), ("1", True), ("on", True), ("false", False), ("no", False)],
)
def test_parse_bool_flag(raw, expected):
    assert parse_bool_flag("flag", raw) is expected
