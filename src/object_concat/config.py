import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import pydantic

from .exceptions import ConfigurationError
from .schemas import BucketPrefix

logger = logging.getLogger(__name__)

STAGING_MODES = ("disk", "memory")
_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off")


def parse_bool_flag(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be 'true' or 'false', not '{raw}'")


def parse_bucket_prefix(flag: str, raw: str) -> BucketPrefix:
    """Parses a `bucket/prefix` flag value, failing with a ConfigurationError."""
    try:
        return BucketPrefix.parse(raw or "")
    except (ValueError, pydantic.ValidationError) as e:
        raise ConfigurationError(
            f"{flag} must contain a bucket and prefix",
            context={"flag": flag, "value": raw, "reason": str(e)},
        ) from e


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Configuration for a single run, built from CLI flags and the environment."""

    # --- Required Values ---
    source: BucketPrefix
    target: BucketPrefix
    endpoint: str
    access_key: str
    secret_key: str

    # --- Optional Values with Defaults ---
    enable_clean_up: bool
    staging_mode: str
    staging_root: Path
    region: str
    secure: bool
    log_level: str
    service_name: str

    # --- Derived Properties ---
    @property
    def clean_up_scratch(self) -> bool:
        # The flag name is inverted: "false" means the scratch area IS removed.
        return not self.enable_clean_up

    @property
    def endpoint_url(self) -> str:
        if "://" in self.endpoint:
            return self.endpoint
        scheme = "https" if self.secure else "http"
        return f"{scheme}://{self.endpoint}"

    @classmethod
    def load(cls, args: Any, environ: Mapping[str, str] | None = None) -> "AppConfig":
        """
        Builds the configuration from parsed CLI arguments, falling back to the
        environment for optional values. Fails fast with a ConfigurationError
        if anything is invalid.
        """
        env = os.environ if environ is None else environ

        source = parse_bucket_prefix("source-bucket-prefix", args.source_bucket_prefix)
        target = parse_bucket_prefix("target-bucket-prefix", args.target_bucket_prefix)

        try:
            # --- Handle required connection values ---
            endpoint = (args.endpoint or "").strip()
            if not endpoint:
                raise ValueError("endpoint must not be empty.")
            access_key = args.accesskey or ""
            secret_key = args.secretkey or ""
            if not access_key or not secret_key:
                raise ValueError("accesskey and secretkey must not be empty.")

            enable_clean_up = parse_bool_flag(
                "enable-clean-up", args.enable_clean_up or "false"
            )

            # --- Handle optional values with environment fallbacks ---
            staging_mode = (
                args.staging_mode or env.get("STAGING_MODE", "disk")
            ).lower()
            if staging_mode not in STAGING_MODES:
                raise ValueError(
                    f"staging mode must be one of {list(STAGING_MODES)}, not '{staging_mode}'"
                )

            staging_root = Path(
                args.staging_root
                or env.get("STAGING_ROOT")
                or os.path.join(tempfile.gettempdir(), "object-concat")
            )

            region = args.region or env.get("AWS_REGION") or "us-east-1"

            log_level = (args.log_level or env.get("LOG_LEVEL", "INFO")).upper()
            allowed_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
            if log_level not in allowed_log_levels:
                raise ValueError(
                    f"LOG_LEVEL must be one of {allowed_log_levels}, not '{log_level}'"
                )

            service_name = env.get("SERVICE_NAME", "object-concat")

        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        config = cls(
            source=source,
            target=target,
            endpoint=endpoint,
            access_key=access_key,
            secret_key=secret_key,
            enable_clean_up=enable_clean_up,
            staging_mode=staging_mode,
            staging_root=staging_root,
            region=region,
            secure=not args.insecure,
            log_level=log_level,
            service_name=service_name,
        )
        logger.debug(
            "Configuration loaded",
            extra={
                "source": str(source),
                "target": str(target),
                "staging_mode": staging_mode,
                "staging_root": str(staging_root),
            },
        )
        return config
