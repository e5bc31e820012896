"""
Command-line entry point for the object concatenation job.

This module is responsible for:
1.  Parsing command-line flags and building the run configuration.
2.  Initializing AWS Lambda Powertools structured logging and sharing its
    configuration with the package's module loggers.
3.  Creating the store client and running the pipeline.
4.  Mapping the outcome onto a process exit status.
"""

import argparse
import os
import sys

from aws_lambda_powertools import Logger
from aws_lambda_powertools.logging.utils import copy_config_to_registered_loggers

from .clients import create_client
from .config import STAGING_MODES, AppConfig
from .exceptions import ConfigurationError, ObjectConcatError, get_error_context
from .pipeline import run_pipeline

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2

PACKAGE_LOGGER = "object_concat"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="object-concat",
        description=(
            "Concatenate all objects under an S3 bucket/prefix into a single "
            "object written to another bucket/prefix."
        ),
    )
    parser.add_argument(
        "--source-bucket-prefix",
        required=True,
        help="s3 source containing miscellaneous objects, as bucket/prefix",
    )
    parser.add_argument(
        "--target-bucket-prefix",
        required=True,
        help="s3 target receiving single resulting object, as bucket/prefix",
    )
    parser.add_argument("--endpoint", required=True, help="s3 endpoint, host:port")
    parser.add_argument("--accesskey", required=True, help="access key of s3 endpoint")
    parser.add_argument("--secretkey", required=True, help="secret key of s3 endpoint")
    parser.add_argument(
        "--enable-clean-up",
        default="false",
        help=(
            "'false' (default) deletes the staging directories after the run; "
            "'true' keeps them for debugging"
        ),
    )
    parser.add_argument(
        "--staging-mode",
        choices=STAGING_MODES,
        default=None,
        help="stage objects on disk (default) or in memory",
    )
    parser.add_argument(
        "--staging-root", default=None, help="root directory for scratch files"
    )
    parser.add_argument("--region", default=None, help="region for new buckets")
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="use plain http for an endpoint given without a scheme",
    )
    parser.add_argument("--log-level", default=None, help="logging level")
    return parser


def configure_logging(service_name: str, log_level: str) -> Logger:
    """
    Creates the Powertools logger and copies its JSON formatting and level
    onto the package loggers, so every module emits structured records.
    """
    logger = Logger(service=service_name, level=log_level)
    copy_config_to_registered_loggers(
        source_logger=logger, log_level=log_level, include={PACKAGE_LOGGER}
    )
    return logger


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = AppConfig.load(args)
    except ConfigurationError as e:
        # LOG_LEVEL itself may be what failed validation.
        logger = configure_logging(os.getenv("SERVICE_NAME", "object-concat"), "INFO")
        logger.error(
            f"Invalid configuration: {e}", extra={"error": get_error_context(e)}
        )
        return EXIT_CONFIG_ERROR

    logger = configure_logging(config.service_name, config.log_level)
    logger.info(
        "Parsed buckets and prefixes",
        extra={
            "source_bucket_prefix": str(config.source),
            "target_bucket_prefix": str(config.target),
        },
    )

    try:
        client = create_client(config)
        result = run_pipeline(client, config)
    except ObjectConcatError as e:
        logger.error(
            f"Concatenation run failed: {e}",
            extra={"error": get_error_context(e)},
        )
        return EXIT_RUNTIME_ERROR
    except Exception:
        logger.exception("Unexpected error during concatenation run")
        return EXIT_RUNTIME_ERROR

    logger.info(
        "Successfully uploaded artifact",
        extra={"bucket": result.bucket, "key": result.key, "size": result.size},
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
