# src/bucket_mirror/cli.py
"""Command-line interface for the bucket-mirror tool."""

import logging
import sys
from typing import Any, Dict, List, Optional

import click
from dotenv import find_dotenv, load_dotenv
from rich.logging import RichHandler

from bucket_mirror.config import AppConfig, Config
from bucket_mirror.exceptions import BucketMirrorError

logger: logging.Logger = logging.getLogger(__name__)

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INCOMPLETE: int = 3


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in ["boto3", "botocore", "s3transfer", "urllib3"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def run_sync(config: Config) -> int:
    """
    Runs one sync session and maps its report to an exit code.

    Args:
        config (Config): The application configuration.

    Returns:
        int: `EXIT_OK` if everything was copied, `EXIT_INCOMPLETE` otherwise.
    """
    # Lazily import to keep the CLI fast
    from bucket_mirror.backend import S3Backend
    from bucket_mirror.session import SyncReport, SyncSession

    pool_size: int = config.app.concurrency + 10
    source_backend: S3Backend = S3Backend.from_config(
        config.source, pool_size, config.app.client_max_attempts
    )
    dest_backend: S3Backend = S3Backend.from_config(
        config.destination, pool_size, config.app.client_max_attempts
    )
    session: SyncSession = SyncSession(
        source_backend,
        config.source.bucket,
        config.destination.bucket,
        config=config.app,
        dest_backend=dest_backend,
    )
    report: SyncReport = session.run()
    return EXIT_OK if report.succeeded else EXIT_INCOMPLETE


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--source",
    envvar="BUCKET_MIRROR_SOURCE_BUCKET",
    required=True,
    metavar="BUCKET",
    help="Bucket to sync from.",
)
@click.option(
    "--dest",
    envvar="BUCKET_MIRROR_DESTINATION_BUCKET",
    required=True,
    metavar="BUCKET",
    help="Bucket to sync to.",
)
@click.option(
    "--concurrency",
    type=click.IntRange(min=1),
    default=None,
    help="Number of objects copied at once. Defaults to the CPU count.",
)
@click.option(
    "--max-rounds",
    type=click.IntRange(min=1),
    default=None,
    help="Upper bound on copy rounds. Unbounded by default.",
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy every object of one S3 bucket into another.

    Every source object is copied, with its metadata and a public-read ACL,
    on each run. Objects that fail transiently are retried in further rounds
    for as long as the number of failures keeps shrinking. Objects the
    destination rejects as invalid are listed at the end.

    Credentials must be set via environment variables
    (BUCKET_MIRROR_ACCESS_KEY_ID, BUCKET_MIRROR_SECRET_ACCESS_KEY, optionally
    per side with a SOURCE_ or DESTINATION_ infix). A .env file is honoured.
    """
    setup_logging(kwargs["log_level"])

    try:
        app_kwargs: Dict[str, Any] = {}
        if kwargs["concurrency"] is not None:
            app_kwargs["concurrency"] = kwargs["concurrency"]
        app_config: AppConfig = AppConfig(max_rounds=kwargs["max_rounds"], **app_kwargs)
        config: Config = Config.from_env(kwargs["source"], kwargs["dest"], app_config)

        exit_code: int = run_sync(config)
    except BucketMirrorError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(EXIT_ERROR)
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(EXIT_ERROR)

    if exit_code == EXIT_OK:
        logger.info("✅ Run completed successfully.")
    sys.exit(exit_code)


def main(args: Optional[List[str]] = None) -> None:
    """
    Console-script entry point.

    The `.env` file in the working directory is loaded before click parses
    the command line, so it can supply the env-backed bucket options too.

    Args:
        args (List[str], optional): Command-line arguments; defaults to `sys.argv`.
    """
    load_dotenv(find_dotenv(usecwd=True))
    cli.main(args=args, prog_name="bucket-mirror")


if __name__ == "__main__":
    main()
