"""Main CLI entry point."""

import logging
import logging.handlers
from pathlib import Path

import click

from nohm import __version__
from nohm.exceptions import handle_errors

from .commands import ids, keys, purge, show

logger = logging.getLogger(__name__)


@handle_errors(operation_name="configure logging", user_notification=lambda message: click.echo(message, err=True))
def setup_logging(verbose: int, debug: bool, log_file: Path | None, log_level: str) -> Path:
    """
    Configure logging for the command line tool.

    Args:
        verbose: Verbosity count (0 = WARNING, 1 = INFO, 2+ = DEBUG)
        debug: If True, log at DEBUG level to ./nohm-debug.log
        log_file: Custom log file path (optional)
        log_level: Log level for a custom log file (DEBUG/INFO/WARNING/ERROR)

    Returns:
        Path of the log file
    """
    if debug or verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    if log_file:
        level = getattr(logging, log_level.upper())

    if debug and not log_file:
        log_path = Path.cwd() / "nohm-debug.log"
    elif log_file:
        log_path = log_file
    else:
        log_dir = Path.home() / ".nohm" / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "nohm.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # keeps the last 5 files, 10MB each
    file_handler = logging.handlers.RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    logger.info(f"Logging configured: level={logging.getLevelName(level)}, file={log_path}")
    return log_path


@click.group()
@click.pass_context
@click.version_option(version=__version__, prog_name="nohm")
@click.option(
    "--redis-url",
    envvar="NOHM_REDIS_URL",
    default="redis://localhost:6379/0",
    show_default=True,
    help="Redis server URL",
)
@click.option(
    "--prefix",
    envvar="NOHM_PREFIX",
    default="nohm",
    show_default=True,
    help="Key prefix of the data",
)
@click.option(
    "-v", "--verbose",
    count=True,
    help="Increase verbosity (-v: INFO, -vv: DEBUG)",
)
@click.option(
    "--debug",
    is_flag=True,
    help="Enable debug mode (DEBUG level, logs to ./nohm-debug.log)",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Custom log file path",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="INFO",
    help="Log level for file logging (default: INFO)",
)
def cli(
    ctx: click.Context,
    redis_url: str,
    prefix: str,
    verbose: int,
    debug: bool,
    log_file: Path | None,
    log_level: str,
):
    """
    nohm - inspect data stored by the nohm object mapper.

    \b
    Examples:
      # List every key under the default prefix
      nohm keys

      # Ids and one stored record of a model
      nohm --prefix myapp ids User
      nohm --prefix myapp show User 42

      # Delete everything under a prefix
      nohm --prefix myapp purge --yes
    """
    ctx.ensure_object(dict)
    log_path = setup_logging(verbose, debug, log_file, log_level)
    ctx.obj.update({"redis_url": redis_url, "prefix": prefix, "log_path": log_path})


cli.add_command(keys)
cli.add_command(ids)
cli.add_command(show)
cli.add_command(purge)

if __name__ == "__main__":
    cli()
