"""
Command-line interface for the git submodule relocation tool.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler

from .models import RelocationConfig, RelocationError, RelocationExecutionError
from .relocator import SubmoduleRelocator
from . import __version__ as PACKAGE_VERSION


console = Console()
err_console = Console(stderr=True)
logger = logging.getLogger(__name__)

DEBUG_ENV = "GIT_SUBMODULE_MV_DEBUG"
LOG_ENV = "GIT_SUBMODULE_MV_LOG"
GIT_DIR_ENV = "GIT_DIR"


def _print_version(ctx, param, value):
    """Eager option callback to print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    click.echo(f"git-submodule-mv {PACKAGE_VERSION}")
    ctx.exit()


def _default_log_path() -> Path:
    """Determine default log file path (~/.git-submodule-mv/git-submodule-mv.log)."""
    env_path = os.environ.get(LOG_ENV)
    if env_path:
        p = Path(env_path).expanduser()
        p.parent.mkdir(parents=True, exist_ok=True)
        return p
    base = Path.home() / ".git-submodule-mv"
    base.mkdir(parents=True, exist_ok=True)
    return base / "git-submodule-mv.log"


def setup_logging(verbose: bool = False, console_level: Optional[str] = None, log_file: Optional[Path] = None) -> Path:
    """Setup logging to a rotating file, plus the console when asked for.

    The file always receives DEBUG records. Console logging (stderr, via rich)
    is off unless --verbose or --log-level is given. Returns the log file path.
    """
    log_path = Path(log_file) if log_file else _default_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    # Clear existing handlers to avoid duplication in tests / repeated invocations
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    file_handler = RotatingFileHandler(str(log_path), maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(file_handler)

    if verbose or console_level:
        level_map = {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }
        console_handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=False)
        console_handler.setLevel(level_map.get((console_level or "info").lower(), logging.INFO))
        console_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(console_handler)

    return log_path


def build_config(verbose: bool, dry_run: bool, git_dir: Optional[Path]) -> RelocationConfig:
    """Fold command-line options and environment overrides into a RelocationConfig."""
    debug = bool(os.environ.get(DEBUG_ENV))
    if git_dir is None and os.environ.get(GIT_DIR_ENV):
        git_dir = Path(os.environ[GIT_DIR_ENV])
    return RelocationConfig(
        dry_run=dry_run or debug,
        verbose=verbose or debug,
        git_dir=git_dir,
    )


def _echo(message: str) -> None:
    console.print(message, markup=False, highlight=False, soft_wrap=True)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--version",
    "-V",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
@click.option("--verbose", "-v", is_flag=True, help="Print each step as it runs and enable console logging (INFO)")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Console log level. By default, console logging is disabled.",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help=f"Print the commands that would run without changing anything (also enabled by {DEBUG_ENV}).",
)
@click.option(
    "--git-dir",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Repository directory of the parent (defaults to ${GIT_DIR_ENV} or .git). Pointers are written as absolute paths.",
)
@click.argument("source", required=False)
@click.argument("destination", required=False)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    log_level: Optional[str],
    dry_run: bool,
    git_dir: Optional[Path],
    source: Optional[str],
    destination: Optional[str],
) -> None:
    """
    Move the submodule at SOURCE to DESTINATION inside the current repository.

    A DESTINATION ending in a slash is a directory to move the submodule into;
    otherwise its last segment becomes the submodule's new directory name.
    Run from the root of the parent repository. Nothing is committed.

    Example: git-submodule-mv lib/foo vendor/
    """
    if not source or not destination:
        click.echo(ctx.get_help())
        ctx.exit(0)

    config = build_config(verbose, dry_run, git_dir)
    log_path = setup_logging(config.verbose, console_level=log_level)
    logger.debug(f"CLI init: cwd={Path.cwd()} source={source} destination={destination} config={config}")

    try:
        relocator = SubmoduleRelocator(Path.cwd(), config, echo=_echo)
        plan = relocator.relocate(source, destination)

        for warning in plan.warnings:
            err_console.print(f"⚠️  {warning}", style="yellow", highlight=False)

        if config.dry_run:
            console.print("\n🔍 Dry Run Complete - No changes made")
            return

        console.print(
            f"\n✅ Moved submodule {plan.layout.source} to {plan.layout.target}",
            style="bold green",
            highlight=False,
        )
        console.print(relocator.status(), markup=False, highlight=False)
        console.print("\nReview the changes above, then commit them.", style="bold")
    except RelocationExecutionError as e:
        err_console.print(f"❌ {e}", style="bold red", highlight=False)
        err_console.print(f"[dim]Details are in {log_path}[/dim]")
        logger.debug("Relocation aborted part way", exc_info=True)
        sys.exit(e.exit_code)
    except RelocationError as e:
        err_console.print(f"❌ {e}", style="bold red", highlight=False)
        logger.debug("Relocation rejected", exc_info=True)
        sys.exit(e.exit_code)
    except (click.Abort, KeyboardInterrupt):
        err_console.print("\n🚫 Operation cancelled by user", style="bold yellow")
        logger.debug("Operation cancelled by user", exc_info=True)
        sys.exit(130)
    except Exception as e:
        err_console.print(f"💥 Unexpected Error: {e}", style="bold red", highlight=False)
        if config.verbose:
            err_console.print_exception()
        logger.debug("Unexpected error during relocation", exc_info=True)
        sys.exit(1)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
