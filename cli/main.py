"""
tilecode CLI - Main Entry Point

Command-line interface for building a quadtree code index from line
segments and querying it. Built with Click for argument parsing and help
generation.
"""

import sys
import logging
from pathlib import Path
from typing import Optional

import click

from tilecode import __version__
from tilecode.config import TileCodeConfig, load_config
from tilecode.exceptions import TileCodeError

# Configure logging for CLI (stderr, so stdout stays machine-readable)
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("tilecode")


class TileCodeContext:
    """Context object for passing global options to subcommands."""

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        config_path: Optional[Path] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.config_path = config_path
        self._config = None

        # Library loggers are children of "tilecode" and follow this level
        if quiet:
            logger.setLevel(logging.ERROR)
        elif verbose:
            logger.setLevel(logging.DEBUG)
        else:
            logger.setLevel(logging.WARNING)

    @property
    def config(self) -> TileCodeConfig:
        """Lazy load configuration from file, defaults and environment."""
        if self._config is None:
            self._config = load_config(
                str(self.config_path) if self.config_path else None
            )
        return self._config


class TileCodeGroup(click.Group):
    """Click group with a banner and examples in its help."""

    def format_help(self, ctx, formatter):
        """Format help with custom banner and examples."""
        formatter.write_paragraph()
        formatter.write_text("tilecode - Quadtree code index for bounding boxes")
        formatter.write_paragraph()

        super().format_help(ctx, formatter)

        formatter.write_paragraph()
        formatter.write_text("Examples:")
        formatter.indent()

        examples = [
            "# Count overlapping neighbours of every segment",
            "tilecode count --input segments.txt",
            "",
            "# Find segments overlapping a box",
            "tilecode query --input segments.txt --bbox 40.70,-74.02,40.72,-74.00",
            "",
            "# Show the code of a bbox (use -- before negative numbers)",
            "tilecode encode -- 40.70 -74.02 40.72 -74.00",
            "",
            "# Decode a code",
            "tilecode decode 0x1c7f3b2a00000000",
        ]

        for line in examples:
            formatter.write_text(line)

        formatter.dedent()


pass_context = click.make_pass_decorator(TileCodeContext, ensure=True)


@click.group(cls=TileCodeGroup)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose output (debug logging).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Quiet mode (only errors).",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file.",
)
@click.version_option(
    version=__version__,
    prog_name="tilecode",
    message="%(prog)s version %(version)s",
)
@click.pass_context
def app(ctx, verbose: bool, quiet: bool, config_path: Optional[Path]):
    """
    tilecode - Quadtree code index for bounding boxes

    Builds a sorted index of buffered line segments keyed by 64-bit
    quadtree codes and answers bbox overlap queries against it.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet")

    ctx.obj = TileCodeContext(
        verbose=verbose,
        quiet=quiet,
        config_path=config_path,
    )


def register_commands():
    """Register all subcommands."""
    from cli.commands import count, encode, query

    app.add_command(count.count)
    app.add_command(query.query)
    app.add_command(encode.encode)
    app.add_command(encode.decode)


@app.command("info")
@pass_context
def info(ctx):
    """Display version information and effective configuration."""
    import platform
    import importlib.metadata

    click.echo("\n=== tilecode Info ===\n")

    click.echo(f"tilecode: {__version__}")
    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"Platform: {platform.system()} {platform.release()}")

    click.echo("\n--- Package Versions ---")
    for pkg in ["numpy", "click", "PyYAML"]:
        try:
            version = importlib.metadata.version(pkg)
        except importlib.metadata.PackageNotFoundError:
            version = "not installed"
        click.echo(f"  {pkg}: {version}")

    click.echo("\n--- Configuration ---")
    config = ctx.config
    click.echo(f"  Buffer: {config.buffer.distance_feet} ft ({config.buffer.distance_degrees:.8f} deg)")
    click.echo(f"  Terminator: {config.input.terminator!r}")
    click.echo(f"  Strict lookup: {config.query.strict}")

    click.echo()


register_commands()


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except TileCodeError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
