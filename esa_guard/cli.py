"""CLI entrypoint for esa-llm-scoped-guard."""

import logging
import sys
from pathlib import Path

import click

from . import __version__
from .config import DEFAULT_CONFIG_PATH

JSON_PATH = click.Path(exists=False, dir_okay=False, path_type=Path)


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    from rich.console import Console
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(__version__, prog_name="esa-llm-scoped-guard")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help=f"Path to config file (defaults to {DEFAULT_CONFIG_PATH})",
)
@click.option("--verbose", is_flag=True, help="Log pipeline steps and retries to stderr")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, verbose: bool) -> None:
    """esa-llm-scoped-guard - Write task documents to esa.io within allowed categories.

    Input is a JSON file describing one post; it is validated, rendered to
    Markdown with the input embedded, and created or updated in place.
    """
    from .guard.schema import load_post_schema

    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["schema"] = load_post_schema()


@cli.command()
@click.option("--json", "json_path", type=JSON_PATH, required=True, help="Path to input JSON file")
@click.pass_context
def validate(ctx: click.Context, json_path: Path) -> None:
    """Validate an input file. Prints nothing on success."""
    from .commands.validate_cmd import run_validate

    sys.exit(run_validate(json_path, schema=ctx.obj["schema"]))


@cli.command()
@click.option("--json", "json_path", type=JSON_PATH, required=True, help="Path to input JSON file")
@click.pass_context
def preview(ctx: click.Context, json_path: Path) -> None:
    """Print the Markdown that would be written (no network access)."""
    from .commands.preview import run_preview

    sys.exit(run_preview(json_path, schema=ctx.obj["schema"]))


@cli.command()
@click.option("--json", "json_path", type=JSON_PATH, required=True, help="Path to input JSON file")
@click.pass_context
def diff(ctx: click.Context, json_path: Path) -> None:
    """Show a unified diff between the existing post and the new document."""
    from .commands.diff_cmd import run_diff

    sys.exit(run_diff(json_path, schema=ctx.obj["schema"], config_path=ctx.obj["config_path"]))


@cli.command()
@click.option("--post-number", "post_number", type=click.IntRange(min=1), required=True, help="Post number to fetch")
@click.pass_context
def fetch(ctx: click.Context, post_number: int) -> None:
    """Print the input JSON embedded in an existing post."""
    from .commands.fetch import run_fetch

    sys.exit(run_fetch(post_number, schema=ctx.obj["schema"], config_path=ctx.obj["config_path"]))


@cli.command()
@click.option("--json", "json_path", type=JSON_PATH, required=True, help="Path to input JSON file")
@click.pass_context
def execute(ctx: click.Context, json_path: Path) -> None:
    """Create or update the post described by an input file."""
    from .commands.execute import run_execute

    sys.exit(run_execute(json_path, schema=ctx.obj["schema"], config_path=ctx.obj["config_path"]))


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
