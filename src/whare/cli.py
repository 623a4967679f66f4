"""Command-line entry point for whare."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Annotated

import click
import typer
from typer.core import TyperGroup

from . import __version__
from .commands import init_project, update_project
from .log import LEVEL_NAMES

HELP_TEXT = """Keep a monorepo in sync with its upstream template.

Commands:
  init [PATH]    create a new project from the template
  update [PATH]  apply template changes since the tracked revision
  help           show this message

Options:
  --dry          report what would change without writing anything
  --verbose      stream log output while the command runs
  --template     template repository URL (default: $WHARE_TEMPLATE_URL)
"""

USAGE_EXIT_CODE = 1


class WhareGroup(TyperGroup):
    """Command group whose usage errors exit with status 1.

    Running without arguments prints the help text and also exits 1.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if not args:
            typer.echo(ctx.get_help())
            ctx.exit(USAGE_EXIT_CODE)
        try:
            return super().parse_args(ctx, args)
        except click.UsageError as exc:
            exc.exit_code = USAGE_EXIT_CODE
            raise

    def invoke(self, ctx: click.Context):
        try:
            return super().invoke(ctx)
        except click.UsageError as exc:
            exc.exit_code = USAGE_EXIT_CODE
            raise


app = typer.Typer(
    cls=WhareGroup,
    add_completion=False,
    help="Keep a monorepo in sync with its upstream template.",
)


def _validate_log_level(value: str | None) -> str | None:
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized not in LEVEL_NAMES:
        raise typer.BadParameter(f"expected one of: {', '.join(LEVEL_NAMES)}")
    return normalized


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            callback=_validate_log_level,
            help="minimum log level (trace, debug, info, success, warning, error)",
        ),
    ] = None,
    no_color: Annotated[
        bool, typer.Option("--no-color", help="disable colorized output")
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="show the whare version and exit",
        ),
    ] = False,
) -> None:
    del version
    ctx.obj = {"log_level": log_level, "no_color": no_color}


def _command_args(
    ctx: typer.Context,
    path: str,
    dry: bool,
    verbose: bool,
    template: str | None,
) -> SimpleNamespace:
    shared = ctx.obj or {}
    return SimpleNamespace(
        path=path,
        dry=dry,
        verbose=verbose,
        template=template,
        log_level=shared.get("log_level"),
        no_color=shared.get("no_color", False),
    )


PathArg = Annotated[str, typer.Argument(help="project directory")]
DryOpt = Annotated[bool, typer.Option("--dry", help="report without writing")]
VerboseOpt = Annotated[
    bool, typer.Option("--verbose", "-v", help="stream log output immediately")
]
TemplateOpt = Annotated[
    str | None, typer.Option("--template", help="template repository URL")
]


@app.command("init")
def init_command(
    ctx: typer.Context,
    path: PathArg = ".",
    dry: DryOpt = False,
    verbose: VerboseOpt = False,
    template: TemplateOpt = None,
) -> None:
    """Create a new project from the template."""
    init_project(_command_args(ctx, path, dry, verbose, template))


@app.command("update")
def update_command(
    ctx: typer.Context,
    path: PathArg = ".",
    dry: DryOpt = False,
    verbose: VerboseOpt = False,
    template: TemplateOpt = None,
) -> None:
    """Apply template changes since the tracked revision."""
    update_project(_command_args(ctx, path, dry, verbose, template))


@app.command("help")
def help_command() -> None:
    """Show usage."""
    typer.echo(HELP_TEXT)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
