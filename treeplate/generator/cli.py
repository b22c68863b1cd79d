from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..config import settings
from ..errors import TreeplateError
from .template import Template, load_template

app = typer.Typer(add_completion=False, help="Render project templates into directories.")
err_console = Console(stderr=True)


def configure_logging(verbose: bool = False) -> None:
    logger = logging.getLogger("treeplate")
    logger.handlers[:] = [RichHandler(console=err_console, show_time=False, show_path=False)]
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def locate(template: str) -> Path:
    """A template is either a path or the name of one under the template home."""
    path = Path(template).expanduser()
    if path.exists():
        return path
    return settings.template_home / template


def _load(template: str) -> Template:
    try:
        return load_template(locate(template))
    except (TreeplateError, OSError) as e:
        err_console.print(f"[red]Error:[/] couldn't load template {template!r}: {e}")
        raise typer.Exit(1)


@app.command("use")
def use(
    template: str,
    target: Path,
    use_defaults: bool = typer.Option(False, "--use-defaults", "-f", help="Use default values without prompting"),
    values: Optional[Path] = typer.Option(None, "--values", help="JSON/YAML file with values to use"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Render TEMPLATE into TARGET."""
    configure_logging(verbose)
    tmpl = _load(template)
    try:
        if use_defaults:
            tmpl.use_defaults()
        elif values is not None:
            tmpl.use_values(values)
        tmpl.render(target)
    except (TreeplateError, OSError) as e:
        err_console.print(f"[red]Error:[/] {e}")
        raise typer.Exit(1)
    print(f"[green]✔[/] Rendered [bold]{template}[/] into {target}")


@app.command("validate")
def validate(template: str, verbose: bool = typer.Option(False, "--verbose", "-v")):
    """Check TEMPLATE for syntax errors and undeclared variables."""
    configure_logging(verbose)
    _load(template)
    print(f"[green]✔[/] Template [bold]{template}[/] is valid")


@app.command("describe")
def describe(template: str):
    """Show the metadata of TEMPLATE."""
    tmpl = _load(template)
    table = Table(show_header=False)
    for key, value in tmpl.metadata.model_dump(exclude_none=True).items():
        table.add_row(key, str(value))
    table.add_row("variables", ", ".join(tmpl.context) or "-")
    print(table)


def main(argv=None) -> int:
    return app(args=argv, prog_name="treeplate", standalone_mode=False) or 0
