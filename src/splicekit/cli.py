"""SpliceKit command-line interface."""

from __future__ import annotations

import logging
import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import DEFAULT_CONFIG_NAME, GeneratorConfig, load_config
from .exceptions import SpliceKitError
from .generator import Generator
from .models import DocumentAction, GenerationReport, InjectionAction
from .splitter import split

app = typer.Typer(
    name="splice",
    help="SpliceKit: generate files from templates and inject fragments into existing ones",
    add_completion=False,
)
console = Console()

_ACTION_STYLES = {
    DocumentAction.ADDED: "green",
    DocumentAction.OVERWRITTEN: "yellow",
    DocumentAction.SKIPPED: "dim",
    InjectionAction.INJECTED: "green",
    InjectionAction.UNCHANGED: "dim",
    InjectionAction.SKIPPED_IF: "dim",
}


def _get_version_string() -> str:
    """Get version string from package metadata or pyproject.toml."""
    try:
        return get_version("splicekit")
    except PackageNotFoundError:
        pass

    # Development checkout without installed metadata
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        content = pyproject_path.read_text()
        match = re.search(r'version\s*=\s*["\']([^"\']+)["\']', content)
        if match:
            return f"{match.group(1)} (development)"

    return "unknown"


def version_callback(value: bool) -> None:
    """Callback for --version flag."""
    if value:
        console.print(f"SpliceKit version {_get_version_string()}")
        raise typer.Exit


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """SpliceKit: generate files from templates and inject fragments into existing ones."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
        force=True,
    )


def parse_var(raw: str) -> tuple[str, Any]:
    """Parse a ``KEY=VALUE`` pair, reading VALUE as a YAML scalar."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        msg = f"Invalid variable {raw!r}, expected KEY=VALUE"
        raise typer.BadParameter(msg)
    try:
        parsed = yaml.safe_load(value) if value else ""
    except yaml.YAMLError:
        parsed = value
    return key.strip(), parsed


def _load_vars_file(vars_file: Path) -> dict[str, Any]:
    try:
        with vars_file.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        msg = f"Failed to load variables from {vars_file}: {e}"
        raise typer.BadParameter(msg) from e
    if not isinstance(data, dict):
        msg = f"Variables file {vars_file} must contain a mapping"
        raise typer.BadParameter(msg)
    return data


def _build_config(
    cwd: Path | None,
    config_path: Path | None,
    dry_run: bool,
) -> GeneratorConfig:
    base_dir = cwd or Path.cwd()
    if config_path is None and (base_dir / DEFAULT_CONFIG_NAME).exists():
        config_path = base_dir / DEFAULT_CONFIG_NAME

    config = load_config(config_path) if config_path else GeneratorConfig(working_dir=base_dir)
    updates: dict[str, Any] = {}
    if cwd is not None:
        updates["working_dir"] = cwd
    if dry_run:
        updates["dry_run"] = True
    return config.model_copy(update=updates) if updates else config


def _collect_variables(variables: list[str], vars_file: Path | None) -> dict[str, Any]:
    collected = _load_vars_file(vars_file) if vars_file else {}
    collected.update(parse_var(raw) for raw in variables)
    return collected


def _print_error(error: SpliceKitError) -> None:
    console.print(f"[red]Error:[/red] {escape(str(error))}")
    for key, value in error.details.items():
        console.print(f"  [dim]{key}:[/dim] {escape(str(value))}")


def _print_report(report: GenerationReport) -> None:
    table = Table(title="Dry run" if report.dry_run else "Generated")
    table.add_column("Doc", justify="right")
    table.add_column("Action")
    table.add_column("Path")

    for doc in report.documents:
        style = _ACTION_STYLES[doc.action]
        table.add_row(str(doc.index), f"[{style}]{doc.action.value}[/{style}]", escape(doc.target_path))
        for inj in doc.injections:
            style = _ACTION_STYLES[inj.action]
            table.add_row(
                "",
                f"  [{style}]{inj.action.value}[/{style}]",
                escape(inj.target_file),
            )

    console.print(table)
    for message in report.messages:
        console.print(escape(message))


TemplateArg = typer.Argument(..., exists=True, dir_okay=False, help="Template file")
VarOption = typer.Option([], "--var", "-v", help="Template variable KEY=VALUE (repeatable)")
VarsFileOption = typer.Option(
    None, "--vars-file", exists=True, dir_okay=False, help="YAML or JSON mapping of variables",
)
CwdOption = typer.Option(
    None, "--cwd", file_okay=False, help="Working directory for relative paths",
)
ConfigOption = typer.Option(
    None, "--config", "-c", exists=True, dir_okay=False,
    help=f"Config file (default: {DEFAULT_CONFIG_NAME} in the working directory)",
)
VerboseOption = typer.Option(False, "--verbose", help="Enable debug logging")


@app.command()
def generate(
    template: Path = TemplateArg,
    variables: list[str] = VarOption,
    vars_file: Path | None = VarsFileOption,
    cwd: Path | None = CwdOption,
    config_path: Path | None = ConfigOption,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Show what would change without writing files",
    ),
    verbose: bool = VerboseOption,
) -> None:
    """Render a template, write its documents and apply their injections."""
    _configure_logging(verbose)
    try:
        config = _build_config(cwd, config_path, dry_run)
        generator = Generator(config=config)
        report = generator.generate(
            generator.fs.read_text(template),
            _collect_variables(variables, vars_file),
        )
    except SpliceKitError as e:
        _print_error(e)
        raise typer.Exit(1) from e

    _print_report(report)
    if report.dry_run:
        console.print("[yellow]Dry run:[/yellow] no files were written")


@app.command()
def check(
    template: Path = TemplateArg,
    variables: list[str] = VarOption,
    vars_file: Path | None = VarsFileOption,
    cwd: Path | None = CwdOption,
    config_path: Path | None = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Render and split a template, listing documents without touching files."""
    _configure_logging(verbose)
    try:
        config = _build_config(cwd, config_path, dry_run=True)
        generator = Generator(config=config)
        rendered = generator.renderer.render(
            generator.fs.read_text(template),
            generator.merge_variables(_collect_variables(variables, vars_file)),
        )
        documents = list(split(rendered, generator.decode))
    except SpliceKitError as e:
        _print_error(e)
        raise typer.Exit(1) from e

    table = Table(title=f"{len(documents)} document(s)")
    table.add_column("Doc", justify="right")
    table.add_column("Target")
    table.add_column("Placement")
    table.add_column("Into")

    for doc in documents:
        table.add_row(str(doc.index), escape(doc.metadata.target_path), "", "")
        for directive in doc.metadata.injections:
            placement = directive.placement
            label = placement.kind
            pattern = getattr(placement, "pattern", None)
            if pattern is not None:
                label += f" {pattern!r}"
            if directive.inline:
                label += " (inline)"
            table.add_row("", "", escape(label), escape(directive.target_file))

    console.print(table)
    console.print("[green]✓[/green] Template is valid")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"SpliceKit version {_get_version_string()}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
