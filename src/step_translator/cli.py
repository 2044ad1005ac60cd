"""CLI entry point for Step Translator."""

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import Config, load_config
from .exceptions import InputCollectionError
from .generator import generate_browser_tests, generate_multistep_tests
from .models import GenerationResult
from .variables import read_report

console = Console()


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(package_name="step-translator")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Step Translator - convert recorded browser tests into Playwright specs."""
    ctx.ensure_object(dict)

    config = load_config(Path(config_path) if config_path else None)
    ctx.obj["config"] = config

    setup_logging("DEBUG" if verbose else config.log_level)


@main.command()
@click.option("--input", "-i", "input_path", type=click.Path(), help="Exported browser tests JSON")
@click.option("--output", "-o", "output_dir", type=click.Path(), help="Output directory for specs")
@click.pass_context
def browser(ctx: click.Context, input_path: str | None, output_dir: str | None) -> None:
    """Generate Playwright specs for browser tests."""
    config: Config = ctx.obj["config"]
    source = Path(input_path) if input_path else config.exports_path / "browser-tests.json"
    target = Path(output_dir) if output_dir else config.browser_output_dir

    console.print(f"\n[bold blue]Generating browser specs:[/] {source}\n")
    try:
        results = generate_browser_tests(config, source, target)
    except InputCollectionError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise SystemExit(1)

    _print_summary("Browser Test Generation", results)

    iframe_tests = sum(r.iframe_test_count for r in results)
    if iframe_tests:
        iframe_steps = sum(r.iframe_step_count for r in results)
        console.print(
            f"  • Iframe-aware: [cyan]{iframe_tests}[/] tests, {iframe_steps} steps "
            f"(helper: {target / (config.script.helper_module + '.ts')})"
        )

    manual = sum(r.manual_locator_count for r in results)
    if manual:
        console.print(f"  • Locators needing manual review: [yellow]{manual}[/]")
    unsupported = sum(r.unsupported_step_count for r in results)
    if unsupported:
        console.print(f"  • Unsupported steps left as TODO: [yellow]{unsupported}[/]")

    console.print(f"\n[dim]Variable usage report: {config.variable_report_path}[/]\n")


@main.command()
@click.option("--input", "-i", "input_path", type=click.Path(), help="Exported multi-step tests JSON")
@click.option("--output", "-o", "output_dir", type=click.Path(), help="Output directory for specs")
@click.pass_context
def multi(ctx: click.Context, input_path: str | None, output_dir: str | None) -> None:
    """Generate Playwright request specs for multi-step API tests."""
    config: Config = ctx.obj["config"]
    source = Path(input_path) if input_path else config.exports_path / "multi-step-tests.json"
    target = Path(output_dir) if output_dir else config.multi_output_dir

    console.print(f"\n[bold blue]Generating multi-step specs:[/] {source}\n")
    try:
        results = generate_multistep_tests(config, source, target)
    except InputCollectionError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise SystemExit(1)

    _print_summary("Multi-Step Test Generation", results)

    for result in results:
        for skipped in result.skipped:
            console.print(
                f"  [dim]Skipped {skipped.name}: {', '.join(skipped.incompatible_subtypes)}[/]"
            )
    console.print()


@main.command()
@click.option("--format", "-f", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def variables(ctx: click.Context, output_format: str) -> None:
    """Show which tests reference which variables."""
    config: Config = ctx.obj["config"]
    path = config.variable_report_path

    try:
        report = read_report(path)
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] cannot read {path}: {e}")
        raise SystemExit(1)

    if report is None:
        console.print(f"[yellow]No variable usage report at {path}[/]")
        return

    if output_format == "json":
        click.echo(json.dumps(report, indent=2))
        return

    table = Table(title=f"Variable Usage ({report.get('totalVariablesReferenced', 0)} variables)")
    table.add_column("Variable", style="cyan")
    table.add_column("Uses", justify="right", style="magenta")
    table.add_column("Tests", style="dim", max_width=60)

    for name, entry in report.get("variables", {}).items():
        table.add_row(name, str(entry.get("usageCount", 0)), ", ".join(entry.get("checks", [])))

    console.print(table)


def _print_summary(title: str, results: list[GenerationResult]) -> None:
    table = Table(title=title)
    table.add_column("Location", style="cyan")
    table.add_column("Generated", justify="right", style="green")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Output", style="dim")

    for result in results:
        table.add_row(
            result.location_type,
            str(result.success_count),
            str(len(result.skipped)),
            str(len(result.errors)),
            result.output_dir,
        )

    console.print(table)

    errors = [error for result in results for error in result.errors]
    if errors:
        console.print("\n[bold red]Failed tests:[/]")
        for error in errors:
            console.print(f"  • {error.name} ({error.test_id}): {error.message}")

    console.print("\n[bold]Summary:[/]")
    console.print(f"  • Generated: [green]{sum(r.success_count for r in results)}[/]")
    console.print(f"  • Failed: [red]{len(errors)}[/]")


if __name__ == "__main__":
    main()
