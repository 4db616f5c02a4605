"""Typer CLI for the keyphrase SEO analyzer.

Provides commands to analyse a page, list the registered checks, browse the
analysis history, and serve the HTTP API.
"""

import asyncio
import json
import logging

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from seo_analyzer.exceptions import InvalidInputError, SEOAnalyzerError

console = Console()
app = typer.Typer(
    name="seo-analyzer",
    help="Keyphrase SEO Analyzer -- on-page checks, scoring and recommendations for one URL.",
    add_completion=False,
    no_args_is_help=True,
)

_PRIORITY_STYLES = {"high": "red", "medium": "yellow", "low": "cyan"}


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _get_app(config: str):
    """Lazy-import and return an initialised SEOAnalyzerApp."""
    from seo_analyzer.app import SEOAnalyzerApp
    seo_app = SEOAnalyzerApp(config_path=config)
    seo_app.initialize()
    return seo_app


def _print_result(result) -> None:
    """Pretty-print an AnalysisResult using Rich."""
    table = Table(title="SEO Checks", show_header=True, header_style="bold magenta")
    table.add_column("Check", style="cyan", min_width=28)
    table.add_column("Status", min_width=10)
    table.add_column("Priority", min_width=8)
    table.add_column("Details", max_width=70)

    for check in result.checks:
        status = "[green]✔ passed[/green]" if check.passed else "[red]✘ failed[/red]"
        style = _PRIORITY_STYLES.get(check.priority.value, "white")
        details = check.description
        if check.recommendation:
            details += "\n[dim]" + check.recommendation + "[/dim]"
        table.add_row(check.title, status, f"[{style}]{check.priority.value}[/{style}]", details)

    console.print(table)
    console.print(
        f"\n[bold]Score: {result.score}/100 ({result.rating})[/bold]  "
        f"passed={result.passed_checks} failed={result.failed_checks}"
    )
    if result.elapsed_seconds:
        console.print(f"Elapsed: {result.elapsed_seconds}s")


# ------------------------------------------------------------------
# analyze
# ------------------------------------------------------------------
@app.command()
def analyze(
    url: str = typer.Argument(..., help="Page URL to analyse (http or https)."),
    keyphrase: str = typer.Argument(..., help="Focus keyphrase the page should rank for."),
    as_json: bool = typer.Option(False, "--json", help="Print the raw JSON result."),
    save: bool = typer.Option(False, "--save", help="Store the result in the history database."),
    no_ai: bool = typer.Option(False, "--no-ai", help="Use built-in advice instead of the LLM."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run every on-page check for URL against KEYPHRASE."""
    _setup_logging(verbose)
    seo_app = _get_app(config)
    use_ai = False if no_ai else None

    try:
        if as_json:
            result = asyncio.run(seo_app.analyze(url, keyphrase, save=save or None, use_ai=use_ai))
        else:
            console.print(Panel(f"[bold cyan]SEO Analysis: {url}[/bold cyan]\nKeyphrase: {keyphrase}"))
            with Progress(
                SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console
            ) as progress:
                progress.add_task(description="Fetching and analysing page...", total=None)
                result = asyncio.run(seo_app.analyze(url, keyphrase, save=save or None, use_ai=use_ai))
    except InvalidInputError as exc:
        console.print(f"[red]Invalid input:[/red] {exc}")
        raise typer.Exit(code=2)
    except SEOAnalyzerError as exc:
        console.print(f"[red]✘ Analysis failed:[/red] {exc}")
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
        return
    _print_result(result)
    console.print("[green]✔[/green] Analysis complete.")


# ------------------------------------------------------------------
# checks
# ------------------------------------------------------------------
@app.command()
def checks() -> None:
    """List every check in evaluation order with its priority."""
    from seo_analyzer.modules.onpage_seo.checks import AdviceKind, canonical_checks

    table = Table(title="Registered Checks", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Check", style="cyan")
    table.add_column("Priority")
    table.add_column("Advice")
    for number, descriptor in enumerate(canonical_checks(), start=1):
        advice = "AI" if descriptor.advice is AdviceKind.NEEDS_EXTERNAL_ADVICE else "built-in"
        table.add_row(str(number), descriptor.title, descriptor.priority.value, advice)
    console.print(table)


# ------------------------------------------------------------------
# history
# ------------------------------------------------------------------
@app.command()
def history(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of analyses to show."),
    url: str = typer.Option("", "--url", help="Only show analyses of this URL."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
) -> None:
    """Show recently saved analyses."""
    from seo_analyzer.models.analysis import recent_analyses

    seo_app = _get_app(config)
    seo_app.ensure_database()
    records = recent_analyses(limit=limit, url=url or None)
    if not records:
        console.print("[yellow]No saved analyses.[/yellow]")
        return

    table = Table(title="Analysis History", show_header=True, header_style="bold magenta")
    table.add_column("ID", justify="right")
    table.add_column("Date")
    table.add_column("URL", style="cyan", max_width=50)
    table.add_column("Keyphrase")
    table.add_column("Score", justify="right")
    table.add_column("Passed/Failed")
    for record in records:
        table.add_row(
            str(record.id),
            record.created_at.strftime("%Y-%m-%d %H:%M"),
            record.url,
            record.keyphrase,
            f"{record.score} ({record.rating})",
            f"{record.passed_checks}/{record.failed_checks}",
        )
    console.print(table)


# ------------------------------------------------------------------
# serve
# ------------------------------------------------------------------
@app.command()
def serve(
    host: str = typer.Option("", "--host", help="Interface to bind (default from settings)."),
    port: int = typer.Option(0, "--port", "-p", help="Port to bind (default from settings)."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Serve the HTTP API (POST /api/analyze)."""
    from seo_analyzer.api import run_server

    _setup_logging(verbose)
    seo_app = _get_app(config)
    server_cfg = seo_app.section("server")
    run_server(
        seo_app.analyze,
        host=host or server_cfg.get("host", "0.0.0.0"),
        port=port or server_cfg.get("port", 5000),
    )


def main() -> None:
    app()


if __name__ == "__main__":
    main()
