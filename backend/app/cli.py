"""Command-line entry point for Basted Pocket."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from backend.app.config import AppSettings, load_settings
from backend.app.logging_config import configure_application_logging
from backend.app.services.article_archive import ArticleArchive
from backend.app.services.jsonld_analysis import (
    RecipePropertyReport,
    StructuredDataReport,
    analyze_recipe_properties,
    analyze_structured_data,
)
from backend.app.services.jsonld_extraction import extract_json_ld_objects
from backend.app.services.structured_data_service import StructuredDataService
from backend.app.telemetry import build_telemetry_client

console = Console()

MAX_LISTED_PROPERTIES = 15


def _bootstrap() -> AppSettings:
    try:
        settings = load_settings()
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc
    configure_application_logging(settings, console_stream=sys.stderr)
    return settings


def _service(settings: AppSettings) -> StructuredDataService:
    return StructuredDataService(
        limits=settings.render_limits(),
        telemetry=build_telemetry_client(
            enabled=settings.telemetry_enabled,
            sink=settings.telemetry_sink,
        ),
    )


def _write_output(html: str, output: Path | None) -> None:
    if output is None:
        click.echo(html)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {output}", highlight=False)


def load_json_ld_file(path: Path) -> list[Any]:
    """Read JSON-LD from a saved page, a `json_ld_objects` array or a `data.json` record."""
    text = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    if suffix in {".html", ".htm"}:
        return extract_json_ld_objects(text)
    if suffix != ".json":
        raise click.ClickException(f"Unsupported file type: {path.suffix or '(none)'}")
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"Invalid JSON in {path}: {exc}") from exc
    if isinstance(payload, dict) and "json_ld_objects" in payload:
        payload = payload["json_ld_objects"]
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list):
        return payload
    return []


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Basted Pocket - structured data previews for archived links."""


@click.command()
@click.argument("article_id")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the HTML fragment to a file instead of stdout.",
)
def render(article_id: str, output: Path | None):
    """Render the structured data of one archived article."""
    settings = _bootstrap()
    article = ArticleArchive(settings.archive_dir).load(article_id)
    if article is None:
        raise click.ClickException(f"Unknown article: {article_id}")

    rendering = _service(settings).render(article.json_ld_objects, article_id=article_id)
    if rendering.is_empty:
        console.print(
            f"[yellow]No structured data to render for {article_id}[/yellow]", highlight=False
        )
        return
    _write_output(rendering.html, output)


@click.command(name="render-file")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the HTML fragment to a file instead of stdout.",
)
def render_file(path: Path, output: Path | None):
    """Render structured data from a local .json or .html file."""
    settings = _bootstrap()
    rendering = _service(settings).render(load_json_ld_file(path))
    if rendering.is_empty:
        console.print(f"[yellow]No structured data found in {path}[/yellow]", highlight=False)
        return
    _write_output(rendering.html, output)


def _type_table(report: StructuredDataReport) -> Table:
    table = Table(title="JSON-LD types")
    table.add_column("Type", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right")
    table.add_column("Sources")
    table.add_column("Properties")
    for stats in report.types:
        properties = sorted(stats.properties)
        listed = ", ".join(properties[:MAX_LISTED_PROPERTIES])
        if len(properties) > MAX_LISTED_PROPERTIES:
            listed += ", ..."
        table.add_row(stats.type_label, str(stats.count), ", ".join(sorted(stats.sources)), listed)
    return table


def _recipe_table(report: RecipePropertyReport) -> Table:
    table = Table(title=f"Recipe properties ({report.total_recipes} recipes)")
    table.add_column("Property", style="cyan", no_wrap=True)
    table.add_column("Count", justify="right")
    table.add_column("%", justify="right")
    table.add_column("Shapes")
    table.add_column("Rendered")
    for stats in report.properties:
        share = (stats.count / report.total_recipes) * 100 if report.total_recipes else 0.0
        table.add_row(
            stats.name,
            str(stats.count),
            f"{share:.1f}",
            ", ".join(sorted(stats.value_shapes)),
            "yes" if stats.is_rendered else "[yellow]no[/yellow]",
        )
    return table


@click.command()
@click.option("--recipes", is_flag=True, help="Analyze recipe properties instead of types.")
def analyze(recipes: bool):
    """Summarize the JSON-LD found across the archive."""
    settings = _bootstrap()
    articles = ArticleArchive(settings.archive_dir).load_scraped()
    if not articles:
        console.print(
            f"[yellow]No archived articles in {settings.archive_dir}[/yellow]", highlight=False
        )
        return

    if recipes:
        recipe_report = analyze_recipe_properties(articles)
        if recipe_report.total_recipes == 0:
            console.print("[yellow]No recipes found[/yellow]")
            return
        console.print(_recipe_table(recipe_report))
        return

    report = analyze_structured_data(articles)
    console.print(
        f"\n[bold]Articles with JSON-LD:[/bold] {report.articles_with_data}"
        f"  [bold]Objects:[/bold] {report.total_objects}"
        f"  [bold]Types:[/bold] {len(report.types)}\n"
    )
    console.print(_type_table(report))


main.add_command(render)
main.add_command(render_file)
main.add_command(analyze)


if __name__ == "__main__":
    main()
