"""CLI interface for Smart Search."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

app = typer.Typer(
    name="smart-search",
    help="Fuzzy registry search with confidence estimation",
    add_completion=False,
)
console = Console()


def get_config():
    """Load configuration from environment."""
    from dotenv import load_dotenv
    import os

    from .config import SearchConfig
    from .logging import configure_logging

    load_dotenv()
    configure_logging(level=os.getenv("SMART_SEARCH_LOG_LEVEL", "WARNING").upper(), json=False)

    return {
        "search": SearchConfig.from_env(),
        "db_path": os.getenv("SMART_SEARCH_DB", "./data/smart_search.db"),
        "endpoint": os.getenv("SMART_SEARCH_ENDPOINT"),
        "api_id": os.getenv("SMART_SEARCH_API_ID"),
        "api_key": os.getenv("SMART_SEARCH_API_KEY"),
        "cache_path": os.getenv("SMART_SEARCH_STATS_CACHE", "./data/statistics_cache.json"),
    }


def get_service(config: dict):
    from .service import SmartSearchService
    from .sources.sqlite_store import SQLiteRecordSource

    return SmartSearchService(SQLiteRecordSource(config["db_path"]), config["search"])


def _criteria(**fields):
    from .models.criteria import SearchCriteria

    return SearchCriteria(**{k: v for k, v in fields.items() if v is not None})


# Shared criteria options
NAME = typer.Option(None, "--name", "-n", help="Name, one or more tokens")
IDENTIFIER = typer.Option(None, "--identifier", "-i", help="Full identifier")
PHONE = typer.Option(None, "--phone", "-p", help="Full phone number")
REGION = typer.Option(None, "--region", "-r", help="Region code or name")
GROUP = typer.Option(None, "--group", "-g", help="Group (village)")
SUBREGION = typer.Option(None, "--subregion", help="Subregion")
ORGANIZATION = typer.Option(None, "--organization", help="Organization")
PARTIAL_ID = typer.Option(None, "--partial-id", help="Part of an identifier")
PARTIAL_PHONE = typer.Option(None, "--partial-phone", help="Part of a phone number")


@app.command("init-db")
def init_db():
    """Create the search index database."""
    config = get_config()
    from .sources.sqlite_store import SQLiteRecordSource

    source = SQLiteRecordSource(config["db_path"])
    console.print(f"[green]Search index ready at {source.db_path}[/green]")


@app.command("import")
def import_records(
    file_path: Path = typer.Argument(..., help="JSON lines file, one record per line"),
):
    """Import registry records into the search index."""
    config = get_config()
    from .sources.sqlite_store import SQLiteRecordSource

    if not file_path.exists():
        console.print(f"[red]Error: File not found: {file_path}[/red]")
        raise typer.Exit(1)

    records = []
    with open(file_path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as e:
                console.print(f"[red]Line {line_no}: invalid JSON ({e.msg})[/red]")
                raise typer.Exit(1)

    missing = [i for i, r in enumerate(records, 1) if "id" not in r]
    if missing:
        console.print(f"[red]Records without an id at lines: {missing[:10]}[/red]")
        raise typer.Exit(1)

    count = SQLiteRecordSource(config["db_path"]).upsert_many(records)
    console.print(f"[green]Imported {count} records from {file_path.name}[/green]")


@app.command()
def search(
    name: str = NAME,
    identifier: str = IDENTIFIER,
    phone: str = PHONE,
    region: str = REGION,
    group: str = GROUP,
    subregion: str = SUBREGION,
    organization: str = ORGANIZATION,
    partial_id: str = PARTIAL_ID,
    partial_phone: str = PARTIAL_PHONE,
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum results"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response"),
):
    """Search the index."""
    config = get_config()
    service = get_service(config)

    criteria = _criteria(
        name=name,
        identifier=identifier,
        phone=phone,
        region_code=region,
        group=group,
        subregion=subregion,
        organization=organization,
        partial_identifier=partial_id,
        partial_phone=partial_phone,
    )
    response = service.search(
        {"criteria": criteria.model_dump(by_alias=True, exclude_none=True), "limit": limit}
    )

    if as_json:
        console.print_json(json.dumps(response))
        return

    if not response.get("success"):
        console.print(f"[red]Error: {response.get('error')}[/red]")
        raise typer.Exit(1)

    records = response["records"]
    if not records:
        console.print("[yellow]No records found[/yellow]")
        for suggestion in response.get("suggestions", []):
            console.print(f"  [dim]- {suggestion}[/dim]")
        return

    table = Table(title=f"{response['resultType']} ({response['totalCount']} candidates)")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Identifier")
    table.add_column("Phone")
    table.add_column("Region")
    table.add_column("Group")
    table.add_column("Score", justify="right")

    for r in records:
        table.add_row(
            r["id"],
            " ".join(p for p in (r.get("firstName"), r.get("lastName")) if p),
            r.get("identifierMasked") or "",
            r.get("phoneMasked") or "",
            r.get("regionCode") or "",
            r.get("group") or "",
            str(r["relevanceScore"]),
        )

    console.print(table)
    console.print(f"[dim]{response['searchTime']} ms[/dim]")


@app.command()
def lookup(record_id: str = typer.Argument(..., help="Index record id")):
    """Show a single record."""
    config = get_config()
    response = get_service(config).lookup(record_id)

    if not response.get("success"):
        console.print(f"[red]{response.get('error')}[/red]")
        raise typer.Exit(1)

    console.print_json(json.dumps(response["record"]))


@app.command()
def autocomplete(
    field: str = typer.Argument(..., help="group, subregion or organization"),
    region: str = REGION,
    query: str = typer.Option(None, "--query", "-q", help="Text to match"),
):
    """List known values of a location or organization field."""
    config = get_config()
    response = get_service(config).autocomplete(field, region, query)

    if not response.get("success"):
        console.print(f"[red]{response.get('error')}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"{field} values")
    table.add_column("Value")
    table.add_column("Records", justify="right")
    for value in response["values"]:
        table.add_row(value["name"], str(value["count"]))
    console.print(table)


@app.command()
def stats(
    refresh: bool = typer.Option(False, "--refresh", help="Recompute instead of using the cache"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw response"),
):
    """Show population statistics of the index."""
    config = get_config()
    response = get_service(config).statistics(force_refresh=refresh)

    if as_json:
        console.print_json(json.dumps(response))
        return

    statistics = response["statistics"]
    table = Table(title="Index Statistics")
    table.add_column("Metric")
    table.add_column("Value")
    table.add_row("Total Records", str(statistics["totalRecords"]))
    table.add_row("Regions", str(len(statistics["regionCounts"])))
    table.add_row("Average Group Size", str(statistics["averageGroupSize"]))
    table.add_row("Generated", statistics["generatedAt"])
    console.print(table)

    regions = statistics["regionCounts"]
    if regions:
        region_table = Table(title="Records by Region")
        region_table.add_column("Region")
        region_table.add_column("Count")
        for code, count in sorted(regions.items(), key=lambda x: -x[1]):
            region_table.add_row(code, str(count))
        console.print(region_table)


@app.command()
def estimate(
    name: str = NAME,
    identifier: str = IDENTIFIER,
    phone: str = PHONE,
    region: str = REGION,
    group: str = GROUP,
    subregion: str = SUBREGION,
    organization: str = ORGANIZATION,
    partial_id: str = PARTIAL_ID,
    partial_phone: str = PARTIAL_PHONE,
    offline: bool = typer.Option(False, "--offline", help="Use cached statistics only"),
):
    """Validate criteria and estimate search confidence without searching.

    Statistics come from SMART_SEARCH_ENDPOINT when set (with the persisted
    cache as fallback), otherwise from the local index.
    """
    config = get_config()
    from .client import ConfidenceEstimator, confidence_level, confidence_text
    from .statistics.aggregator import StatisticsAggregator
    from .sources.sqlite_store import SQLiteRecordSource

    estimator = ConfidenceEstimator(config["search"])

    if config["endpoint"] or offline:
        from .client import SearchApiClient, StatisticsCache, StatisticsLoader

        async def run():
            async with SearchApiClient(
                config["endpoint"] or "http://localhost",
                api_id=config["api_id"],
                api_key=config["api_key"],
                config=config["search"],
            ) as api_client:
                loader = StatisticsLoader(
                    api_client,
                    StatisticsCache(config["cache_path"], config["search"].client_cache_ttl_hours),
                    estimator,
                )
                return await loader.load(online=not offline)

        result = asyncio.run(run())
        style = "yellow" if result.from_cache or not result.loaded else "dim"
        console.print(f"[{style}]{result.describe()}[/{style}]")
    else:
        aggregator = StatisticsAggregator(SQLiteRecordSource(config["db_path"]), config["search"])
        estimator.set_statistics(aggregator.current())

    criteria = _criteria(
        name=name,
        identifier=identifier,
        phone=phone,
        region_code=region,
        group=group,
        subregion=subregion,
        organization=organization,
        partial_identifier=partial_id,
        partial_phone=partial_phone,
    )
    validation = estimator.validate_criteria(criteria)
    confidence = estimator.estimate_confidence(criteria)
    expected = estimator.expected_results(criteria)

    color = {"high": "green", "medium": "yellow", "low": "red"}[confidence_level(confidence)]
    lines = [
        f"[bold]Validation:[/bold] {validation.category.value} - {validation.message}",
        f"[bold]Can search:[/bold] {'yes' if validation.can_search else 'no'}",
        f"[bold]Confidence:[/bold] [{color}]{confidence}% ({confidence_text(confidence)})[/{color}]",
    ]
    if expected is not None:
        lines.append(f"[bold]Expected results:[/bold] ~{expected:.0f}")
    console.print(Panel("\n".join(lines), title="Search Estimate"))


if __name__ == "__main__":
    app()
