"""Typer CLI for the brand site audit engine.

Commands: ``crawl`` (audit a site without persisting), ``report`` (generate
a persisted brand report), ``status`` (latest report and running state) and
``init-db``.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

console = Console()
app = typer.Typer(
    name="brand-audit",
    help="Brand site audit -- technical SEO + LLMO crawl and AI-assisted brand reports.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _get_app(config: str):
    from brand_audit.app import BrandAuditApp
    return BrandAuditApp(config_path=config)


def _score_style(score: Optional[int]) -> str:
    if score is None:
        return "-"
    colour = "green" if score >= 70 else "yellow" if score >= 40 else "red"
    return f"[{colour}]{score}[/{colour}]"


def _write_json(data: Any, output: str) -> None:
    Path(output).write_text(json.dumps(data, indent=2, default=str), encoding="utf-8")
    console.print("Saved to: [bold]" + output + "[/bold]")


def _print_crawl(result: dict) -> None:
    table = Table(title="Page Audits", show_header=True, header_style="bold magenta")
    table.add_column("URL", style="cyan", max_width=60)
    table.add_column("SEO", justify="right")
    table.add_column("LLMO", justify="right")
    table.add_column("Schema", max_width=30)
    table.add_column("GSC clicks", justify="right")

    for page in result["pages"]:
        if page.get("fetch_error"):
            table.add_row(page["url"], "[red]✘[/red]", "[red]✘[/red]", page["fetch_error"], "-")
            continue
        gsc = page.get("gsc_data")
        table.add_row(
            page["url"],
            _score_style(page["overall_score"]),
            _score_style(page["llmo"]["score"]),
            ", ".join(sorted(set(page["schema"]["types"]))) or "-",
            str(gsc["clicks"]) if gsc else "-",
        )
    console.print(table)

    agg = result["aggregated"]
    summary = Table(title="Site Aggregates", show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value")
    summary.add_row("Sitemap", result["sitemap_url"] or "(none, homepage only)")
    summary.add_row("Pages discovered / audited", f"{result['pages_discovered']} / {result['pages_audited']}")
    summary.add_row("Average SEO score", _score_style(agg["avg_seo_score"]))
    summary.add_row("Average LLMO score", _score_style(agg["avg_llmo_score"]))
    summary.add_row("Pages with FAQ schema", str(agg["pages_with_faq_schema"]))
    summary.add_row("Pages with Article schema", str(agg["pages_with_article_schema"]))
    summary.add_row("Pages with LLMO below 40", str(agg["pages_without_llmo"]))
    console.print(summary)

    for label, key in (("Top SEO issues", "top_seo_issues"), ("Top LLMO issues", "top_llmo_issues")):
        if agg[key]:
            console.print(f"\n[bold]{label}[/bold]")
            for item in agg[key]:
                console.print(f"  {item['count']:>3}  {item['issue']}")


# ------------------------------------------------------------------
# crawl
# ------------------------------------------------------------------
@app.command()
def crawl(
    url: str = typer.Argument(..., help="Website root URL (e.g. https://example.com)."),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", "-n", help="Maximum pages to audit."),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the full result as JSON."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Crawl a site and score every page for technical SEO and LLMO."""
    _setup_logging(verbose)
    from brand_audit.utils.validators import ensure_scheme, validate_url

    url = ensure_scheme(url)
    ok, message = validate_url(url)
    if not ok:
        console.print("[red]✘[/red] " + message)
        raise typer.Exit(code=1)

    console.print(Panel(f"[bold cyan]Site Audit: {url}[/bold cyan]"))
    brand_app = _get_app(config)
    brand_app.initialize(init_database=False)

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description="Discovering and auditing pages...", total=None)
        result = _run_async(brand_app.crawl(url, max_pages=max_pages))

    _print_crawl(result)
    if output:
        _write_json(result, output)
    console.print("[green]✔[/green] Crawl complete.")


# ------------------------------------------------------------------
# report
# ------------------------------------------------------------------
@app.command()
def report(
    config_id: str = typer.Argument(..., help="Brand config id."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Generate a brand report (skipped if one is already running)."""
    _setup_logging(verbose)
    from brand_audit.modules.reporting.brand_report_engine import BrandConfigError

    console.print(Panel(f"[bold cyan]Brand Report: {config_id}[/bold cyan]"))
    engine = _get_app(config).get_report_engine()

    try:
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
            progress.add_task(description="Crawling site and generating report...", total=None)
            outcome = _run_async(engine.request_report(config_id))
    except BrandConfigError as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)
    except Exception as exc:
        console.print("[red]✘[/red] Report failed: " + str(exc))
        raise typer.Exit(code=1)

    if outcome["status"] == "already_running":
        console.print(f"[yellow]○[/yellow] Report {outcome['report_id']} is already running.")
        return
    latest = _run_async(engine.get_latest(config_id))
    if latest:
        _print_report_summary(latest)
    console.print(f"[green]✔[/green] Report {outcome['report_id']} completed.")


def _print_report_summary(data: dict) -> None:
    table = Table(title=f"Report {data['id']}", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")
    table.add_row("Overall", _score_style(data.get("overall_score")))
    table.add_row("Technical SEO", _score_style(data.get("seo_score")))
    table.add_row("LLMO", _score_style(data.get("llmo_score")))
    table.add_row("Brand mentions", _score_style(data.get("geo_score")))
    table.add_row("Search presence", _score_style(data.get("serp_score")))
    table.add_row("Pages audited", str(data.get("pages_audited") or 0))
    table.add_row("Generated at", str(data.get("generated_at") or "-"))
    console.print(table)

    tips = (data.get("ai_tips") or {}).get("tips") or []
    if tips:
        tips_table = Table(title="AI Tips", show_header=True, header_style="bold magenta")
        tips_table.add_column("Priority", min_width=8)
        tips_table.add_column("Category", style="cyan")
        tips_table.add_column("Tip", max_width=70)
        for tip in tips:
            tips_table.add_row(tip["priority"], tip["category"], tip["title"])
        console.print(tips_table)
        console.print("\n[bold]" + data["ai_tips"].get("summary_insight", "") + "[/bold]")


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status(
    config_id: str = typer.Argument(..., help="Brand config id."),
    output: Optional[str] = typer.Option(None, "--output", "-o", help="Write the latest report as JSON."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show the latest completed report and whether a new one is running."""
    _setup_logging(verbose)
    engine = _get_app(config).get_report_engine()
    state = _run_async(engine.get_status(config_id))

    if state["is_running"]:
        console.print(f"[yellow]○[/yellow] Report {state['running_report_id']} is running.")
    if state["report"] is None:
        console.print("No completed report for " + config_id + ".")
        return
    _print_report_summary(state["report"])
    if output:
        _write_json(state["report"], output)


# ------------------------------------------------------------------
# init-db
# ------------------------------------------------------------------
@app.command("init-db")
def init_db_command(
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Settings file."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Create the database tables."""
    _setup_logging(verbose)
    _get_app(config).initialize()
    console.print("[green]✔[/green] Database ready.")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
