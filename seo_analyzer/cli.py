"""Typer CLI application for SEO Analyzer.

Commands: ``run`` (full crawl + sitemap audit + report), ``sitemap``
(sitemap expansion only) and ``status`` (configuration check).
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from seo_analyzer.app import ConfigurationError, SEOAnalyzerApp

console = Console()
app = typer.Typer(
    name="seo-analyzer",
    help="SEO Analyzer -- crawl a site, check its sitemap and report SEO issues.",
    add_completion=False,
    no_args_is_help=True,
)


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level and format."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _run_async(coro):
    """Run an async coroutine from synchronous CLI context."""
    return asyncio.run(coro)


def _print_summary(report: dict, title: str = "Results") -> None:
    """Pretty-print the headline numbers of a report using Rich."""
    crawl = report.get("crawl_stats", {})
    sitemap = report.get("sitemap_stats", {})

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("Metric", style="cyan", min_width=30)
    table.add_column("Value", min_width=10)

    rows = [
        ("Pages crawled", crawl.get("total_urls_crawled", 0)),
        ("Static resources", crawl.get("total_static_resources", 0)),
        ("Internal links", crawl.get("total_internal_links", 0)),
        ("External links", crawl.get("total_external_links", 0)),
        ("Broken links", crawl.get("broken_links", 0)),
        ("Pages without title", len(crawl.get("urls_without_title", []))),
        ("Pages without description", len(crawl.get("urls_without_description", []))),
        ("Pages without H1", len(crawl.get("urls_without_h1", []))),
        ("Sitemap found", "yes" if sitemap.get("sitemap_found") else "no"),
        ("URLs in sitemap", sitemap.get("total_urls_in_sitemap", 0)),
        ("Crawled, not in sitemap", len(sitemap.get("urls_not_in_sitemap", []))),
        ("In sitemap, not crawled", len(sitemap.get("urls_in_sitemap_not_crawled", []))),
    ]
    for name, value in rows:
        table.add_row(name, str(value))
    console.print(table)

    issues = report.get("issues", [])
    if issues:
        console.print(f"\n[bold]{len(issues)} issues found[/bold]")
        for issue in issues[:20]:
            console.print("  [yellow]•[/yellow] " + issue)
        if len(issues) > 20:
            console.print(f"  ... and {len(issues) - 20} more (see the report files)")
    elapsed = report.get("elapsed_seconds", 0)
    if elapsed:
        console.print(f"Elapsed: {elapsed}s")


# ------------------------------------------------------------------
# run
# ------------------------------------------------------------------
@app.command()
def run(
    url: str = typer.Argument(..., help="Start URL (e.g. https://example.com/)."),
    max_depth: int = typer.Argument(10, min=0, help="Maximum crawl depth."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", "-o", help="Directory for report files."),
    no_ai: bool = typer.Option(False, "--no-ai", help="Skip AI meta suggestions and content analysis."),
    no_pdf: bool = typer.Option(False, "--no-pdf", help="Do not render the PDF report."),
    concurrency: Optional[int] = typer.Option(None, "--concurrency", "-n", min=1, help="Pages fetched in parallel."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Crawl a site, reconcile it with its sitemap and write the SEO report."""
    _setup_logging(verbose)
    seo_app = SEOAnalyzerApp(config_path=config)
    try:
        analyzer = seo_app.create_analyzer(
            url, max_depth=max_depth, use_ai=not no_ai, concurrency=concurrency,
        )
    except ConfigurationError as exc:
        console.print("[red]✘ Configuration error:[/red] " + str(exc))
        raise typer.Exit(code=1)

    report_cfg = seo_app.config.get("report", {})
    target_dir = output_dir or seo_app.config.get("app", {}).get("output_dir", ".")
    files = {
        "json": report_cfg.get("json_file", "seo-report.json"),
        "html": report_cfg.get("html_file", "seo-report.html"),
        "pdf": report_cfg.get("pdf_file", "seo-report.pdf"),
    }
    render_pdf = bool(report_cfg.get("pdf", True)) and not no_pdf

    console.print(Panel(f"[bold cyan]SEO Analysis: {url} (depth {max_depth})[/bold cyan]"))

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description="Crawling and analysing...", total=None)

        async def _run():
            report = await analyzer.analyze()
            written = await analyzer.export_reports(report, target_dir, files=files, pdf=render_pdf)
            return report, written

        try:
            report, written = _run_async(_run())
        except Exception as exc:
            logging.getLogger(__name__).exception("Analysis failed")
            console.print("[red]✘ Analysis failed:[/red] " + str(exc))
            raise typer.Exit(code=1)

    _print_summary(report, title="SEO Analysis: " + url)
    for fmt, path in written.items():
        console.print(f"{fmt.upper()} report: [bold]{path}[/bold]")
    usage = seo_app.get_usage_summary()
    if usage.get("total_requests"):
        console.print(
            f"AI requests: {usage['total_requests']} "
            f"(cache hits: {usage.get('cache_hits', 0)}, cost: ${usage.get('total_cost_usd', 0)})"
        )
    console.print("[green]✔[/green] Analysis complete.")


# ------------------------------------------------------------------
# sitemap
# ------------------------------------------------------------------
@app.command()
def sitemap(
    url: str = typer.Argument(..., help="Any URL of the site; /sitemap.xml is read from its origin."),
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Expand the site's sitemap and show how many URLs it declares."""
    _setup_logging(verbose)
    from seo_analyzer.integrations.page_fetcher import PageFetcher
    from seo_analyzer.modules.site_audit import SitemapReconciler
    from seo_analyzer.modules.site_audit.url_classifier import base_url

    try:
        origin = base_url(url)
    except ValueError as exc:
        console.print("[red]✘[/red] " + str(exc))
        raise typer.Exit(code=1)

    seo_app = SEOAnalyzerApp(config_path=config)
    try:
        seo_app.initialize()
    except ConfigurationError as exc:
        console.print("[red]✘ Configuration error:[/red] " + str(exc))
        raise typer.Exit(code=1)
    crawler_cfg = seo_app.config.get("crawler", {})
    max_index_depth = seo_app.config.get("sitemap", {}).get("max_index_depth", 5)

    console.print(Panel("[bold cyan]Sitemap: " + origin + "/sitemap.xml[/bold cyan]"))

    with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
        progress.add_task(description="Expanding sitemap...", total=None)

        async def _run():
            async with PageFetcher(
                timeout=crawler_cfg.get("request_timeout", 10),
                max_redirects=crawler_cfg.get("max_redirects", 5),
                user_agent=crawler_cfg.get("user_agent", "SEOAnalyzer/1.0"),
            ) as fetcher:
                reconciler = SitemapReconciler(fetcher, max_index_depth=max_index_depth)
                return await reconciler.collect(origin)

        state = _run_async(_run())

    if not state.found:
        console.print("[yellow]⚠[/yellow] No usable sitemap found.")
    table = Table(title="Sitemaps", show_header=True, header_style="bold magenta")
    table.add_column("Sitemap", style="cyan", min_width=40)
    for sitemap_url in state.processed_sitemaps:
        table.add_row(sitemap_url)
    console.print(table)
    for error in state.errors:
        console.print("[red]✘[/red] " + error)
    console.print("\nFound [bold]" + str(len(state.sitemap_urls)) + "[/bold] URLs.")


# ------------------------------------------------------------------
# status
# ------------------------------------------------------------------
@app.command()
def status(
    config: str = typer.Option("config/settings.yaml", "--config", "-c", help="Path to settings.yaml."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Show whether configuration and AI credentials are in place."""
    _setup_logging(verbose)
    console.print(Panel("[bold cyan]System Status[/bold cyan]"))

    table = Table(title="Component Status", show_header=True, header_style="bold magenta")
    table.add_column("Component", style="cyan", min_width=25)
    table.add_column("Status", min_width=10)
    table.add_column("Details", max_width=50)

    seo_app = SEOAnalyzerApp(config_path=config)
    try:
        seo_app.initialize()
        if Path(config).exists():
            table.add_row("Configuration", "[green]✔ OK[/green]", config + " loaded")
        else:
            table.add_row("Configuration", "[yellow]⚠ Missing[/yellow]", config + " not found; defaults in use")
    except ConfigurationError as exc:
        table.add_row("Configuration", "[red]✘ Error[/red]", str(exc)[:50])

    if Path(".env").exists():
        table.add_row(".env", "[green]✔ OK[/green]", ".env found")
    else:
        table.add_row(".env", "[yellow]⚠ Missing[/yellow]", "Using process environment only")

    providers = [name for name, ok in seo_app.credentials_status().items() if ok]
    if providers:
        table.add_row("API Keys", "[green]✔ OK[/green]", ", ".join(providers))
    else:
        table.add_row("API Keys", "[red]✘ Missing[/red]", "Set OPENAI_API_KEY or GEMINI_API_KEY")

    console.print(table)
    if not providers:
        console.print("Run with [bold]--no-ai[/bold] to analyse without AI suggestions.")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
