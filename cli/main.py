#!/usr/bin/env python3
"""
Realty Crawler CLI.

Usage:
    realty-crawler providers
    realty-crawler parse saved_page.html --provider wn-immo
    realty-crawler crawl "http://www.wn-immo.de/suche?typ=miete" --max-pages 3
"""

import json
import os
import signal
import subprocess
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from realty_crawler.crawlers import find_crawler, get_all_crawlers, get_crawler
from realty_crawler.exceptions import ParseError

PROJECT_ROOT = Path(__file__).parent.parent.absolute()

app = typer.Typer(
    name="realty-crawler",
    help="Listing crawler with new-ad notifications",
    add_completion=False,
)
console = Console()

# Running scrapy subprocesses, terminated on Ctrl+C
_running_processes: list[subprocess.Popen] = []


def _cleanup_subprocesses(signum, frame):
    """Gracefully terminate running subprocesses on Ctrl+C."""
    for proc in _running_processes:
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()
    _running_processes.clear()
    raise KeyboardInterrupt


# Pipelines for --dry-run: in-run dedup only, no seen store, no sinks
DRY_RUN_PIPELINES = {'realty_crawler.pipelines.DuplicateFilterPipeline': 200}


def build_crawl_command(url: str, max_pages: Optional[int] = None, dry_run: bool = False) -> list[str]:
    """Build the scrapy command line for one search url."""
    cmd = ["scrapy", "crawl", "listings", "-a", f"url={url}"]
    if max_pages:
        cmd.extend(["-a", f"max_pages={max_pages}"])
    if dry_run:
        # dict-valued -s settings are parsed as JSON
        cmd.extend(["-s", f"ITEM_PIPELINES={json.dumps(DRY_RUN_PIPELINES)}"])
    return cmd


@app.command()
def providers():
    """List registered provider crawlers."""
    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Hosts")
    table.add_column("First page", justify="right")

    for crawler in get_all_crawlers():
        table.add_row(crawler.name, ", ".join(crawler.hosts), str(crawler.get_first_page_index()))

    console.print(table)


@app.command()
def parse(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Saved search result page"),
    provider: Optional[str] = typer.Option(None, "--provider", "-p", help="Provider name"),
    url: Optional[str] = typer.Option(None, "--url", "-u", help="Page url, used to pick the provider"),
    encoding: str = typer.Option("utf-8", "--encoding", help="Encoding of the saved page"),
):
    """Parse a saved result page offline and print the ads."""
    if provider:
        crawler = get_crawler(provider)
    elif url:
        crawler = find_crawler(url)
    else:
        console.print("[red]Error:[/red] Must specify --provider or --url")
        raise typer.Exit(1)

    if crawler is None:
        console.print(f"[red]Error:[/red] No crawler for {provider or url}")
        raise typer.Exit(1)

    raw = file.read_text(encoding=encoding, errors="replace")
    try:
        ads = crawler.parse_page(raw)
    except ParseError as e:
        console.print(f"[red]Parse failed:[/red] {e}")
        raise typer.Exit(1)

    table = Table(title=f"{len(ads)} ads ({crawler.name})")
    table.add_column("Location", style="cyan")
    table.add_column("Space")
    table.add_column("Rooms", justify="right")
    table.add_column("Price", style="green")
    table.add_column("Available")
    table.add_column("Id", overflow="fold")

    for ad in ads:
        p = {key.name: value for key, value in ad.properties.items()}
        table.add_row(
            p.get("LOCATION", ""),
            p.get("SPACE", ""),
            p.get("ROOMS", ""),
            p.get("PRICE", ""),
            p.get("AVAILABLE_FROM", ""),
            ad.id,
        )

    console.print(table)


@app.command()
def crawl(
    url: str = typer.Argument(..., help="Search url of a supported provider"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Max result pages"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Don't mark ads seen or send notifications"),
    timeout_mins: int = typer.Option(30, "--timeout", help="Minutes before the crawl is killed"),
):
    """Crawl a search url and notify about new ads."""
    crawler = find_crawler(url)
    if crawler is None:
        console.print(f"[red]Error:[/red] No crawler supports {url}")
        raise typer.Exit(1)

    cmd = build_crawl_command(url, max_pages, dry_run)

    env = os.environ.copy()
    env["SCRAPY_SETTINGS_MODULE"] = "realty_crawler.settings"
    env["PYTHONPATH"] = str(PROJECT_ROOT) + os.pathsep + env.get("PYTHONPATH", "")

    log_dir = PROJECT_ROOT / "logs"
    log_dir.mkdir(exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"{crawler.name}_{timestamp}{'_dryrun' if dry_run else ''}.log"

    console.print(f"[cyan]Crawling[/cyan] {url} with {crawler.name} (log: {log_file.name})")

    signal.signal(signal.SIGINT, _cleanup_subprocesses)
    with open(log_file, "w") as f:
        proc = subprocess.Popen(cmd, cwd=PROJECT_ROOT, env=env, stdout=f, stderr=subprocess.STDOUT)
        _running_processes.append(proc)
        try:
            returncode = proc.wait(timeout=timeout_mins * 60)
        except subprocess.TimeoutExpired:
            proc.terminate()
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()
            console.print(f"[red]FAIL[/red] Timeout after {timeout_mins} min")
            raise typer.Exit(1)
        finally:
            if proc in _running_processes:
                _running_processes.remove(proc)

    if returncode != 0:
        console.print(f"[red]FAIL[/red] scrapy exited with {returncode}. Log: {log_file}")
        raise typer.Exit(returncode)

    console.print(f"[green]OK[/green] Log: {log_file}")


if __name__ == "__main__":
    sys.exit(app())
