"""Command-line interface for web-extract."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from web_extract import __version__
from web_extract.config import AppConfig, Credentials, LiveCrawl, ProviderName, RequestOptions
from web_extract.errors import WebExtractError
from web_extract.models import to_wire
from web_extract.service import WebExtractor

app = typer.Typer(
    name="web-extract",
    help="Fetch web pages as clean text and Markdown through Exa, Firecrawl or a local fetcher.",
    rich_markup_mode="rich",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool):
    if value:
        console.print(f"web-extract version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Multi-provider web content extraction."""
    pass


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _load_config(config_path: Optional[Path]) -> AppConfig:
    config = AppConfig.from_toml(config_path) if config_path else AppConfig()
    env = Credentials.from_env()
    # Keys from the config file win over the environment.
    config.credentials = Credentials(
        exa_api_key=config.credentials.exa_api_key or env.exa_api_key,
        firecrawl_api_key=config.credentials.firecrawl_api_key or env.firecrawl_api_key,
    )
    return config


def _parse_choice(enum_cls, value: Optional[str], flag: str):
    if value is None:
        return None
    try:
        return enum_cls(value.lower())
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        console.print(f"[red]Invalid {flag}: {value}. Use one of: {choices}.[/red]")
        raise typer.Exit(1)


def _run(coro, verbose: bool):
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled.[/yellow]")
        raise typer.Exit(130)
    except WebExtractError as e:
        console.print(f"[red]Error ({e.tag}): {e}[/red]")
        if verbose:
            console.print_exception()
        raise typer.Exit(1)


async def _fetch(config: AppConfig, urls: list[str], options: RequestOptions, crawl: bool):
    async with WebExtractor(config) as extractor:
        if len(urls) == 1:
            if crawl:
                return await extractor.crawl_single(urls[0], options)
            return await extractor.fetch_single(urls[0], options)
        if crawl:
            return await extractor.crawl_batch(urls, options)
        return await extractor.fetch_batch(urls, options)


@app.command()
def fetch(
    urls: list[str] = typer.Argument(..., help="One or more URLs to fetch"),
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Preferred provider: 'exa', 'firecrawl' or 'local'",
    ),
    fallback: bool = typer.Option(
        True,
        "--fallback/--no-fallback",
        help="Fall back to other providers when the chosen one is unavailable or rate-limited",
    ),
    markdown: bool = typer.Option(True, "--markdown/--no-markdown", help="Include Markdown"),
    html: bool = typer.Option(False, "--html", help="Include sanitized HTML"),
    max_chars: Optional[int] = typer.Option(
        None,
        "--max-chars",
        min=1,
        help="Truncate text and Markdown to this many characters",
    ),
    livecrawl: Optional[str] = typer.Option(
        None,
        "--livecrawl",
        help="Exa freshness: 'never', 'fallback', 'always' or 'preferred'",
    ),
    max_age: Optional[int] = typer.Option(
        None,
        "--max-age",
        min=0,
        help="Firecrawl cache max age in milliseconds (0 = always fresh)",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="TOML configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """
    Fetch one or more pages and print the result as JSON.

    Examples:

        web-extract fetch https://example.com

        web-extract fetch https://example.com --provider exa --no-fallback

        web-extract fetch https://a.example https://b.example --max-chars 2000
    """
    _setup_logging(verbose)
    options = RequestOptions(
        provider=_parse_choice(ProviderName, provider, "--provider"),
        fallback=fallback,
        markdown=markdown,
        html=html,
        max_chars=max_chars,
        livecrawl=_parse_choice(LiveCrawl, livecrawl, "--livecrawl"),
        max_age=max_age,
    )
    result = _run(_fetch(_load_config(config_path), urls, options, crawl=False), verbose)
    console.print_json(data=to_wire(result))


@app.command()
def crawl(
    urls: list[str] = typer.Argument(..., help="One or more root URLs to crawl"),
    max_subpages: int = typer.Option(
        5,
        "--max-subpages",
        min=0,
        help="Subpages to follow per page (0 = root only)",
    ),
    max_depth: int = typer.Option(1, "--max-depth", min=0, help="Maximum crawl depth"),
    concurrency: int = typer.Option(
        5,
        "--concurrency",
        min=1,
        max=100,
        help="Maximum concurrent subpage fetches per root",
    ),
    same_domain: bool = typer.Option(
        True,
        "--same-domain/--any-domain",
        help="Only follow links on the root's host",
    ),
    subpage_target: Optional[list[str]] = typer.Option(
        None,
        "--subpage-target",
        "-t",
        help="Keyword hint for Exa subpage selection (repeatable)",
    ),
    provider: Optional[str] = typer.Option(
        None,
        "--provider",
        "-p",
        help="Preferred provider: 'exa', 'firecrawl' or 'local'",
    ),
    fallback: bool = typer.Option(
        True,
        "--fallback/--no-fallback",
        help="Fall back to other providers when the chosen one is unavailable or rate-limited",
    ),
    markdown: bool = typer.Option(True, "--markdown/--no-markdown", help="Include Markdown"),
    html: bool = typer.Option(False, "--html", help="Include sanitized HTML"),
    max_chars: Optional[int] = typer.Option(None, "--max-chars", min=1),
    livecrawl: Optional[str] = typer.Option(None, "--livecrawl"),
    max_age: Optional[int] = typer.Option(None, "--max-age", min=0),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="TOML configuration file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """
    Crawl pages and their linked subpages, printing the page tree as JSON.

    Examples:

        web-extract crawl https://docs.example.com --max-subpages 10 --max-depth 2

        web-extract crawl https://example.com --provider exa -t pricing -t docs
    """
    _setup_logging(verbose)
    target = None
    if subpage_target:
        target = subpage_target[0] if len(subpage_target) == 1 else list(subpage_target)
    options = RequestOptions(
        provider=_parse_choice(ProviderName, provider, "--provider"),
        fallback=fallback,
        markdown=markdown,
        html=html,
        max_chars=max_chars,
        livecrawl=_parse_choice(LiveCrawl, livecrawl, "--livecrawl"),
        max_age=max_age,
        max_subpages=max_subpages,
        max_depth=max_depth,
        concurrency=concurrency,
        same_domain_only=same_domain,
        subpage_target=target,
    )
    result = _run(_fetch(_load_config(config_path), urls, options, crawl=True), verbose)
    console.print_json(data=to_wire(result))


@app.command()
def providers(
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="TOML configuration file",
    ),
):
    """List providers and whether they are usable right now."""

    async def _list() -> set[ProviderName]:
        async with WebExtractor(_load_config(config_path)) as extractor:
            return extractor.list_available_providers()

    available = asyncio.run(_list())

    table = Table(title="Providers")
    table.add_column("Name", style="cyan")
    table.add_column("Available", justify="center")
    for name in ProviderName:
        table.add_row(name.value, "Yes" if name in available else "No")

    console.print(table)


if __name__ == "__main__":
    app()
