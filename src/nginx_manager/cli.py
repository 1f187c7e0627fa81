"""
Click-based CLI for nginx-manager.

IMPORTANT: This module only ORCHESTRATES. It never parses or aggregates.
- Loads settings
- Invokes the site store, log reader and metrics hub
- Formats output
"""

import json
import logging
import queue
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from nginx_manager import __version__
from nginx_manager.config import Settings, load_settings
from nginx_manager.engine.metrics_hub import MetricsHub
from nginx_manager.errors import NginxManagerError
from nginx_manager.model.site import LocationRule, SiteConfig, StorageClass
from nginx_manager.scanner.access_log import AccessLogReader
from nginx_manager.scanner.metrics import MetricsSampler
from nginx_manager.storage.sites import SiteStore

console = Console()

STORAGE_CHOICE = click.Choice(["available", "immediate"], case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="nginx-manager")
@click.option("--config", "-c", type=click.Path(), help="Path to settings YAML file")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """nginx-manager: manage nginx sites and watch their traffic."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = load_settings(config)


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _store(ctx: click.Context) -> SiteStore:
    if "store" not in ctx.obj:
        ctx.obj["store"] = SiteStore.from_settings(_settings(ctx))
    return ctx.obj["store"]


def _reader(ctx: click.Context) -> AccessLogReader:
    if "reader" not in ctx.obj:
        settings = _settings(ctx)
        ctx.obj["reader"] = AccessLogReader(settings.access_log, default_limit=settings.log_read_limit)
    return ctx.obj["reader"]


def _fail(error: Exception) -> None:
    console.print(f"[bold red]Error:[/] {error}")
    sys.exit(1)


# =============================================================================
# SITES
# =============================================================================


@main.group()
def sites() -> None:
    """List, activate and edit site configurations."""
    pass


@sites.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def sites_list(ctx: click.Context, as_json: bool) -> None:
    """List sites from sites-available and conf.d."""
    found = _store(ctx).list_sites()
    if as_json:
        click.echo(json.dumps([site.to_dict() for site in found], indent=2))
        return

    if not found:
        console.print("[dim]No site configurations found.[/]")
        return

    table = Table(title="Sites")
    table.add_column("Server name", style="bold")
    table.add_column("Listen")
    table.add_column("Source")
    table.add_column("Enabled")
    table.add_column("SSL")
    table.add_column("Proxies")
    for site in found:
        proxies = ", ".join(f"{loc.path} → {loc.proxy_target}" for loc in site.locations if loc.proxy_target)
        table.add_row(
            site.server_name,
            site.listen,
            site.storage_class.value,
            "[green]yes[/]" if site.enabled else "[dim]no[/]",
            "yes" if site.ssl else "",
            proxies,
        )
    console.print(table)


@sites.command("show")
@click.argument("name")
@click.pass_context
def sites_show(ctx: click.Context, name: str) -> None:
    """Show one site as nginx would read it."""
    store = _store(ctx)
    try:
        site = store.get(name)
        if site is None:
            _fail(click.ClickException(f"Site {name} not found."))
            return
        text = store.codec.render(site)
    except NginxManagerError as e:
        _fail(e)
        return

    console.print(Panel(text, title=f"{site.server_name} ({site.storage_class.value})", style="cyan"))
    if site.ssl:
        console.print(f"[bold]SSL:[/] {site.ssl.certificate_path} ({' '.join(site.ssl.protocols)})")


@sites.command("enable")
@click.argument("name")
@click.pass_context
def sites_enable(ctx: click.Context, name: str) -> None:
    """Link a staged site into sites-enabled and reload nginx."""
    try:
        _store(ctx).enable(name)
    except NginxManagerError as e:
        _fail(e)
        return
    console.print(f"[bold green]✓ Enabled:[/] {name}")


@sites.command("disable")
@click.argument("name")
@click.pass_context
def sites_disable(ctx: click.Context, name: str) -> None:
    """Remove a site's activation link and reload nginx."""
    try:
        _store(ctx).disable(name)
    except NginxManagerError as e:
        _fail(e)
        return
    console.print(f"[bold green]✓ Disabled:[/] {name}")


@sites.command("create")
@click.argument("name")
@click.option("--listen", "-l", required=True, help="Port or address:port")
@click.option("--root", "-r", default="", help="Document root")
@click.option("--proxy", "-p", "proxies", multiple=True, help="Location proxy as PATH=UPSTREAM (repeatable)")
@click.option("--storage", "-s", type=STORAGE_CHOICE, default="available", help="Target directory")
@click.pass_context
def sites_create(
    ctx: click.Context, name: str, listen: str, root: str, proxies: tuple[str, ...], storage: str
) -> None:
    """Create a new site and reload nginx."""
    storage_class = StorageClass.parse(storage)
    site = SiteConfig(
        server_name=name,
        listen=listen,
        root=root,
        locations=_parse_proxies(proxies),
        storage_class=storage_class,
    )
    try:
        path = _store(ctx).create(site, storage_class)
    except NginxManagerError as e:
        _fail(e)
        return
    console.print(f"[bold green]✓ Created:[/] {path}")


@sites.command("update")
@click.argument("name")
@click.option("--listen", "-l", required=True, help="Port or address:port")
@click.option("--root", "-r", default="", help="Document root")
@click.option("--proxy", "-p", "proxies", multiple=True, help="Location proxy as PATH=UPSTREAM (repeatable)")
@click.option("--storage", "-s", type=STORAGE_CHOICE, default="available", help="Directory the site lives in")
@click.pass_context
def sites_update(
    ctx: click.Context, name: str, listen: str, root: str, proxies: tuple[str, ...], storage: str
) -> None:
    """Replace an existing site's file and reload nginx."""
    storage_class = StorageClass.parse(storage)
    site = SiteConfig(
        server_name=name,
        listen=listen,
        root=root,
        locations=_parse_proxies(proxies),
        storage_class=storage_class,
    )
    try:
        path = _store(ctx).update(name, site, storage_class)
    except NginxManagerError as e:
        _fail(e)
        return
    console.print(f"[bold green]✓ Updated:[/] {path}")


def _parse_proxies(proxies: tuple[str, ...]) -> list[LocationRule]:
    locations = []
    for mapping in proxies:
        path, sep, target = mapping.partition("=")
        if not sep or not path or not target:
            raise click.BadParameter(f"expected PATH=UPSTREAM, got {mapping!r}", param_hint="--proxy")
        locations.append(LocationRule(path=path, proxy_target=target))
    return locations


@sites.command("delete")
@click.argument("name")
@click.option("--storage", "-s", type=STORAGE_CHOICE, default="available", help="Directory the site lives in")
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def sites_delete(ctx: click.Context, name: str, storage: str, yes: bool) -> None:
    """Delete a site file and reload nginx."""
    if not yes:
        click.confirm(f"Delete site {name}?", abort=True)
    try:
        _store(ctx).delete(name, StorageClass.parse(storage))
    except NginxManagerError as e:
        _fail(e)
        return
    console.print(f"[bold green]✓ Deleted:[/] {name}")


@sites.command("tls")
@click.argument("name")
@click.option("--email", "-e", required=True, help="Contact email for the certificate authority")
@click.pass_context
def sites_tls(ctx: click.Context, name: str, email: str) -> None:
    """Issue a certificate for a site with certbot and reload nginx."""
    try:
        with console.status(f"[bold blue]Requesting certificate for {name}...[/]"):
            _store(ctx).generate_tls(name, email)
    except NginxManagerError as e:
        _fail(e)
        return
    console.print(f"[bold green]✓ Certificate installed for:[/] {name}")


# =============================================================================
# TRAFFIC
# =============================================================================


@main.command()
@click.option("--limit", "-n", default=50, show_default=True, help="Number of entries")
@click.pass_context
def logs(ctx: click.Context, limit: int) -> None:
    """Show the newest access log entries."""
    entries = _reader(ctx).read(limit)
    if not entries:
        console.print("[dim]No access log entries.[/]")
        return

    table = Table(title=str(_reader(ctx).log_path))
    table.add_column("Time")
    table.add_column("IP")
    table.add_column("Request")
    table.add_column("Status", justify="right")
    table.add_column("Time (s)", justify="right")
    for entry in entries:
        color = "red" if entry.status_code >= 500 else "yellow" if entry.status_code >= 400 else "green"
        table.add_row(
            entry.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            entry.client_ip,
            f"{entry.method} {entry.path}",
            f"[{color}]{entry.status_code}[/]",
            f"{entry.response_time_ms:.3f}",
        )
    console.print(table)


@main.command()
@click.option("--minutes", "-m", default=60, show_default=True, type=click.IntRange(min=1), help="Window size")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def stats(ctx: click.Context, minutes: int, as_json: bool) -> None:
    """Summarize traffic over the last MINUTES."""
    result = _reader(ctx).read_stats(minutes)
    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    console.print(
        Panel(
            f"Requests/min: [bold]{result.requests_per_minute:.2f}[/]\n"
            f"Avg response: [bold]{result.avg_response_time_ms:.3f}[/]\n"
            f"Requests:     [bold]{result.total_requests}[/]",
            title=f"Traffic, last {minutes} min",
        )
    )

    codes = Table(title="Status codes")
    codes.add_column("Status")
    codes.add_column("Count", justify="right")
    for code, count in result.status_code_counts.items():
        codes.add_row(code, str(count))
    console.print(codes)

    for title, rows in (("Top paths", result.top_paths), ("Top IPs", result.top_ips)):
        table = Table(title=title)
        table.add_column("Value")
        table.add_column("Count", justify="right")
        for value, count in rows:
            table.add_row(value, str(count))
        console.print(table)


@main.command()
@click.option("--count", "-n", default=0, help="Stop after N samples (0 = until Ctrl+C)")
@click.option("--interval", "-i", type=float, default=None, help="Seconds between samples")
@click.pass_context
def watch(ctx: click.Context, count: int, interval: float | None) -> None:
    """Print live nginx metrics."""
    settings = _settings(ctx)
    hub = MetricsHub(
        MetricsSampler.from_settings(settings),
        interval=interval or settings.metrics_interval,
    )
    samples: queue.Queue = queue.Queue()
    subscription = hub.subscribe(samples.put)

    console.print("[dim]time      conns  req/s   cpu%   mem%   in B/s     out B/s[/]")
    received = 0
    try:
        while count <= 0 or received < count:
            sample = samples.get()
            received += 1
            console.print(
                f"{sample.timestamp:%H:%M:%S}  {sample.active_connections:>5}  "
                f"{sample.requests_per_second:>6.1f} {sample.cpu_usage_percent:>6.1f} "
                f"{sample.memory_usage_percent:>6.1f}  {sample.bandwidth_in_bytes_per_sec:>9}  "
                f"{sample.bandwidth_out_bytes_per_sec:>9}"
            )
    except KeyboardInterrupt:
        pass
    finally:
        subscription.unsubscribe()
        hub.close()


@main.command()
@click.option("--host", default="127.0.0.1", help="Bind address (forced to 127.0.0.1)")
@click.option("--port", "-p", default=8765, show_default=True, help="Port to listen on")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the HTTP API."""
    from nginx_manager.web.app import run_server

    run_server(host=host, port=port, settings=_settings(ctx))


if __name__ == "__main__":
    main()
