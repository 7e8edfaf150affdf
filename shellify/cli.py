"""shellify CLI: the main entry point for managing shell module registries."""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

import click
from rich.console import Console
from rich.table import Table

from shellify import __version__
from shellify.config import ShellifyConfig, load_config
from shellify.errors import ShellifyError
from shellify.registry.client import RegistryClient
from shellify.registry.url_validator import URLValidator
from shellify.utils.git_ops import GitBackend
from shellify.utils.log import console_logger

console = Console()

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class AppContext:
    """Objects shared by all commands of one invocation."""

    config: ShellifyConfig
    logger: logging.Logger
    verbose: bool = False
    git_backend: Optional[GitBackend] = None
    url_validator: Optional[URLValidator] = None
    _client: Optional[RegistryClient] = field(default=None, repr=False)

    def client(self) -> RegistryClient:
        if self._client is None:
            self._client = RegistryClient(
                self.config,
                git_backend=self.git_backend,
                url_validator=self.url_validator,
                logger=self.logger,
            )
        return self._client


pass_app = click.make_pass_decorator(AppContext)


def handle_errors(command: Callable) -> Callable:
    """Report ``ShellifyError`` to the user and exit with status 1."""

    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except ShellifyError as e:
            ctx = click.get_current_context()
            app = ctx.find_object(AppContext)
            print_error(e, verbose=bool(app and app.verbose))
            ctx.exit(1)

    return wrapper


def print_error(error: ShellifyError, verbose: bool) -> None:
    console.print(f"[red]Error:[/] {error.message}")
    if not verbose:
        return
    if error.cause is not None:
        console.print(f"  Cause: {error.cause}")
    if error.cleanup_error is not None:
        console.print(f"  Cleanup also failed: {error.cleanup_error}")
    if error.details:
        console.print("  Context:")
        for key, value in error.details.items():
            if value not in (None, ""):
                console.print(f"    {key}: {value}")


def _format_time(value) -> str:
    return value.astimezone().strftime(TIME_FORMAT) if value else "never"


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Show debug output and error details")
@click.option(
    "--home",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="State directory (default: $SHELLIFY_HOME or ~/.shellify)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, home: Optional[Path]):
    """shellify: discover and manage shell module registries.

    A registry is a git repository publishing an index.json of shell
    modules (aliases, functions, exports, scripts, config).
    """
    if ctx.obj is not None:
        ctx.obj.verbose = ctx.obj.verbose or verbose
        return
    try:
        config = load_config(home_dir=home)
    except ShellifyError as e:
        print_error(e, verbose)
        ctx.exit(1)
    ctx.obj = AppContext(config=config, logger=console_logger(verbose), verbose=verbose)


# ── Registry ─────────────────────────────────────────────────────────


@main.group()
def registry():
    """Manage shellify registries."""


@registry.command()
@click.argument("url")
@click.argument("name", required=False)
@pass_app
@handle_errors
def add(app: AppContext, url: str, name: Optional[str]):
    """Add a registry from a git repository URL.

    The URL is checked, the repository cloned and its structure validated
    before it is registered. NAME defaults to the repository name.

    \b
    Examples:
      shellify registry add https://github.com/user/shellify-registry
      shellify registry add https://github.com/user/registry my-registry
      shellify registry add git@github.com:user/registry.git
    """
    console.print(f"\n[bold blue]shellify[/]: Adding registry: {url}\n")

    entry = app.client().add_registry(url, name)

    console.print(f"[green]Registry '{entry.name}' has been added successfully.[/]")
    console.print(f"URL: {entry.url}")


@registry.command(name="list")
@pass_app
@handle_errors
def list_registries(app: AppContext):
    """List all registries."""
    entries = app.client().list_registries()

    if not entries:
        console.print("[yellow]No registries configured.[/]")
        console.print("Use 'shellify registry add <url>' to add a registry")
        return

    table = Table(title=f"Registries ({len(entries)})")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Added")
    table.add_column("Last synced")

    for entry in entries:
        table.add_row(entry.name, entry.url, _format_time(entry.added_at), _format_time(entry.last_sync))

    console.print(table)


@registry.command()
@click.argument("identifier")
@pass_app
@handle_errors
def remove(app: AppContext, identifier: str):
    """Remove a registry by name or URL."""
    result = app.client().remove_registry(identifier)

    if result.cleanup_error is not None:
        console.print(f"[yellow]Warning:[/] cached copy could not be removed: {result.cleanup_error.message}")
    console.print(f"[green]Registry '{result.registry.name}' has been removed successfully.[/]")


@registry.command()
@click.argument("name", required=False)
@click.option("--all", "sync_all", is_flag=True, help="Sync every registry")
@pass_app
@handle_errors
def sync(app: AppContext, name: Optional[str], sync_all: bool):
    """Re-fetch a registry and validate it again."""
    if bool(name) == sync_all:
        raise click.UsageError("Give a registry NAME or --all, not both.")

    client = app.client()
    if name:
        entry = client.sync_registry(name)
        console.print(f"  [green]v[/] {entry.name} synced at {_format_time(entry.last_sync)}")
        return

    results = client.sync_all_registries()
    if not results:
        console.print("[yellow]No registries configured.[/]")
        return

    failed = 0
    for registry_name, outcome in results.items():
        if isinstance(outcome, ShellifyError):
            failed += 1
            console.print(f"  [red]x[/] {registry_name}: {outcome.message}")
        else:
            console.print(f"  [green]v[/] {registry_name}")
    if failed:
        click.get_current_context().exit(1)


@registry.command()
@click.argument("identifier")
@pass_app
@handle_errors
def info(app: AppContext, identifier: str):
    """Show the local clone of a registry."""
    client = app.client()
    entry = client.get_registry(identifier)
    repo = client.get_repository_info(identifier)

    table = Table(show_header=False, title=f"Registry: {entry.name}")
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("URL", entry.url)
    table.add_row("Added", _format_time(entry.added_at))
    table.add_row("Last synced", _format_time(entry.last_sync))
    table.add_row("Local path", str(repo.path))
    table.add_row("Remote", repo.remote_url or "-")
    table.add_row("Last commit", repo.last_commit_hash[:12] or "-")
    table.add_row("Message", repo.last_commit_message or "-")
    table.add_row("Committed", _format_time(repo.last_commit_time))
    console.print(table)


@registry.command()
@click.argument("target")
@pass_app
@handle_errors
def validate(app: AppContext, target: str):
    """Validate a registry URL, or a local registry directory."""
    from shellify.registry.structure_validator import StructureValidator

    console.print(f"\n[bold blue]shellify[/]: Validating: {target}\n")

    path = Path(target)
    if path.is_dir():
        index = StructureValidator(path, logger=app.logger).validate_structure()
        console.print("  [green]v[/] Structure validation passed")
        console.print(f"    {index.name} v{index.version}, {len(index.modules)} module(s)")
        return

    validator = app.url_validator or URLValidator(timeout=app.config.http_timeout, logger=app.logger)
    validator.validate_url_format(target)
    console.print("  [green]v[/] URL format is valid")
    validator.check_accessibility(target)
    console.print("  [green]v[/] Repository is reachable")


# ── Modules ──────────────────────────────────────────────────────────


@main.group()
def module():
    """Discover shell modules from configured registries."""


def _module_table(title: str, modules) -> Table:
    table = Table(title=title)
    table.add_column("Name", style="cyan")
    table.add_column("Version")
    table.add_column("Shell")
    table.add_column("Registry", style="dim")
    table.add_column("Description")
    for info in modules:
        table.add_row(
            info.name,
            info.module.version or "-",
            info.shell or "any",
            info.registry_name,
            info.description[:60],
        )
    return table


@module.command(name="list")
@click.option("--registry", "-r", "registry_name", default=None, help="Only this registry")
@click.option("--shell", "-s", default=None, help="Only modules usable from this shell")
@pass_app
@handle_errors
def list_modules(app: AppContext, registry_name: Optional[str], shell: Optional[str]):
    """List available modules."""
    from shellify.modules.discovery import ModuleService

    service = ModuleService(app.client(), logger=app.logger)
    if registry_name:
        modules = service.list_modules_by_registry(registry_name)
        if shell:
            modules = [m for m in modules if not m.shell or m.shell.lower() == shell.lower()]
    elif shell:
        modules = service.filter_modules_by_shell(shell)
    else:
        modules = service.list_all_modules()

    if not modules:
        console.print("[yellow]No modules found.[/]")
        return

    console.print(_module_table(f"Modules ({len(modules)})", modules))


@module.command()
@click.argument("query")
@pass_app
@handle_errors
def search(app: AppContext, query: str):
    """Search modules by name or description."""
    from shellify.modules.discovery import ModuleService

    modules = ModuleService(app.client(), logger=app.logger).search_modules(query)

    if not modules:
        console.print("[yellow]No matching modules found.[/]")
        return

    console.print(_module_table(f"Matches for '{query}' ({len(modules)})", modules))


@module.command()
@click.argument("name")
@pass_app
@handle_errors
def show(app: AppContext, name: str):
    """Show details of a module."""
    from shellify.modules.discovery import ModuleService

    found = ModuleService(app.client(), logger=app.logger).get_module_details(name)

    console.print(f"\n[bold cyan]{found.name}[/]")
    console.print(f"  {found.description}")
    console.print(f"  Version:  {found.module.version or '-'}")
    console.print(f"  Shell:    {found.shell or 'any'}")
    console.print(f"  Path:     {found.module.path or '-'}")
    console.print(f"  Registry: {found.registry_name} ({found.registry_url})")


if __name__ == "__main__":
    main()
