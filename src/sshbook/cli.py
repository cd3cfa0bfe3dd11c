"""sshbook CLI."""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import click
import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from sshbook.backup import BackupManager
from sshbook.codec import decode_document, encode_document
from sshbook.config import AppConfig, Environment, get_config_template, load_config
from sshbook.errors import SshbookError, StoreLoadError
from sshbook.merge import AddOutcome, HostSearch
from sshbook.provision import HostProvisioner
from sshbook.store import ConfigStore
from sshbook.sync import GitConfig, GitSync
from sshbook.types import HostRecord

app = typer.Typer(help="sshbook - personal SSH host configuration manager")
console = Console()


def setup_logging(verbose: bool = False):
    """Configure logging with rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@dataclass
class AppState:
    env: Environment
    config: AppConfig


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    config_dir: Path | None = typer.Option(
        None, "--config-dir", envvar="SSHBOOK_CONFIG_DIR", help="Config directory (default ~/.sshbook)"
    ),
):
    """Manage SSH hosts in JSON files and export them to your SSH config."""
    setup_logging(verbose)
    env = Environment.from_home(Path.home(), config_dir)
    try:
        config = load_config(env)
    except (ValidationError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/red] Invalid config file {env.config_file}:\n{e}")
        raise typer.Exit(1)
    ctx.obj = AppState(env=env, config=config)


@contextmanager
def fatal_errors():
    """Turn sshbook errors into an error message and exit code 1."""
    try:
        yield
    except SshbookError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def get_backups(state: AppState) -> BackupManager:
    backup = state.config.backup
    return BackupManager(state.config.backup_dir(state.env), keep=backup.keep, enabled=backup.enabled)


def run_sync(state: AppState) -> None:
    """Sync the config directory if a sync URL is configured."""
    paths = state.config.config_paths(state.env)
    synced = ()
    if paths and paths[0].parent == state.env.config_dir:
        synced = (paths[0].name,)

    git = GitSync(
        GitConfig(
            repo_path=state.env.config_dir,
            url=state.config.sync.url,
            remote=state.config.sync.remote,
            branch=state.config.sync.branch,
            synced_files=synced,
        )
    )
    if git.enabled:
        console.print("Syncing...")
        git.sync()


def select_path(paths: list[Path], prompt: str) -> Path:
    """Ask the user to pick one of ``paths``."""
    if not paths:
        console.print("[red]Error:[/red] No JSON config paths configured")
        raise typer.Exit(1)
    if len(paths) == 1:
        return paths[0]
    for i, path in enumerate(paths, start=1):
        console.print(f"  {i}. {path}")
    choice = typer.prompt(prompt, default=1, type=click.IntRange(1, len(paths)))
    return paths[choice - 1]


def export_ssh(state: AppState, sources: list[Path] | None = None, target: Path | None = None) -> None:
    """Export the JSON config files to the SSH config file."""
    sources = sources or state.config.config_paths(state.env)
    target = target or state.config.ssh_path(state.env)

    get_backups(state).backup(target)

    store = ConfigStore()
    store.read_json(sources)
    store.write_ssh(target)


def format_connection(host: HostRecord) -> str:
    text = host.ssh.get("user", "")
    if host.hostname:
        text += f"@{host.hostname}"
    if host.port:
        text += f":{host.port}"
    return text


def print_hosts(hosts: dict[str, HostRecord]) -> None:
    table = Table()
    table.add_column("Alias")
    table.add_column("Connection")
    table.add_column("Key")
    for key, host in hosts.items():
        table.add_row(host.pssh.alias or key, format_connection(host), key)
    console.print(table)


@app.command()
def init(ctx: typer.Context):
    """Write a default config file."""
    state: AppState = ctx.obj
    config_file = state.env.config_file

    if config_file.exists():
        console.print(f"[yellow]Warning:[/yellow] {config_file} already exists.")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit(0)

    state.env.config_dir.mkdir(parents=True, exist_ok=True)
    config_file.write_text(get_config_template())
    console.print("[green]Initialized sshbook.[/green]")
    console.print(f"  Config: {config_file}")


@app.command()
def add(
    ctx: typer.Context,
    target: Path | None = typer.Option(None, "--target", "-t", help="JSON file to add host to"),
    hostname: str | None = typer.Option(None, "--hostname", "-H", help="Hostname - domain or IP"),
    user: str | None = typer.Option(None, "--user", "-u", help="Username"),
    alias: str | None = typer.Option(None, "--alias", "-a", help="Alias"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port"),
    init_after: bool = typer.Option(True, "--init/--no-init", help="Initialize the host afterwards"),
):
    """Add a new SSH host - interactive, or specify options."""
    state: AppState = ctx.obj

    with fatal_errors():
        run_sync(state)

        console.rule("Adding SSH host")
        if target is None:
            target = select_path(state.config.config_paths(state.env), "Config file")

        store = ConfigStore()
        store.read_json(target)

        if hostname is None:
            hostname = typer.prompt("HostName (URL/IP)")
        else:
            console.print(f"HostName (URL/IP): {hostname}")
        clean_hostname = store.clean_hostname(hostname)
        if clean_hostname != hostname:
            hostname = clean_hostname
            console.print(f" ({hostname})")

        if user is None:
            existing = store.find(HostSearch(hostname=hostname))
            if existing.hostname:
                users = ", ".join(existing.hostname)
                console.print(f"NOTE: existing users configured for this hostname: ({users})")
            user = typer.prompt("User")
        else:
            console.print(f"User: {user}")

        if alias is None:
            alias = typer.prompt("Alias", default=store.auto_alias(user))
        else:
            console.print(f"Alias: {alias}")

        if port is None:
            port = typer.prompt("Port", default=22, type=int)
        else:
            console.print(f"Port: {port}")

        console.print(f"- adding host to {target}...")
        host = HostRecord(ssh={"user": user, "hostname": hostname, "port": str(port)})
        result = store.add(alias, host)

        if not result.success:
            console.print_json(json.dumps(result.host.to_dict()))
            console.print(f"[red]Error:[/red] Unable to add host - conflicts with '{result.alias}' in {target}")
            raise typer.Exit(1)
        if result.outcome == AddOutcome.UNCHANGED:
            console.print("Host is already configured - nothing to add.")
        else:
            alias = result.alias

        get_backups(state).backup(target)
        store.clean()
        store.write_json(target)

        export_ssh(state)
        run_sync(state)

    if init_after:
        init_host(ctx, alias, copy_key=None, team_keys=None, team_config=target, cli=None)

    console.print("[green]Done![/green]")


@app.command()
def clean(
    ctx: typer.Context,
    paths: list[Path] | None = typer.Argument(None, help="JSON file(s) to clean - defaults to json_config_paths"),
):
    """Clean JSON config files."""
    state: AppState = ctx.obj
    paths = paths or state.config.config_paths(state.env)

    with fatal_errors():
        get_backups(state).backup(*paths)
        for path in paths:
            console.print(f"Cleaning '{path}'")
            store = ConfigStore()
            store.read_json(path)
            if not store.clean():
                console.print(f"[yellow]Warning:[/yellow] {path} has problems that block export.")
            store.write_json(path)

    console.print("Clean complete")


@app.command()
def export(
    ctx: typer.Context,
    sources: list[Path] | None = typer.Option(None, "--source", "-s", help="Source JSON files - defaults to json_config_paths"),
    target: Path | None = typer.Option(None, "--target", "-t", help="Target SSH config file - defaults to ssh_config_path"),
):
    """Export JSON config to SSH config file."""
    with fatal_errors():
        export_ssh(ctx.obj, sources, target)
    console.print("Export complete")


@app.command("import")
def import_hosts(
    ctx: typer.Context,
    target: Path | None = typer.Option(None, "--target", "-t", help="Target JSON file - defaults to json_import_path"),
    source: Path | None = typer.Option(None, "--source", "-s", help="Source SSH config file - defaults to ssh_config_path"),
):
    """Import SSH config data into JSON."""
    state: AppState = ctx.obj
    target = target or state.config.import_path(state.env)
    source = source or state.config.ssh_path(state.env)

    with fatal_errors():
        get_backups(state).backup(target)

        store = ConfigStore()
        store.read_ssh(source)
        store.clean()
        store.write_json(target)

    console.print(f"Import complete - see json in {target}")


@app.command("delete-host")
def delete_host(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Alias of host to delete"),
    paths: list[Path] | None = typer.Argument(None, help="JSON file(s) to delete from - defaults to all json_config_paths"),
):
    """Delete a host."""
    state: AppState = ctx.obj
    paths = paths or state.config.config_paths(state.env)

    with fatal_errors():
        run_sync(state)

        deleted = False
        for path in paths:
            store = ConfigStore()
            store.read_json(path)
            if store.delete_host(alias):
                deleted = True
                get_backups(state).backup(path)
                store.clean()
                store.write_json(path)
                console.print(f"Deleted '{alias}' from {path}")

        if not deleted:
            console.print(f"[yellow]Warning:[/yellow] Host '{alias}' not found.")
            raise typer.Exit(1)

        export_ssh(state)
        run_sync(state)

    console.print("[green]Done![/green]")


@app.command("edit-host")
def edit_host(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Alias of host"),
    paths: list[Path] | None = typer.Argument(None, help="JSON file(s) to search - defaults to json_config_paths"),
):
    """Edit a host in your editor."""
    state: AppState = ctx.obj
    paths = paths or state.config.config_paths(state.env)
    edit_name = f"{alias}.hjson"

    with fatal_errors():
        run_sync(state)

        store = None
        config_path = None
        host = None
        for path in paths:
            candidate = ConfigStore()
            candidate.read_json(path)
            found = candidate.get_hosts(alias)
            if found:
                store, config_path, host = candidate, path, found[0]
                break

        if host is None:
            console.print(f"[red]Error:[/red] Host '{alias}' not found in config files")
            raise typer.Exit(1)

        original = host.to_dict()
        text = encode_document(original, edit_name)
        while True:
            edited = click.edit(text, extension=".hjson")
            if edited is None:
                console.print("No changes.")
                return
            try:
                host = HostRecord.model_validate(decode_document(edited, edit_name))
                break
            except (StoreLoadError, ValidationError) as e:
                console.print(f"[yellow]Warning:[/yellow] Invalid host data - check your syntax ({e})")
                if not typer.confirm("Keep editing?", default=True):
                    raise typer.Exit(1)
                text = edited

        if host.to_dict() == original:
            console.print("No changes.")
            return

        store.set_host(alias, host)
        get_backups(state).backup(config_path)
        store.clean()
        store.write_json(config_path)

        export_ssh(state)
        run_sync(state)

    console.print("[green]Done![/green]")


@app.command("init-host")
def init_host(
    ctx: typer.Context,
    alias: str = typer.Argument(..., help="Alias of host"),
    copy_key: bool | None = typer.Option(None, "--copy-key/--no-copy-key", help="Copy your SSH key to the server"),
    team_keys: bool | None = typer.Option(None, "--team-keys/--no-team-keys", help="Copy all team SSH keys to the server"),
    team_config: Path | None = typer.Option(None, "--team-config", help="JSON file for team key data"),
    cli: bool | None = typer.Option(None, "--cli/--no-cli", help="Set up server CLI using cli_script"),
):
    """Initialize a host: copy keys and set up CLI tools."""
    state: AppState = ctx.obj
    provisioner = HostProvisioner()

    with fatal_errors():
        if copy_key is None:
            copy_key = typer.confirm("Copy key?", default=True)

        if copy_key or team_keys:
            if team_keys is None:
                team_keys = typer.confirm("Copy all team keys?", default=False)

            keys = {}
            identifier = None
            if team_keys:
                if team_config is None:
                    team_config = select_path(state.config.config_paths(state.env), "Config for team keys")
                store = ConfigStore()
                store.read_json(team_config)
                identifier = store.get_team_keys_identifier()
                keys = store.get_team_keys()
                if not keys:
                    console.print("[yellow]Warning:[/yellow] No team key config found, copying your key instead")

            console.print("Enter ssh password for this host if prompted")
            if keys:
                provisioner.copy_team_keys(alias, keys, identifier)
            else:
                provisioner.copy_key(alias)

        script = state.config.cli_script_path(state.env)
        if cli is None and script is not None and script.is_file():
            cli = typer.confirm("Set up server cli tools?", default=False)
        if cli:
            if script is None:
                console.print("[red]Error:[/red] No cli_script configured")
                raise typer.Exit(1)
            provisioner.run_cli_script(script, alias)


@app.command()
def merge(
    ctx: typer.Context,
    source_path: Path = typer.Argument(..., help="JSON file to merge from"),
    target_path: Path = typer.Argument(..., help="JSON file to merge into"),
    override_path: Path = typer.Argument(..., help="JSON file to output conflicts/overrides"),
):
    """Merge config from one JSON file into another."""
    state: AppState = ctx.obj

    with fatal_errors():
        get_backups(state).backup(target_path, override_path)

        console.print("Merging config...")
        source = ConfigStore()
        source.read_json(source_path)

        target = ConfigStore()
        target.read_json(target_path)

        override = ConfigStore()
        override.read_json(override_path)

        source.merge(target, override)

        target.clean()
        target.write_json(target_path)

        override.clean()
        override.write_json(override_path)

    console.print("Merge complete")


@app.command()
def search(
    ctx: typer.Context,
    terms: str = typer.Argument(..., help="Term(s) to search - separate with spaces"),
    paths: list[Path] | None = typer.Argument(None, help="JSON config path(s) to search - defaults to json_config_paths"),
):
    """Search for host configuration."""
    state: AppState = ctx.obj
    paths = paths or state.config.config_paths(state.env)

    with fatal_errors():
        store = ConfigStore()
        store.read_json(paths)
        results = store.search(terms)

    if not results:
        console.print("No results found")
        return
    print_hosts(results)


@app.command("list")
def list_hosts(
    ctx: typer.Context,
    paths: list[Path] | None = typer.Argument(None, help="JSON config path(s) to list - defaults to json_config_paths"),
):
    """List all hosts."""
    search(ctx, "", paths)


@app.command()
def sync(ctx: typer.Context):
    """Sync config files through the configured git remote."""
    state: AppState = ctx.obj
    if not state.config.sync.url:
        console.print("No sync URL configured (set sync.url in config.yaml).")
        raise typer.Exit(0)

    with fatal_errors():
        run_sync(state)
    console.print("Sync complete")


if __name__ == "__main__":
    app()
