"""rulesetbot CLI: run the webhook server, check definitions, reconcile by hand."""

import sys

import click
from rich.console import Console
from rich.table import Table

from rulesetbot import __version__
from rulesetbot.errors import ConfigError, DefinitionError, ReconciliationError, RulesetBotError
from rulesetbot.logs import configure_logging

console = Console()

_ACTION_STYLES = {
    "created": "green",
    "updated": "yellow",
    "unchanged": "dim",
    "skipped": "dim",
    "failed": "red",
    "would_create": "cyan",
    "would_update": "cyan",
}


@click.group()
@click.version_option(version=__version__)
@click.option("--log-level", default=None, help="Logging level (overridden by LOG_LEVEL)")
@click.pass_context
def main(ctx: click.Context, log_level: str | None):
    """repo-ruleset-bot: keep organization rulesets in line with their definitions.

    Runs as a GitHub App webhook receiver, or reconciles organizations on
    demand from the command line.
    """
    ctx.obj = {"log_level": log_level}
    configure_logging(log_level, rich_output=True)


# ── Serve ────────────────────────────────────────────────────────────


@main.command()
@click.option("--config", "config_path", default=None, help="Path to config.yml")
@click.option("--host", default=None, help="Bind address (default: server.address)")
@click.option("--port", default=None, type=int, help="Bind port (default: server.port)")
@click.pass_context
def serve(ctx: click.Context, config_path: str | None, host: str | None, port: int | None):
    """Run the GitHub webhook server."""
    import uvicorn

    from rulesetbot.web.main import create_app

    config = _load_config_or_exit(config_path)
    configure_logging(ctx.obj.get("log_level") or config.log_level, rich_output=False)

    host = host or config.server.address
    port = port or config.server.port
    console.print(f"\n[bold blue]rulesetbot[/] serving webhooks on {host}:{port}\n")
    uvicorn.run(create_app(config), host=host, port=port)


# ── Validate ─────────────────────────────────────────────────────────


@main.command()
@click.argument("path", required=False)
@click.option("--config", "config_path", default=None, help="Path to config.yml")
def validate(path: str | None, config_path: str | None):
    """Check every ruleset definition without contacting GitHub.

    PATH is a definitions directory or a single definition file; it defaults
    to the configured ``rulesets`` location.
    """
    from rulesetbot.definitions.store import DefinitionStore
    from rulesetbot.definitions.validator import validate_definition
    from rulesetbot.models.ruleset import Ruleset

    path = path or _default_rulesets_path(config_path)
    console.print(f"\n[bold blue]rulesetbot[/] Validating: {path}\n")

    store = DefinitionStore(path)
    try:
        paths = store.paths()
    except DefinitionError as exc:
        console.print(f"  [red]{exc}[/]")
        sys.exit(1)

    table = Table(title=f"Ruleset definitions ({len(paths)} found)")
    table.add_column("File", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Issues")

    seen: dict[str, str] = {}
    failed = 0
    for file_path in paths:
        name = ""
        try:
            document = store.read(file_path)
            issues = validate_definition(document.data)
            if not issues:
                name = Ruleset.from_dict(document.data).name
                if name in seen:
                    issues = [f"duplicate name, already defined in {seen[name]}"]
                else:
                    seen[name] = file_path.name
        except DefinitionError as exc:
            issues = exc.issues
        except (KeyError, TypeError, ValueError) as exc:
            issues = [f"cannot decode ruleset: {exc}"]

        if issues:
            failed += 1
            table.add_row(file_path.name, name, "[red]FAIL[/]", "\n".join(issues))
        else:
            table.add_row(file_path.name, name, "[green]OK[/]", "")

    console.print(table)
    if failed:
        console.print(f"\n[red]{failed} definition(s) failed validation.[/]")
        sys.exit(1)
    console.print("\n[green]All definitions are valid.[/]")


# ── Reconcile ────────────────────────────────────────────────────────


@main.command()
@click.option("--org", default=None, help="Organization to reconcile")
@click.option("--all", "all_orgs", is_flag=True, help="Reconcile every installed organization")
@click.option("--dry-run", is_flag=True, help="Report drift without writing")
@click.option("--config", "config_path", default=None, help="Path to config.yml")
def reconcile(org: str | None, all_orgs: bool, dry_run: bool, config_path: str | None):
    """Bring organization rulesets in line with the definitions.

    Creates missing rulesets and updates drifted ones, exactly as a release
    of the definitions repository would.
    """
    from rulesetbot.handler import RulesetHandler

    if bool(org) == all_orgs:
        raise click.UsageError("Pass exactly one of --org ORG or --all.")

    config = _load_config_or_exit(config_path)
    handler = RulesetHandler.from_config(config)

    target = "every installed organization" if all_orgs else org
    mode = " (dry run)" if dry_run else ""
    console.print(f"\n[bold blue]rulesetbot[/] Reconciling {target}{mode}\n")

    failed = False
    try:
        outcomes = handler.reconcile_fleet(dry_run=dry_run) if all_orgs else handler.reconcile_org(org, dry_run=dry_run)
    except ReconciliationError as exc:
        outcomes = exc.outcomes
        failed = True
    except RulesetBotError as exc:
        console.print(f"  [red]Reconciliation failed:[/] {exc}")
        sys.exit(1)

    if not outcomes:
        console.print("[yellow]No rulesets to reconcile.[/]")
        return

    table = Table(title=f"Reconciliation ({len(outcomes)} rulesets)")
    table.add_column("Organization", style="cyan")
    table.add_column("Ruleset")
    table.add_column("Action")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Detail")
    for outcome in outcomes:
        style = _ACTION_STYLES.get(outcome.action, "")
        table.add_row(
            outcome.org,
            outcome.ruleset_name,
            f"[{style}]{outcome.action}[/]" if style else outcome.action,
            str(outcome.ruleset_id or ""),
            outcome.detail,
        )
    console.print(table)

    if failed:
        console.print("\n[red]Some rulesets failed to reconcile.[/]")
        sys.exit(1)


# ── Helpers ──────────────────────────────────────────────────────────


def _load_config_or_exit(config_path: str | None):
    from rulesetbot.config import load_config

    try:
        return load_config(config_path)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/] {exc}")
        sys.exit(1)


def _default_rulesets_path(config_path: str | None) -> str:
    import os

    from rulesetbot.config import DEFAULT_RULESETS_PATH, load_config

    try:
        return str(load_config(config_path).rulesets_path)
    except ConfigError:
        return os.environ.get("RULESETBOT_RULESETS") or DEFAULT_RULESETS_PATH


if __name__ == "__main__":
    main()
