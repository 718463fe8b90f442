"""CLI entry point for trustctl.

Invoked as::

    trustctl [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m trustctl.cli.main

Commands
--------
add operator|account|user|cluster|server   Create an entity
edit operator|account                      Re-issue a claim with changes
pull                                       Fetch claims from the account server
describe KIND NAME                         Show a stored claim
validate                                   Check every claim of the operator
version                                    Show version information

Commands that create, edit or pull enter interactive mode when no options
are given on the command line.
"""
from __future__ import annotations

import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Callable, Optional

import click
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from trustctl.actions import (
    Action,
    AddAccountAction,
    AddClusterAction,
    AddOperatorAction,
    AddServerAction,
    AddUserAction,
    EditAccountAction,
    EditOperatorAction,
    PullAction,
    run_action,
)
from trustctl.armor import format_jwt
from trustctl.claims.model import ClaimsBase, ClaimType
from trustctl.claims.timeparams import TimeParams
from trustctl.claims.token import decode, parse_decorated
from trustctl.cli.io import read_bytes, write_bytes
from trustctl.cli.prompts import ConsolePrompter
from trustctl.config import KEYS_ENV, OPERATOR_ENV, STORE_ENV, Settings
from trustctl.context import ActionContext
from trustctl.errors import TrustctlError, UsageError
from trustctl.store.report import Report, Status
from trustctl.store.validation import validate_store

console = Console()

_STATUS_STYLE = {
    Status.OK: "[green][ OK ][/green]",
    Status.WARN: "[yellow][WARN][/yellow]",
    Status.ERR: "[red][ERR ][/red]",
}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _settings(ctx: click.Context) -> Settings:
    return ctx.find_root().obj["settings"]


def _no_options(ctx: click.Context) -> bool:
    """Return True if every parameter of the command kept its default."""
    return all(
        ctx.get_parameter_source(param.name) in (None, ParameterSource.DEFAULT)
        for param in ctx.command.params
        if param.name
    )


def _print_report(report: Report) -> None:
    for entry in report:
        console.print(f"{_STATUS_STYLE[entry.status]} {escape(entry.message)}")


def _execute(ctx: click.Context, action: Action) -> Report:
    """Run *action* and print its report, translating errors for click."""
    interactive = _no_options(ctx)
    action_ctx = ActionContext.build(
        _settings(ctx),
        interactive=interactive,
        prompter=ConsolePrompter() if interactive else None,
        transport=ctx.find_root().obj.get("transport"),
    )
    try:
        report = run_action(action_ctx, action)
    except UsageError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc
    except TrustctlError as exc:
        raise click.ClickException(str(exc)) from exc
    _print_report(report)
    return report


def _time_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    fn = click.option(
        "--expiry",
        default=None,
        help="Valid until: YYYY-MM-DD, an offset such as 30d or 1y, or 0 for always.",
    )(fn)
    fn = click.option(
        "--start",
        default=None,
        help="Valid from: YYYY-MM-DD, an offset such as 1h, or 0 for always.",
    )(fn)
    return fn


def _entity_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    fn = click.option("--tag", "tags", multiple=True, help="Label to attach (repeatable).")(fn)
    fn = _time_options(fn)
    fn = click.option(
        "--key",
        "-k",
        default=None,
        help="Identity key: a seed, a public key, a path to a key file, or 'generate'.",
    )(fn)
    fn = click.option("--name", "-n", default=None, help="Name of the entity.")(fn)
    return fn


def _signer_option(fn: Callable[..., Any]) -> Callable[..., Any]:
    return click.option(
        "--signer-key",
        default=None,
        help="Private key of the parent entity; looked up in the key store when omitted.",
    )(fn)


def _format_time(value: int) -> str:
    if not value:
        return "-"
    return datetime.datetime.fromtimestamp(value, datetime.timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _claims_table(claims: ClaimsBase) -> Table:
    table = Table(title=f"{claims.claim_type.value.capitalize()} {claims.name}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Name", escape(claims.name))
    table.add_row("Subject", claims.subject)
    table.add_row("Issuer", claims.issuer)
    table.add_row("Issued", _format_time(claims.issued_at))
    table.add_row("Not before", _format_time(claims.not_before))
    table.add_row("Expires", _format_time(claims.expires))
    table.add_row("Claim ID", claims.claim_id)
    if claims.tags:
        table.add_row("Tags", escape(", ".join(claims.tags)))
    for f in claims.data_fields():
        value = getattr(claims, f.name)
        if value:
            shown = "\n".join(value) if isinstance(value, list) else str(value)
            table.add_row(f.name.replace("_", " ").capitalize(), escape(shown))
    return table


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.option(
    "--store",
    "store_root",
    type=click.Path(path_type=Path, file_okay=False),
    envvar=STORE_ENV,
    default=None,
    help=f"Root directory of the claim stores [env: {STORE_ENV}].",
)
@click.option(
    "--keys",
    "keys_root",
    type=click.Path(path_type=Path, file_okay=False),
    envvar=KEYS_ENV,
    default=None,
    help=f"Root directory of the key store [env: {KEYS_ENV}].",
)
@click.option(
    "--operator",
    envvar=OPERATOR_ENV,
    default=None,
    help=f"Operator to act on [env: {OPERATOR_ENV}].",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    store_root: Optional[Path],
    keys_root: Optional[Path],
    operator: Optional[str],
    log_level: str,
) -> None:
    """Manage operators, accounts and users as chains of signed claims."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    overrides: dict[str, Any] = {"operator": operator}
    if store_root is not None:
        overrides["store_root"] = store_root
    if keys_root is not None:
        overrides["keys_root"] = keys_root
    obj = ctx.ensure_object(dict)
    obj["settings"] = Settings(**overrides)


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from trustctl import __version__

    console.print(f"[bold]trustctl[/bold] v{__version__}")


# ------------------------------------------------------------------
# add
# ------------------------------------------------------------------


@cli.group(name="add")
def add_group() -> None:
    """Create operators, accounts, users, clusters and servers."""


@add_group.command(name="operator")
@_entity_options
@click.option("--account-server-url", default=None, help="Base URL accounts are pulled from.")
@click.option("--service-url", "service_urls", multiple=True, help="Operator service URL (repeatable).")
@click.pass_context
def add_operator_command(
    ctx: click.Context,
    name: Optional[str],
    key: Optional[str],
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    account_server_url: Optional[str],
    service_urls: tuple[str, ...],
) -> None:
    """Create a self-signed operator."""
    _execute(
        ctx,
        AddOperatorAction(
            name=name,
            key=key,
            time_params=TimeParams(start=start, expiry=expiry),
            account_server_url=account_server_url,
            service_urls=service_urls,
            tags=tags,
        ),
    )


@add_group.command(name="account")
@_entity_options
@_signer_option
@click.pass_context
def add_account_command(
    ctx: click.Context,
    name: Optional[str],
    key: Optional[str],
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    signer_key: Optional[str],
) -> None:
    """Create an account signed by the operator."""
    _execute(
        ctx,
        AddAccountAction(
            name=name,
            key=key,
            time_params=TimeParams(start=start, expiry=expiry),
            signer_key=signer_key,
            tags=tags,
        ),
    )


@add_group.command(name="user")
@_entity_options
@_signer_option
@click.option("--account", "-a", default=None, help="Account the user belongs to.")
@click.option("--allow-pub", multiple=True, help="Subject the user may publish to (repeatable).")
@click.option("--allow-sub", multiple=True, help="Subject the user may subscribe to (repeatable).")
@click.pass_context
def add_user_command(
    ctx: click.Context,
    name: Optional[str],
    key: Optional[str],
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    signer_key: Optional[str],
    account: Optional[str],
    allow_pub: tuple[str, ...],
    allow_sub: tuple[str, ...],
) -> None:
    """Create a user signed by its account."""
    _execute(
        ctx,
        AddUserAction(
            name=name,
            key=key,
            time_params=TimeParams(start=start, expiry=expiry),
            signer_key=signer_key,
            parent=account,
            tags=tags,
            allow_pub=allow_pub,
            allow_sub=allow_sub,
        ),
    )


@add_group.command(name="cluster")
@_entity_options
@_signer_option
@click.option("--trust", multiple=True, help="Trusted operator public key (repeatable).")
@click.option("--cluster-url", "cluster_urls", multiple=True, help="Cluster route URL (repeatable).")
@click.pass_context
def add_cluster_command(
    ctx: click.Context,
    name: Optional[str],
    key: Optional[str],
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    signer_key: Optional[str],
    trust: tuple[str, ...],
    cluster_urls: tuple[str, ...],
) -> None:
    """Create a cluster signed by the operator."""
    _execute(
        ctx,
        AddClusterAction(
            name=name,
            key=key,
            time_params=TimeParams(start=start, expiry=expiry),
            signer_key=signer_key,
            tags=tags,
            trust=trust,
            cluster_urls=cluster_urls,
        ),
    )


@add_group.command(name="server")
@_entity_options
@_signer_option
@click.option("--cluster", "-c", default=None, help="Cluster the server belongs to.")
@click.option("--server-url", "server_urls", multiple=True, help="Server URL (repeatable).")
@click.pass_context
def add_server_command(
    ctx: click.Context,
    name: Optional[str],
    key: Optional[str],
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    signer_key: Optional[str],
    cluster: Optional[str],
    server_urls: tuple[str, ...],
) -> None:
    """Create a server signed by its cluster."""
    _execute(
        ctx,
        AddServerAction(
            name=name,
            key=key,
            time_params=TimeParams(start=start, expiry=expiry),
            signer_key=signer_key,
            parent=cluster,
            tags=tags,
            server_urls=server_urls,
        ),
    )


# ------------------------------------------------------------------
# edit
# ------------------------------------------------------------------


@cli.group(name="edit")
def edit_group() -> None:
    """Re-issue stored claims with changed attributes."""


@edit_group.command(name="operator")
@_time_options
@click.option("--tag", "tags", multiple=True, help="Label to add (repeatable).")
@click.option("--account-server-url", default=None, help="Base URL accounts are pulled from ('' to remove).")
@click.option("--service-url", "service_urls", multiple=True, help="Replacement service URL (repeatable).")
@click.pass_context
def edit_operator_command(
    ctx: click.Context,
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    account_server_url: Optional[str],
    service_urls: tuple[str, ...],
) -> None:
    """Edit the operator's claim."""
    _execute(
        ctx,
        EditOperatorAction(
            time_params=TimeParams(start=start, expiry=expiry),
            account_server_url=account_server_url,
            service_urls=list(service_urls) or None,
            tags=tags,
        ),
    )


@edit_group.command(name="account")
@click.option("--name", "-n", default=None, help="Account to edit.")
@_time_options
@click.option("--tag", "tags", multiple=True, help="Label to add (repeatable).")
@_signer_option
@click.pass_context
def edit_account_command(
    ctx: click.Context,
    name: Optional[str],
    start: Optional[str],
    expiry: Optional[str],
    tags: tuple[str, ...],
    signer_key: Optional[str],
) -> None:
    """Edit an account's claim."""
    _execute(
        ctx,
        EditAccountAction(
            name=name,
            time_params=TimeParams(start=start, expiry=expiry),
            signer_key=signer_key,
            tags=tags,
        ),
    )


# ------------------------------------------------------------------
# pull
# ------------------------------------------------------------------


@cli.command(name="pull")
@click.option("--all", "-A", "all_accounts", is_flag=True, default=False, help="Pull the operator and all accounts.")
@click.option("--account", "-a", default=None, help="Pull only this account.")
@click.option(
    "--force",
    "--overwrite",
    "-F",
    "overwrite",
    is_flag=True,
    default=False,
    help="Overwrite local claims that are newer than the remote ones.",
)
@click.pass_context
def pull_command(ctx: click.Context, all_accounts: bool, account: Optional[str], overwrite: bool) -> None:
    """Fetch operator and account claims from the account server."""
    report = _execute(ctx, PullAction(all_accounts=all_accounts, account=account, overwrite=overwrite))
    if report.has_errors():
        console.print(f"[red]{report.error_count()} of {len(report)} pulls failed[/red]")
        sys.exit(1)


# ------------------------------------------------------------------
# describe / validate
# ------------------------------------------------------------------


@cli.command(name="describe")
@click.argument("kind", type=click.Choice([t.value for t in ClaimType]))
@click.argument("name", required=False)
@click.option("--parent", "-p", default=None, help="Account of a user or cluster of a server.")
@click.option("--file", "-f", "file_path", default=None, help="Describe a token file instead ('--' for stdin).")
@click.option("--raw", is_flag=True, default=False, help="Print the armored token instead of a table.")
@click.option("--output", "-o", default=None, help="Write the armored token to a new file ('--' for stdout).")
@click.pass_context
def describe_command(
    ctx: click.Context,
    kind: str,
    name: Optional[str],
    parent: Optional[str],
    file_path: Optional[str],
    raw: bool,
    output: Optional[str],
) -> None:
    """Show the claim of entity KIND named NAME."""
    claim_type = ClaimType(kind)
    try:
        if file_path:
            claims = decode(parse_decorated(read_bytes(file_path)))
        else:
            action_ctx = ActionContext.build(_settings(ctx))
            store = action_ctx.require_store()
            if claim_type is ClaimType.OPERATOR:
                name = name or store.operator
            if not name:
                raise UsageError(f"{kind} name is required")
            claims = store.read(claim_type, name, parent or "")
        if claims.claim_type is not claim_type:
            raise UsageError(f"token is a {claims.claim_type.value} claim, not {kind}")
        if output:
            write_bytes(output, format_jwt(kind, claims.token).encode("utf-8"))
            return
    except UsageError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc
    except TrustctlError as exc:
        raise click.ClickException(str(exc)) from exc

    if raw:
        click.echo(format_jwt(kind, claims.token), nl=False)
    else:
        console.print(_claims_table(claims))


@cli.command(name="validate")
@click.pass_context
def validate_command(ctx: click.Context) -> None:
    """Check every claim of the operator against its issuer."""
    try:
        store = ActionContext.build(_settings(ctx)).require_store()
    except UsageError as exc:
        raise click.UsageError(str(exc), ctx=ctx) from exc
    except TrustctlError as exc:
        raise click.ClickException(str(exc)) from exc
    report = validate_store(store)
    _print_report(report)
    if report.has_errors():
        console.print(f"[red]{report.error_count()} problems found[/red]")
        sys.exit(1)
    console.print(f"[green]{report.ok_count()} claims valid[/green]")


if __name__ == "__main__":
    cli()
