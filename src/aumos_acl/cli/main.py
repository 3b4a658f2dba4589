"""CLI entry point for aumos-acl.

Invoked as::

    aumos-acl [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_acl.cli.main

Commands
--------
- validate   Validate a YAML policy document
- check      Decide whether a role may access a resource
- inherits   Check role inheritance
- roles      List declared roles
- resources  List the resource tree
- rules      List the rules loaded from a policy
- version    Show version information

Rules that reference named assertions cannot be evaluated from the command
line; stub them with ``--assertion NAME=pass`` or ``--assertion NAME=fail``.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

console = Console()
err_console = Console(stderr=True)

_DEFAULT_POLICY = Path("access_policy.yaml")

_EXIT_ALLOWED = 0
_EXIT_DENIED = 1
_EXIT_ERROR = 2


# ---------------------------------------------------------------------------
# Shared options and helpers
# ---------------------------------------------------------------------------


def _policy_option(func):  # type: ignore[no-untyped-def]
    func = click.option(
        "--assertion",
        "-A",
        "assertion_stubs",
        multiple=True,
        help="Stub a named assertion with a fixed outcome, e.g. --assertion is_owner=pass.",
    )(func)
    return click.option(
        "--policy",
        "-p",
        "policy_path",
        default=str(_DEFAULT_POLICY),
        show_default=True,
        type=click.Path(),
        help="Path to the YAML access policy.",
    )(func)


def _parse_stubs(assertion_stubs: tuple[str, ...]) -> dict[str, object]:
    from aumos_acl.acl.assertions import CallableAssertion

    stubs: dict[str, object] = {}
    for pair in assertion_stubs:
        name, sep, outcome = pair.partition("=")
        outcome = outcome.strip().lower()
        if not sep or not name.strip() or outcome not in ("pass", "fail"):
            err_console.print(
                f"[red]Invalid --assertion value:[/red] {escape(repr(pair))} (expected NAME=pass|fail)"
            )
            sys.exit(_EXIT_ERROR)
        passed = outcome == "pass"
        stubs[name.strip()] = CallableAssertion(
            func=lambda acl, role, resource, privilege, _passed=passed: _passed
        )
    return stubs


def _load_policy(policy_path: str, assertion_stubs: tuple[str, ...] = ()):  # type: ignore[no-untyped-def]
    from aumos_acl.policy.loader import PolicyConfigError, PolicyLoader

    path = Path(policy_path)
    if not path.exists():
        err_console.print(f"[red]Policy file not found:[/red] {escape(str(path))}")
        sys.exit(_EXIT_ERROR)

    loader = PolicyLoader(assertions=_parse_stubs(assertion_stubs))  # type: ignore[arg-type]
    try:
        return loader.load(path)
    except PolicyConfigError as exc:
        err_console.print(f"[red]Invalid policy:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_ERROR)


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-acl")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def cli(log_level: str) -> None:
    """Access control list tools — validate policies and check decisions."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_acl import __version__

    console.print(
        Panel(
            f"[bold]aumos-acl[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Role/resource access control lists with inheritance and assertions.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


@cli.command(name="validate")
@_policy_option
def validate_command(policy_path: str, assertion_stubs: tuple[str, ...]) -> None:
    """Validate a policy document and build its ACL."""
    from aumos_acl.errors import AclError

    policy = _load_policy(policy_path, assertion_stubs)
    try:
        manager = policy.manager
    except AclError as exc:
        console.print(
            Panel(
                f"[red]INVALID[/red]  {escape(str(exc))}",
                title="Policy Validation",
                border_style="red",
            )
        )
        sys.exit(_EXIT_ERROR)

    console.print(
        Panel(
            f"[green]VALID[/green]  '{escape(policy.document.name)}' v{policy.document.version}\n"
            f"  Roles: {len(manager.get_roles())}  "
            f"Resources: {len(manager.get_resources())}  "
            f"Rules: {manager.rule_count}",
            title="Policy Validation",
            border_style="green",
        )
    )


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


@cli.command(name="check")
@_policy_option
@click.option("--role", "-r", default=None, help="Role id (omit for all roles).")
@click.option("--resource", "-R", default=None, help="Resource id (omit for all resources).")
@click.option("--privilege", "-P", default=None, help="Privilege (omit for all privileges).")
def check_command(
    policy_path: str,
    assertion_stubs: tuple[str, ...],
    role: str | None,
    resource: str | None,
    privilege: str | None,
) -> None:
    """Decide whether ROLE may exercise PRIVILEGE on RESOURCE.

    Exits 0 when allowed, 1 when denied and 2 on error.
    """
    from aumos_acl.errors import AclLookupError

    policy = _load_policy(policy_path, assertion_stubs)
    try:
        allowed = policy.is_allowed(role, resource, privilege)
    except AclLookupError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_ERROR)

    status_str = "[green]ALLOWED[/green]" if allowed else "[red]DENIED[/red]"
    console.print(Panel(status_str, title="Access Check Result", border_style="blue"))
    console.print(f"  Role:      [cyan]{escape(role or '*')}[/cyan]")
    console.print(f"  Resource:  [cyan]{escape(resource or '*')}[/cyan]")
    console.print(f"  Privilege: [cyan]{escape(privilege or '*')}[/cyan]")

    sys.exit(_EXIT_ALLOWED if allowed else _EXIT_DENIED)


# ---------------------------------------------------------------------------
# inherits
# ---------------------------------------------------------------------------


@cli.command(name="inherits")
@_policy_option
@click.argument("role")
@click.argument("ancestor")
@click.option("--direct", is_flag=True, default=False, help="Only consider direct parents.")
def inherits_command(
    policy_path: str,
    assertion_stubs: tuple[str, ...],
    role: str,
    ancestor: str,
    direct: bool,
) -> None:
    """Check whether ROLE inherits from ANCESTOR."""
    from aumos_acl.errors import AclLookupError

    policy = _load_policy(policy_path, assertion_stubs)
    try:
        inherits = policy.inherits_role(role, ancestor, only_direct=direct)
    except AclLookupError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        sys.exit(_EXIT_ERROR)

    qualifier = "directly " if direct else ""
    if inherits:
        console.print(f"[green]YES[/green]  '{escape(role)}' {qualifier}inherits from '{escape(ancestor)}'")
    else:
        console.print(f"[red]NO[/red]  '{escape(role)}' does not {qualifier}inherit from '{escape(ancestor)}'")
    sys.exit(_EXIT_ALLOWED if inherits else _EXIT_DENIED)


# ---------------------------------------------------------------------------
# roles / resources / rules
# ---------------------------------------------------------------------------


@cli.command(name="roles")
@_policy_option
def roles_command(policy_path: str, assertion_stubs: tuple[str, ...]) -> None:
    """List the roles declared by a policy."""
    policy = _load_policy(policy_path, assertion_stubs)
    registry = policy.manager.role_registry
    names = policy.get_roles_list()

    table = Table(title="Roles", box=box.SIMPLE)
    table.add_column("Role", style="cyan")
    table.add_column("Name")
    table.add_column("Inherits (low → high priority)", style="magenta")
    for role in registry.roles():
        parents = ", ".join(p.role_id for p in registry.get_parents(role))
        table.add_row(role.role_id, names.get(role.role_id, role.role_id), parents or "-")
    console.print(table)


@cli.command(name="resources")
@_policy_option
def resources_command(policy_path: str, assertion_stubs: tuple[str, ...]) -> None:
    """List the resource tree declared by a policy."""
    policy = _load_policy(policy_path, assertion_stubs)
    tree = policy.manager.resource_tree
    names = policy.get_resources_list()

    table = Table(title="Resources", box=box.SIMPLE)
    table.add_column("Resource", style="cyan")
    table.add_column("Name")
    table.add_column("Parent", style="magenta")
    for resource_id in tree.ids():
        depth = len(tree.ancestors(resource_id))
        table.add_row(
            "  " * depth + resource_id,
            names.get(resource_id, resource_id),
            tree.parent_of(resource_id) or "-",
        )
    console.print(table)


@cli.command(name="rules")
@_policy_option
def rules_command(policy_path: str, assertion_stubs: tuple[str, ...]) -> None:
    """List the rules a policy registers, in storage order."""
    policy = _load_policy(policy_path, assertion_stubs)
    entries = policy.manager.rules

    table = Table(title=f"Rules ({len(entries)})", box=box.SIMPLE)
    table.add_column("Resource", style="cyan")
    table.add_column("Role", style="magenta")
    table.add_column("Privilege")
    table.add_column("Type")
    table.add_column("Assertion", style="dim")
    for entry in entries:
        type_str = "[green]allow[/green]" if entry.type.value == "allow" else "[red]deny[/red]"
        table.add_row(
            str(entry.resource),
            str(entry.role),
            entry.privilege or "*",
            type_str,
            type(entry.assertion).__name__ if entry.assertion is not None else "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
