"""CLI entry point for monover."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from .errors import MonoverError, PartialCommit
from .models import (
    CommitReport,
    FieldKind,
    Inherit,
    Lint,
    LintReport,
    LintStatus,
    PlanAction,
    Roll,
    ScopeRequest,
    SetVersion,
    Show,
    ShowReport,
    SyncVersion,
)
from .pipeline import Request, run
from .versions import RollKind, is_valid_version


class PartialCommitFailed(click.ClickException):
    """Some manifests were written before a later write failed."""

    exit_code = 2


def _version_arg(ctx: click.Context, param: click.Parameter, value: str) -> str:
    if not is_valid_version(value):
        raise click.BadParameter(f"'{value}' is not a valid semantic version")
    return value


def scope_options(f: Callable[..., Any]) -> Callable[..., Any]:
    f = click.option(
        "--exclude",
        "excluded",
        multiple=True,
        metavar="NAME",
        help="Leave this package out of the selection (repeatable).",
    )(f)
    f = click.option(
        "-w",
        "--workspace",
        "--all",
        "workspace",
        is_flag=True,
        help="Select every package in the workspace.",
    )(f)
    f = click.option(
        "-p",
        "--package",
        "packages",
        multiple=True,
        metavar="NAME",
        help="Select this package (repeatable).",
    )(f)
    return f


def common_options(f: Callable[..., Any]) -> Callable[..., Any]:
    f = click.option(
        "--format",
        "fmt",
        type=click.Choice(["simple", "json"]),
        default="simple",
        show_default=True,
        help="Output format.",
    )(f)
    f = click.option(
        "--exclude-path",
        multiple=True,
        metavar="PATH",
        help="Leave members under this path or glob out of discovery (repeatable).",
    )(f)
    f = click.option(
        "--include-ignored",
        is_flag=True,
        envvar="MONOVER_INCLUDE_IGNORED",
        help="Include members ignored by git.",
    )(f)
    f = click.option(
        "-C",
        "--directory",
        type=click.Path(exists=True, file_okay=False, path_type=Path),
        default=None,
        help="Run as if started in this directory.",
    )(f)
    return f


def mutation_options(f: Callable[..., Any]) -> Callable[..., Any]:
    f = click.option("--dry-run", is_flag=True, help="Show what would change without writing.")(f)
    return scope_options(common_options(f))


def _scope(
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    *,
    default_workspace: bool = False,
) -> ScopeRequest:
    if packages and workspace:
        raise click.UsageError("--package and --workspace cannot be combined")
    if workspace or (default_workspace and not packages):
        if excluded:
            return ScopeRequest.all_members_except(*excluded)
        return ScopeRequest.all_members()
    if packages:
        remaining = [p for p in packages if p not in excluded]
        if not remaining:
            raise click.UsageError("--exclude removes every package named with --package")
        return ScopeRequest.named(*remaining)
    if excluded:
        raise click.UsageError("--exclude needs --workspace or --package")
    return ScopeRequest.root_only()


def _execute(request: Request) -> Any:
    try:
        return run(request)
    except PartialCommit as exc:
        raise PartialCommitFailed(str(exc)) from exc
    except MonoverError as exc:
        raise click.ClickException(str(exc)) from exc


def _mutate(operation: Any, scope: ScopeRequest, opts: dict[str, Any]) -> None:
    request = Request(
        operation=operation,
        scope=scope,
        start_dir=opts["directory"] or Path.cwd(),
        include_ignored=opts["include_ignored"],
        exclude=list(opts["exclude_path"]),
        dry_run=opts["dry_run"],
    )
    report: CommitReport = _execute(request)
    if opts["fmt"] == "json":
        click.echo(report.model_dump_json(indent=2))
        return

    if not report.has_changes:
        click.echo("No version changes")
        return
    for change in report.changes:
        note = ""
        if change.action is PlanAction.FOLLOW:
            note = " (follows workspace root)"
        elif change.action is PlanAction.INHERIT:
            note = " (inherited)"
        click.echo(f"{change.package}: {change.old_version} → {change.new_version}{note}")
    if report.dry_run:
        click.echo("Dry run: no files written")
    else:
        click.echo(f"✓ Updated {len(report.written)} manifest(s)")


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log discovery and write details to stderr.")
@click.version_option(package_name="monover")
def cli(verbose: bool) -> None:
    """Manage package versions across a Cargo or npm workspace."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("component", type=click.Choice([k.value for k in RollKind]))
@click.argument("amount", type=int, default=1)
@mutation_options
def roll(
    component: str,
    amount: int,
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    **opts: Any,
) -> None:
    """Increment (or, with a negative AMOUNT, decrement) a version component."""
    operation = Roll(component=RollKind(component), amount=amount)
    _mutate(operation, _scope(packages, workspace, excluded), opts)


@cli.command("set")
@click.argument("version", callback=_version_arg)
@mutation_options
def set_(
    version: str,
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    **opts: Any,
) -> None:
    """Set the selected packages to VERSION."""
    _mutate(SetVersion(version=version), _scope(packages, workspace, excluded), opts)


@cli.command()
@click.argument("version", callback=_version_arg)
@mutation_options
def sync(
    version: str,
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    **opts: Any,
) -> None:
    """Set every workspace package to VERSION in lockstep."""
    scope = _scope(packages, workspace, excluded, default_workspace=True)
    _mutate(SyncVersion(version=version), scope, opts)


@cli.command()
@mutation_options
def inherit(
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    **opts: Any,
) -> None:
    """Make the selected members inherit the workspace root's version."""
    _mutate(Inherit(), _scope(packages, workspace, excluded), opts)


def _read_request(operation: Any, scope: ScopeRequest, opts: dict[str, Any]) -> Request:
    return Request(
        operation=operation,
        scope=scope,
        start_dir=opts["directory"] or Path.cwd(),
        include_ignored=opts["include_ignored"],
        exclude=list(opts["exclude_path"]),
    )


@cli.command()
@scope_options
@common_options
def show(
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    **opts: Any,
) -> None:
    """Show the version of each package."""
    scope = _scope(packages, workspace, excluded, default_workspace=True)
    report: ShowReport = _execute(_read_request(Show(), scope, opts))
    if opts["fmt"] == "json":
        click.echo(report.model_dump_json(indent=2))
        return
    for entry in report.entries:
        if entry.status is FieldKind.MISSING:
            click.echo(f"{entry.package}: <missing>")
        elif entry.status is FieldKind.MALFORMED:
            click.echo(f"{entry.package}: {entry.version} (malformed)")
        elif entry.status is FieldKind.INHERITED:
            click.echo(f"{entry.package}: {entry.version or '<unresolved>'} (inherited)")
        else:
            click.echo(f"{entry.package}: {entry.version}")


@cli.command()
@scope_options
@common_options
def lint(
    packages: tuple[str, ...],
    workspace: bool,
    excluded: tuple[str, ...],
    **opts: Any,
) -> None:
    """Check that every package has a valid version. Exits 1 on problems."""
    scope = _scope(packages, workspace, excluded, default_workspace=True)
    report: LintReport = _execute(_read_request(Lint(), scope, opts))
    if opts["fmt"] == "json":
        click.echo(report.model_dump_json(indent=2))
    else:
        for entry in report.problems:
            click.echo(f"✗ {entry.package} ({entry.path}): {entry.message}")
        valid = report.count(LintStatus.VALID_EXPLICIT) + report.count(LintStatus.VALID_INHERITED)
        click.echo(
            f"{valid} valid, {report.count(LintStatus.MISSING)} missing, "
            f"{report.count(LintStatus.MALFORMED)} malformed"
        )
    if not report.ok:
        raise click.exceptions.Exit(1)


def main() -> None:
    cli()
