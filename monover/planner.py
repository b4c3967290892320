"""Plan version changes, and produce the read-only show/lint reports.

Planning is pure: it reads the Workspace as discovered and returns a
MutationPlan, or raises before anything is written. Every selected package
either gets a concrete target or the whole call fails.
"""

from __future__ import annotations

import logging

import semver

from .errors import (
    InvalidOperation,
    MalformedVersion,
    MissingVersion,
    UnresolvableInheritance,
)
from .models import (
    FieldKind,
    Inherit,
    LintEntry,
    LintReport,
    LintStatus,
    Mutation,
    MutationPlan,
    Package,
    PlanAction,
    PlanEntry,
    Roll,
    Selection,
    SetVersion,
    ShowEntry,
    ShowReport,
    SyncVersion,
    Workspace,
)
from .versions import roll_version

logger = logging.getLogger(__name__)


def _root_version(workspace: Workspace, package: Package) -> semver.Version:
    root = workspace.root_package
    if package.is_root or not root.version_field.is_explicit:
        raise UnresolvableInheritance(root.name, package.name)
    return root.version_field.version


def effective_version(workspace: Workspace, package: Package) -> semver.Version:
    """The version a package actually has, following inheritance to the root.

    Raises:
        MissingVersion: If the package has no version field.
        MalformedVersion: If the field is not valid semver.
        UnresolvableInheritance: If it inherits from a root without an
            explicit version.
    """
    field = package.version_field
    if field.kind is FieldKind.MISSING:
        raise MissingVersion(package.name, package.manifest_path)
    if field.kind is FieldKind.MALFORMED:
        raise MalformedVersion(field.raw or "", package.name)
    if field.kind is FieldKind.INHERITED:
        return _root_version(workspace, package)
    return field.version


def _resolvable(workspace: Workspace, package: Package) -> bool:
    field = package.version_field
    if field.is_explicit:
        return True
    return (
        field.is_inherited
        and not package.is_root
        and workspace.root_package.version_field.is_explicit
    )


def describe_current(workspace: Workspace, package: Package) -> str:
    """Effective version as text, or the field itself when it has none."""
    if _resolvable(workspace, package):
        return str(effective_version(workspace, package))
    return str(package.version_field)


def _unchanged(entry: PlanEntry) -> bool:
    if entry.action is PlanAction.FOLLOW:
        return entry.new_version == entry.old_version
    return entry.target == entry.old


def _plan_roll(workspace: Workspace, selection: Selection, op: Roll) -> list[PlanEntry]:
    root_selected = workspace.root_package.name in selection
    entries = []
    for package in selection.packages:
        current = effective_version(workspace, package)
        rolled = roll_version(current, op.component, op.amount, package=package.name)
        if package.version_field.is_inherited and root_selected:
            # The root's own entry carries the edit; the marker stays.
            action = PlanAction.FOLLOW
        else:
            action = PlanAction.WRITE
        entries.append(
            PlanEntry(
                package=package,
                old=package.version_field,
                old_version=str(current),
                new_version=str(rolled),
                action=action,
            )
        )
    return entries


def _plan_set(workspace: Workspace, selection: Selection, version: str) -> list[PlanEntry]:
    # Inherited fields are overwritten with the literal version.
    return [
        PlanEntry(
            package=package,
            old=package.version_field,
            old_version=describe_current(workspace, package),
            new_version=version,
        )
        for package in selection.packages
    ]


def _plan_inherit(workspace: Workspace, selection: Selection) -> list[PlanEntry]:
    entries = []
    for package in selection.packages:
        if package.is_root:
            if selection.scope.is_workspace_wide:
                continue
            raise InvalidOperation(
                f"Package '{package.name}' is the workspace root and cannot inherit its own version"
            )
        root_version = _root_version(workspace, package)
        entries.append(
            PlanEntry(
                package=package,
                old=package.version_field,
                old_version=describe_current(workspace, package),
                new_version=str(root_version),
                action=PlanAction.INHERIT,
            )
        )
    return entries


def plan(workspace: Workspace, selection: Selection, operation: Mutation) -> MutationPlan:
    """Compute the target version of every selected package.

    Args:
        workspace: The discovered workspace.
        selection: Packages to act on, from resolve_selection().
        operation: Roll, SetVersion, SyncVersion or Inherit.

    Returns:
        A plan with one entry per package that actually changes.

    Raises:
        InvalidOperation: Sync over a non-workspace scope, or Inherit on the root.
        MissingVersion, MalformedVersion, UnresolvableInheritance,
        NegativeVersion: When a selected package has no usable current
            version for a Roll, or a root to inherit from.
    """
    if isinstance(operation, Roll):
        entries = _plan_roll(workspace, selection, operation)
    elif isinstance(operation, SyncVersion):
        if not selection.scope.is_workspace_wide:
            raise InvalidOperation(
                "sync aligns the whole workspace; use set to change individual packages"
            )
        entries = _plan_set(workspace, selection, operation.version)
    elif isinstance(operation, SetVersion):
        entries = _plan_set(workspace, selection, operation.version)
    elif isinstance(operation, Inherit):
        entries = _plan_inherit(workspace, selection)
    else:
        raise InvalidOperation(f"{operation.describe()} does not change versions")

    kept = []
    for entry in entries:
        if _unchanged(entry):
            logger.debug("%s already at %s", entry.package.name, entry.new_version)
            continue
        kept.append(entry)
    return MutationPlan(operation=operation.describe(), entries=kept)


def show(workspace: Workspace, selection: Selection) -> ShowReport:
    """Report each selected package's field status and effective version."""
    entries = []
    for package in selection.packages:
        field = package.version_field
        if _resolvable(workspace, package):
            version = str(effective_version(workspace, package))
        else:
            version = field.raw
        entries.append(
            ShowEntry(
                package=package.name,
                path=package.manifest_path,
                status=field.kind,
                version=version,
            )
        )
    return ShowReport(entries=entries)


def lint(workspace: Workspace, selection: Selection) -> LintReport:
    """Classify every selected package's version field. Never writes."""
    entries = []
    for package in selection.packages:
        field = package.version_field
        message = None
        if field.kind is FieldKind.EXPLICIT:
            status = LintStatus.VALID_EXPLICIT
        elif field.kind is FieldKind.INHERITED:
            if _resolvable(workspace, package):
                status = LintStatus.VALID_INHERITED
            else:
                status = LintStatus.MALFORMED
                message = str(UnresolvableInheritance(workspace.root_package.name, package.name))
        elif field.kind is FieldKind.MISSING:
            status = LintStatus.MISSING
            message = "no version field"
        else:
            status = LintStatus.MALFORMED
            message = f"invalid version '{field.raw}'"
        entries.append(
            LintEntry(
                package=package.name,
                path=package.manifest_path,
                status=status,
                raw=field.raw,
                message=message,
            )
        )
    return LintReport(entries=entries)
