"""Resolve a ScopeRequest into the concrete packages an operation touches."""

from __future__ import annotations

from collections.abc import Iterable

from .errors import UnknownPackage
from .models import FieldKind, Package, ScopeKind, ScopeRequest, Selection, Workspace


def _check_names(workspace: Workspace, names: Iterable[str]) -> None:
    for name in names:
        if workspace.get(name) is None:
            raise UnknownPackage(name)


def _all_members(workspace: Workspace) -> list[Package]:
    # The root joins a workspace-wide selection only when it has a version
    # field of its own; a virtual root is never versioned.
    root = workspace.root_package
    members = list(workspace.members)
    if workspace.single_package or root.version_field.kind is not FieldKind.MISSING:
        members.insert(0, root)
    return members


def resolve_selection(workspace: Workspace, scope: ScopeRequest | None = None) -> Selection:
    """Translate a scope into an ordered, deduplicated Selection.

    Packages always come back in workspace order, whatever order they
    were named in.

    Raises:
        UnknownPackage: If a named (or excluded) package is not in the
            workspace. The first offending name in request order is reported.
    """
    scope = scope or ScopeRequest.root_only()

    if scope.kind is ScopeKind.ROOT_ONLY:
        packages = [workspace.root_package]
    elif scope.kind is ScopeKind.NAMED:
        _check_names(workspace, scope.names)
        wanted = set(scope.names)
        packages = [p for p in workspace.packages if p.name in wanted]
    elif scope.kind is ScopeKind.ALL_MEMBERS:
        packages = _all_members(workspace)
    else:
        _check_names(workspace, scope.names)
        excluded = set(scope.names)
        packages = [p for p in _all_members(workspace) if p.name not in excluded]

    return Selection(scope=scope, packages=packages)
