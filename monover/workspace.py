"""Workspace discovery.

Finds the workspace root above a starting directory, expands its member
patterns against the filesystem and reads every member manifest. The
result is a Workspace whose first package is always the root.

Discovery order:
1. Walk up from the start directory; at each level try Cargo.toml, then
   package.json. The first manifest that declares a workspace is the root.
2. Expand the root's member patterns in order (matches of one glob sorted),
   dropping directories without a manifest, duplicates, and the root itself.
3. Drop members matched by an exclusion pattern (the manifest's own list,
   the monover settings, and the caller's extra paths).
4. Drop members whose manifest is ignored by version control, unless
   ignored members are explicitly included.

Without a workspace root, the nearest manifest becomes a one-package
workspace.
"""

from __future__ import annotations

import fnmatch
import glob
import logging
import os
from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import DuplicatePackage, ManifestError, MemberNotFound, NoManifestFound, NoWorkspaceFound
from .ignore import IgnoreRules, NoIgnoreRules, default_ignore_rules
from .manifests import ManifestAdapter, ManifestDocument, all_adapters, find_manifest
from .models import Dialect, Package, Workspace

logger = logging.getLogger(__name__)

GLOB_CHARS = frozenset("*?[")


class WorkspaceConfig(BaseModel):
    """monover settings stored in the root manifest.

    Cargo.toml:
        [workspace.metadata.monover]
        exclude = ["examples/*"]
        include-ignored = false

    package.json:
        "monover": {"exclude": ["examples/*"], "include-ignored": false}
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    exclude: list[str] = Field(default_factory=list)
    include_ignored: bool = Field(default=False, alias="include-ignored")

    @classmethod
    def from_manifest(cls, adapter: ManifestAdapter, document: ManifestDocument) -> WorkspaceConfig:
        try:
            return cls.model_validate(adapter.settings(document))
        except ValidationError as exc:
            first = exc.errors()[0]
            where = ".".join(str(part) for part in first["loc"])
            raise ManifestError(
                document.path, f"invalid monover setting '{where}': {first['msg']}"
            ) from exc


def is_glob(pattern: str) -> bool:
    return any(ch in GLOB_CHARS for ch in pattern)


def find_workspace_root(start: Path) -> tuple[ManifestAdapter, ManifestDocument]:
    """Find the nearest ancestor manifest that declares a workspace.

    Raises:
        NoWorkspaceFound: If no directory up to the filesystem root has one.
        ManifestError: If a manifest on the way up cannot be parsed.
    """
    for directory in (start, *start.parents):
        for adapter in all_adapters():
            manifest = directory / adapter.filename
            if not manifest.is_file():
                continue
            document = adapter.load(manifest)
            if adapter.is_workspace_root(document):
                logger.debug("workspace root: %s", manifest)
                return adapter, document
    raise NoWorkspaceFound(start)


def _make_package(
    adapter: ManifestAdapter, document: ManifestDocument, *, is_root: bool = False
) -> Package:
    return Package(
        name=adapter.package_name(document) or document.path.parent.name,
        manifest_path=document.path,
        dialect=adapter.dialect,
        version_field=adapter.version_field(document),
        is_root=is_root,
        document=document,
    )


def expand_members(
    root: Path, patterns: Iterable[str], prefer: Dialect | None = None
) -> list[tuple[ManifestAdapter, Path]]:
    """Expand member patterns into (adapter, manifest path) pairs.

    A glob matching nothing is fine; a literal path without a manifest is
    not. Directories already seen (including the root) are skipped.

    Raises:
        MemberNotFound: If a literal member has no manifest.
    """
    seen: set[Path] = {root.resolve()}
    found: list[tuple[ManifestAdapter, Path]] = []

    for pattern in patterns:
        if is_glob(pattern):
            # root_dir keeps glob characters in the root's own path literal
            matches = sorted(glob.glob(pattern, root_dir=root, recursive=True))
            directories = [root / m for m in matches if (root / m).is_dir()]
            if not directories:
                logger.debug("member pattern %r matched no directories", pattern)
        else:
            directory = root / pattern
            if find_manifest(directory, prefer) is None:
                raise MemberNotFound(pattern, root)
            directories = [directory]

        for directory in directories:
            canonical = directory.resolve()
            if canonical in seen:
                continue
            located = find_manifest(canonical, prefer)
            if located is None:
                logger.debug("skipping %s: no manifest", directory)
                continue
            seen.add(canonical)
            found.append(located)

    return found


def is_excluded(directory: Path, root: Path, patterns: Iterable[str]) -> bool:
    """Check a member directory against exclusion paths/globs relative to root."""
    rel = Path(os.path.relpath(directory, root)).as_posix()
    for pattern in patterns:
        normalized = PurePosixPath(pattern).as_posix().rstrip("/")
        if fnmatch.fnmatchcase(rel, normalized) or rel.startswith(normalized + "/"):
            return True
    return False


def _single_package(start: Path) -> Workspace:
    for directory in (start, *start.parents):
        located = find_manifest(directory)
        if located is None:
            continue
        adapter, manifest = located
        logger.debug("no workspace root; using %s as a single package", manifest)
        root_package = _make_package(adapter, adapter.load(manifest), is_root=True)
        return Workspace(root=directory, packages=[root_package], single_package=True)
    raise NoManifestFound(start)


def load_workspace(
    start: Path | str | None = None,
    *,
    include_ignored: bool = False,
    exclude: Iterable[str] = (),
    ignore_rules: IgnoreRules | None = None,
) -> Workspace:
    """Discover the workspace containing `start` (default: the current directory).

    Args:
        start: Directory to search from.
        include_ignored: Keep members that version control ignores.
        exclude: Extra member paths or globs to leave out, relative to the root.
        ignore_rules: Ignore-rule capability; defaults to asking git.

    Returns:
        The workspace, root package first, members in discovery order.

    Raises:
        NoManifestFound: If there is no manifest at all above `start`.
        ManifestError: If a manifest cannot be read or parsed.
        MemberNotFound: If a literal member path has no manifest.
        DuplicatePackage: If two manifests declare the same package name.
    """
    start = Path(start or Path.cwd()).resolve()
    if start.is_file():
        start = start.parent

    try:
        adapter, document = find_workspace_root(start)
    except NoWorkspaceFound:
        return _single_package(start)

    root = document.path.parent
    config = WorkspaceConfig.from_manifest(adapter, document)
    exclusions = [*adapter.exclude_patterns(document), *config.exclude, *exclude]
    if include_ignored or config.include_ignored:
        ignore_rules = NoIgnoreRules()
    elif ignore_rules is None:
        ignore_rules = default_ignore_rules(root)

    candidates = []
    for member_adapter, manifest in expand_members(
        root, adapter.member_patterns(document), adapter.dialect
    ):
        if is_excluded(manifest.parent, root, exclusions):
            logger.debug("excluding %s", manifest.parent)
            continue
        candidates.append((member_adapter, manifest))

    ignored = ignore_rules.ignored(manifest for _, manifest in candidates)

    packages = [_make_package(adapter, document, is_root=True)]
    seen = {packages[0].name: packages[0].manifest_path}
    for member_adapter, manifest in candidates:
        if manifest in ignored:
            logger.debug("skipping ignored member %s", manifest.parent)
            continue
        package = _make_package(member_adapter, member_adapter.load(manifest))
        if package.name in seen:
            raise DuplicatePackage(package.name, seen[package.name], manifest)
        seen[package.name] = manifest
        packages.append(package)

    logger.debug("discovered %d package(s) under %s", len(packages), root)
    return Workspace(root=root, packages=packages)
