"""Error taxonomy for monover.

Every error carries the identifying details (package name, manifest path,
offending raw value) as attributes so callers can render them however they
like. Discovery and planning errors are raised before any file is touched;
only PartialCommit can describe a workspace that was partially written.
"""

from __future__ import annotations

from pathlib import Path


class MonoverError(Exception):
    """Base class for all monover errors."""


class NoWorkspaceFound(MonoverError):
    """No ancestor directory holds a workspace-declaring manifest.

    Not fatal: discovery falls back to single-package mode.
    """

    def __init__(self, start: Path) -> None:
        self.start = start
        super().__init__(f"No workspace root found above {start}")


class NoManifestFound(MonoverError):
    """Neither a workspace root nor any package manifest could be found."""

    def __init__(self, start: Path) -> None:
        self.start = start
        super().__init__(
            f"No Cargo.toml or package.json found in {start} or its parents"
        )


class ManifestError(MonoverError):
    """A manifest file exists but cannot be read or parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read {path}: {reason}")


class MemberNotFound(MonoverError):
    """A literal (non-glob) member path does not hold a package manifest."""

    def __init__(self, pattern: str, root: Path) -> None:
        self.pattern = pattern
        self.root = root
        super().__init__(
            f"Workspace member '{pattern}' not found (no manifest under {root / pattern})"
        )


class DuplicatePackage(MonoverError):
    def __init__(self, name: str, first: Path, second: Path) -> None:
        self.name = name
        self.paths = (first, second)
        super().__init__(f"Package name '{name}' is used by both {first} and {second}")


class UnknownPackage(MonoverError):
    """A requested package identifier is not part of the workspace."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Package '{name}' not found in workspace")


class UnresolvableInheritance(MonoverError):
    """A package inherits its version but the root has no explicit version."""

    def __init__(self, root: str, package: str) -> None:
        self.root = root
        self.package = package
        super().__init__(
            f"Package '{package}' inherits its version from '{root}', "
            f"which has no explicit version"
        )


class NegativeVersion(MonoverError):
    def __init__(self, package: str | None, current: str, component: str, amount: int, attempted: int) -> None:
        self.package = package
        self.current = current
        self.component = component
        self.amount = amount
        self.attempted = attempted
        who = f" of '{package}'" if package else ""
        super().__init__(
            f"Cannot decrement {component} version{who} by {abs(amount)} from {current}: "
            f"would result in negative version ({attempted})"
        )


class MalformedVersion(MonoverError):
    """A version string is not valid semantic versioning.

    Non-fatal while reading (it becomes a Malformed field); fatal when an
    operation needs the value, e.g. Roll.
    """

    def __init__(self, raw: str, package: str | None = None) -> None:
        self.raw = raw
        self.package = package
        who = f" for package '{package}'" if package else ""
        super().__init__(f"Invalid version '{raw}'{who}")


class MissingVersion(MonoverError):
    def __init__(self, package: str, path: Path) -> None:
        self.package = package
        self.path = path
        super().__init__(f"Package '{package}' has no version field ({path})")


class InvalidOperation(MonoverError):
    """The operation is not allowed for the requested scope or package."""


class SerializationError(MonoverError):
    """A staged manifest edit could not be produced or validated.

    Raised before anything is flushed, so the workspace is untouched.
    """

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot update {path}: {reason}")


class StaleManifest(SerializationError):
    """The manifest changed on disk between discovery and commit."""

    def __init__(self, path: Path) -> None:
        super().__init__(path, "file was modified by another process since it was read")


class PartialCommit(MonoverError):
    """A flush failed after some files were already written.

    The one failure that can leave the workspace in a mixed state; the
    committed files are listed so they can be reconciled by hand.
    """

    def __init__(self, committed: list[Path], failed: Path, cause: BaseException) -> None:
        self.committed = committed
        self.failed = failed
        self.cause = cause
        done = ", ".join(str(p) for p in committed) or "none"
        super().__init__(
            f"Failed to write {failed} ({cause}); files already written: {done}"
        )
