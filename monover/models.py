"""Data models for monover.

These Pydantic models represent the workspace as read from disk, the
scope and operation a caller asks for, and the plans and reports that flow
between the resolver, planner and writer.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import semver
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .versions import RollKind, is_valid_version, parse_version


class Dialect(str, Enum):
    """Manifest dialects monover knows how to read and write."""

    CARGO = "cargo"
    NPM = "npm"


class FieldKind(str, Enum):
    EXPLICIT = "explicit"
    INHERITED = "inherited"
    MISSING = "missing"
    MALFORMED = "malformed"


class VersionField(BaseModel):
    """The state of a package's version field as found in its manifest.

    Attributes:
        kind: Which variant this is.
        raw: The version text for Explicit, the offending text for Malformed,
             None otherwise.
    """

    model_config = ConfigDict(frozen=True)

    kind: FieldKind
    raw: str | None = None

    @classmethod
    def explicit(cls, version: str | semver.Version) -> VersionField:
        return cls(kind=FieldKind.EXPLICIT, raw=str(version))

    @classmethod
    def inherited(cls) -> VersionField:
        return cls(kind=FieldKind.INHERITED)

    @classmethod
    def missing(cls) -> VersionField:
        return cls(kind=FieldKind.MISSING)

    @classmethod
    def malformed(cls, raw: str) -> VersionField:
        return cls(kind=FieldKind.MALFORMED, raw=raw)

    @classmethod
    def from_string(cls, raw: str) -> VersionField:
        """Classify a literal version string as Explicit or Malformed."""
        if is_valid_version(raw):
            return cls.explicit(raw)
        return cls.malformed(raw)

    @property
    def is_explicit(self) -> bool:
        return self.kind is FieldKind.EXPLICIT

    @property
    def is_inherited(self) -> bool:
        return self.kind is FieldKind.INHERITED

    @property
    def version(self) -> semver.Version:
        """The parsed version of an Explicit field."""
        if self.kind is not FieldKind.EXPLICIT or self.raw is None:
            raise ValueError(f"{self.kind.value} version field has no value")
        return parse_version(self.raw)

    def __str__(self) -> str:
        if self.kind in (FieldKind.EXPLICIT, FieldKind.MALFORMED):
            return self.raw or ""
        return f"<{self.kind.value}>"


class Package(BaseModel):
    """A single package in the workspace.

    Attributes:
        name: Unique identifier within the workspace.
        manifest_path: Absolute path to Cargo.toml / package.json.
        dialect: Which manifest dialect the file uses.
        version_field: The version field as read at discovery time.
        is_root: True for the workspace root (or the sole package).
        document: The open manifest handle used later for writing.
    """

    name: str
    manifest_path: Path
    dialect: Dialect
    version_field: VersionField
    is_root: bool = False
    document: Any = Field(default=None, exclude=True, repr=False)

    @property
    def path(self) -> Path:
        return self.manifest_path.parent


class Workspace(BaseModel):
    """A root directory plus its member packages, in discovery order.

    The root package is always packages[0], even when the workspace has no
    members or the root manifest has no version of its own.
    """

    root: Path
    packages: list[Package]
    single_package: bool = False

    @model_validator(mode="after")
    def check_packages(self) -> Workspace:
        if not self.packages or not self.packages[0].is_root:
            raise ValueError("workspace must start with its root package")
        names = [p.name for p in self.packages]
        if len(names) != len(set(names)):
            raise ValueError("package names must be unique within a workspace")
        return self

    @property
    def root_package(self) -> Package:
        return self.packages[0]

    @property
    def members(self) -> list[Package]:
        return self.packages[1:]

    def get(self, name: str) -> Package | None:
        for package in self.packages:
            if package.name == name:
                return package
        return None


class ScopeKind(str, Enum):
    ROOT_ONLY = "root-only"
    NAMED = "named"
    ALL_MEMBERS = "all-members"
    ALL_MEMBERS_EXCEPT = "all-members-except"


class ScopeRequest(BaseModel):
    """Which packages an operation should act on, before resolution."""

    model_config = ConfigDict(frozen=True)

    kind: ScopeKind = ScopeKind.ROOT_ONLY
    names: tuple[str, ...] = ()

    @classmethod
    def root_only(cls) -> ScopeRequest:
        return cls(kind=ScopeKind.ROOT_ONLY)

    @classmethod
    def named(cls, *names: str) -> ScopeRequest:
        return cls(kind=ScopeKind.NAMED, names=tuple(names))

    @classmethod
    def all_members(cls) -> ScopeRequest:
        return cls(kind=ScopeKind.ALL_MEMBERS)

    @classmethod
    def all_members_except(cls, *names: str) -> ScopeRequest:
        return cls(kind=ScopeKind.ALL_MEMBERS_EXCEPT, names=tuple(names))

    @property
    def is_workspace_wide(self) -> bool:
        return self.kind in (ScopeKind.ALL_MEMBERS, ScopeKind.ALL_MEMBERS_EXCEPT)


class Selection(BaseModel):
    """The resolved, deduplicated packages an operation will touch."""

    scope: ScopeRequest
    packages: list[Package] = Field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [p.name for p in self.packages]

    def __contains__(self, name: object) -> bool:
        return name in self.names


def _check_version(value: str) -> str:
    if not is_valid_version(value):
        raise ValueError(f"Invalid semver version: '{value}'")
    return value


class Roll(BaseModel):
    kind: Literal["roll"] = "roll"
    component: RollKind
    amount: int = 1

    def describe(self) -> str:
        return f"roll {self.component.value} {self.amount}"


class SetVersion(BaseModel):
    kind: Literal["set"] = "set"
    version: str

    @field_validator("version")
    @classmethod
    def check_semver(cls, value: str) -> str:
        return _check_version(value)

    def describe(self) -> str:
        return f"set {self.version}"


class SyncVersion(BaseModel):
    """Lockstep Set; only valid over workspace-wide scopes."""

    kind: Literal["sync"] = "sync"
    version: str

    @field_validator("version")
    @classmethod
    def check_semver(cls, value: str) -> str:
        return _check_version(value)

    def describe(self) -> str:
        return f"sync {self.version}"


class Inherit(BaseModel):
    """Switch members back to inheriting the root's version."""

    kind: Literal["inherit"] = "inherit"

    def describe(self) -> str:
        return "inherit"


class Show(BaseModel):
    kind: Literal["show"] = "show"

    def describe(self) -> str:
        return "show"


class Lint(BaseModel):
    kind: Literal["lint"] = "lint"

    def describe(self) -> str:
        return "lint"


Mutation = Annotated[Union[Roll, SetVersion, SyncVersion, Inherit], Field(discriminator="kind")]
Operation = Annotated[
    Union[Roll, SetVersion, SyncVersion, Inherit, Show, Lint], Field(discriminator="kind")
]


class PlanAction(str, Enum):
    WRITE = "write"  # write an explicit version
    INHERIT = "inherit"  # write the inheritance marker
    FOLLOW = "follow"  # keep the marker, effective version follows the root


class PlanEntry(BaseModel):
    """One package's change: its field before, and the effective version after.

    `old_version` is for display: the effective version before the change,
    or the field status when there was none.
    """

    package: Package
    old: VersionField
    old_version: str
    new_version: str
    action: PlanAction = PlanAction.WRITE

    @property
    def writes(self) -> bool:
        return self.action is not PlanAction.FOLLOW

    @property
    def target(self) -> VersionField:
        if self.action is PlanAction.WRITE:
            return VersionField.explicit(self.new_version)
        return VersionField.inherited()


class MutationPlan(BaseModel):
    """Target versions per package, computed before anything is written."""

    operation: str
    entries: list[PlanEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique(self) -> MutationPlan:
        names = [e.package.name for e in self.entries]
        if len(names) != len(set(names)):
            raise ValueError("a plan may target each package only once")
        return self

    def __len__(self) -> int:
        return len(self.entries)


class VersionChange(BaseModel):
    """Records a version change for a package.

    Attributes:
        package: Package name.
        old_version: The version (or field status) before the change.
        new_version: The effective version after the change.
        path: Manifest that was (or would be) written.
        action: How the change is realised on disk.
    """

    package: str
    old_version: str
    new_version: str
    path: Path
    action: PlanAction = PlanAction.WRITE


class CommitReport(BaseModel):
    operation: str
    changes: list[VersionChange] = Field(default_factory=list)
    written: list[Path] = Field(default_factory=list)
    dry_run: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


class LintStatus(str, Enum):
    VALID_EXPLICIT = "valid-explicit"
    VALID_INHERITED = "valid-inherited"
    MISSING = "missing"
    MALFORMED = "malformed"


class LintEntry(BaseModel):
    package: str
    path: Path
    status: LintStatus
    raw: str | None = None
    message: str | None = None


class LintReport(BaseModel):
    entries: list[LintEntry] = Field(default_factory=list)

    def count(self, status: LintStatus) -> int:
        return sum(1 for e in self.entries if e.status is status)

    @property
    def problems(self) -> list[LintEntry]:
        return [
            e
            for e in self.entries
            if e.status in (LintStatus.MISSING, LintStatus.MALFORMED)
        ]

    @property
    def ok(self) -> bool:
        return not self.problems


class ShowEntry(BaseModel):
    package: str
    path: Path
    status: FieldKind
    version: str | None = None


class ShowReport(BaseModel):
    entries: list[ShowEntry] = Field(default_factory=list)
