"""Manifest adapters: one per dialect, selected by file name.

An adapter reads a single manifest into a ManifestDocument (the raw text
plus its parsed form), classifies the version field, and produces the new
file text for a version edit. It also knows the dialect's workspace
conventions: how a root declares itself, where member patterns and
exclusions live, and where monover's own settings are kept.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from .errors import ManifestError
from .models import Dialect, VersionField


def digest_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def read_manifest_text(path: Path) -> str:
    """Read a manifest without newline translation, so edits keep CRLF files intact."""
    try:
        return path.read_bytes().decode("utf-8")
    except OSError as exc:
        raise ManifestError(path, exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise ManifestError(path, f"not valid UTF-8 ({exc.reason})") from exc


@dataclass
class ManifestDocument:
    """An open manifest: the exact text read from disk and its parsed form.

    The digest is checked again right before committing so that a file
    edited by someone else in the meantime is never overwritten.
    """

    path: Path
    dialect: Dialect
    text: str
    data: Any
    digest: str


class ManifestAdapter(Protocol):
    dialect: Dialect
    filename: str

    def load(self, path: Path) -> ManifestDocument: ...

    def read(self, path: Path) -> tuple[VersionField, ManifestDocument]: ...

    def version_field(self, document: ManifestDocument) -> VersionField: ...

    def parse_version_field(self, text: str, path: Path) -> VersionField: ...

    def package_name(self, document: ManifestDocument) -> str | None: ...

    def is_workspace_root(self, document: ManifestDocument) -> bool: ...

    def member_patterns(self, document: ManifestDocument) -> list[str]: ...

    def exclude_patterns(self, document: ManifestDocument) -> list[str]: ...

    def settings(self, document: ManifestDocument) -> dict[str, Any]: ...

    def write(self, document: ManifestDocument, field: VersionField) -> str: ...


def all_adapters() -> tuple[ManifestAdapter, ...]:
    """Adapters in lookup order: the TOML dialect wins when both files exist."""
    from .cargo import CargoAdapter
    from .npm import NpmAdapter

    return (CargoAdapter(), NpmAdapter())


def adapter_for(dialect: Dialect) -> ManifestAdapter:
    for adapter in all_adapters():
        if adapter.dialect is dialect:
            return adapter
    raise ValueError(f"No adapter for dialect {dialect!r}")


def find_manifest(
    directory: Path, prefer: Dialect | None = None
) -> tuple[ManifestAdapter, Path] | None:
    """Return the adapter and manifest path for a package directory, if any.

    When a directory holds manifests of both dialects, `prefer` decides.
    """
    adapters = sorted(all_adapters(), key=lambda a: a.dialect is not prefer)
    for adapter in adapters:
        manifest = directory / adapter.filename
        if manifest.is_file():
            return adapter, manifest
    return None
