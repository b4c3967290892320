"""Cargo.toml reading and writing.

Uses tomlkit to preserve formatting and comments when rewriting the
version, so the only bytes that change are those of the version value.

Where the version lives:
- a workspace root reads `[workspace.package].version` (what members
  inherit), falling back to `[package].version`;
- any other manifest reads `[package].version`, where
  `version = { workspace = true }` (or `version.workspace = true`) marks
  inheritance from the root.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import Table

from .errors import ManifestError, SerializationError
from .manifests import ManifestDocument, digest_text, read_manifest_text
from .models import Dialect, FieldKind, VersionField


def parse_cargo_toml(text: str, path: Path) -> tomlkit.TOMLDocument:
    try:
        return tomlkit.parse(text)
    except TOMLKitError as exc:
        raise ManifestError(path, f"invalid TOML ({exc})") from exc


def _table(container: Any, key: str) -> Any:
    value = container.get(key) if container is not None else None
    return value if isinstance(value, dict) else None


def version_table(doc: tomlkit.TOMLDocument) -> tuple[Any, bool]:
    """Find the table that owns this manifest's version field.

    Returns (table, shared) where `shared` is True for [workspace.package].
    The table is None for a manifest with neither [package] nor
    [workspace.package], e.g. a virtual workspace without shared metadata.
    """
    package = _table(doc, "package")
    shared = _table(_table(doc, "workspace"), "package")
    if shared is not None and "version" in shared:
        return shared, True
    if package is not None and "version" in package:
        return package, False
    if shared is not None:
        return shared, True
    return package, False


def _plain(value: Any) -> dict[str, Any]:
    return value.unwrap() if hasattr(value, "unwrap") else dict(value)


def _is_inheritance_marker(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    return _plain(value).get("workspace") is True


def classify_version(doc: tomlkit.TOMLDocument) -> VersionField:
    """Classify the version field of a parsed Cargo.toml.

    A string is Explicit (or Malformed when it is not semver), an inheritance
    table is Inherited, no field is Missing, and any other shape is Malformed.
    """
    table, _ = version_table(doc)
    if table is None or "version" not in table:
        return VersionField.missing()

    value = table["version"]
    if isinstance(value, str):
        return VersionField.from_string(str(value))
    if _is_inheritance_marker(value):
        return VersionField.inherited()
    raw = value.as_string() if hasattr(value, "as_string") else str(value)
    return VersionField.malformed(raw.strip())


_HEADER = re.compile(r"^\s*\[(\[?)([^\]]*)\]")
_DOTTED_MARKER = re.compile(r"^(\s*)version\s*\.\s*workspace\s*=\s*true(.*)$")


def replace_marker_table(text: str, raw: str) -> str:
    """Swap a table-shaped inheritance marker for `version = "<raw>"`.

    tomlkit re-appends a key whose value changes from a table to a string,
    so `version.workspace = true` and `[package.version]` are rewritten line
    by line instead. The dotted form is replaced on its own line; the
    sub-table is dropped and the version goes after the last line of
    [package].
    """
    value = tomlkit.string(raw).as_string()
    newline = "\r\n" if "\r\n" in text else "\n"
    out: list[str] = []
    section: str | None = None
    package_end: int | None = None
    replaced = False

    for line in text.splitlines(keepends=True):
        header = _HEADER.match(line)
        if header:
            name = "".join(header.group(2).split())
            section = None if header.group(1) else name
        if section == "package.version":
            continue
        body = line.rstrip("\r\n")
        if section == "package":
            dotted = None if header else _DOTTED_MARKER.match(body)
            if dotted:
                line = f"{dotted.group(1)}version = {value}{dotted.group(2)}{line[len(body):]}"
                replaced = True
            if header or body.strip():
                package_end = len(out)
        out.append(line)

    if not replaced:
        if package_end is None:
            raise ValueError("no [package] table")
        if not out[package_end].endswith(("\n", "\r")):
            out[package_end] += newline
        out.insert(package_end + 1, f"version = {value}{newline}")
    return "".join(out)


class CargoAdapter:
    """Adapter for the TOML dialect (Cargo.toml)."""

    dialect = Dialect.CARGO
    filename = "Cargo.toml"

    def load(self, path: Path) -> ManifestDocument:
        text = read_manifest_text(path)
        return ManifestDocument(
            path=path,
            dialect=self.dialect,
            text=text,
            data=parse_cargo_toml(text, path),
            digest=digest_text(text),
        )

    def read(self, path: Path) -> tuple[VersionField, ManifestDocument]:
        document = self.load(path)
        return self.version_field(document), document

    def version_field(self, document: ManifestDocument) -> VersionField:
        return classify_version(document.data)

    def parse_version_field(self, text: str, path: Path) -> VersionField:
        return classify_version(parse_cargo_toml(text, path))

    def package_name(self, document: ManifestDocument) -> str | None:
        package = _table(document.data, "package")
        name = package.get("name") if package is not None else None
        return str(name) if isinstance(name, str) else None

    def is_workspace_root(self, document: ManifestDocument) -> bool:
        return _table(document.data, "workspace") is not None

    def member_patterns(self, document: ManifestDocument) -> list[str]:
        """Extract [workspace].members, e.g. ["crates/*", "tools/cli"]."""
        workspace = _table(document.data, "workspace") or {}
        return [str(m) for m in workspace.get("members", [])]

    def exclude_patterns(self, document: ManifestDocument) -> list[str]:
        workspace = _table(document.data, "workspace") or {}
        return [str(m) for m in workspace.get("exclude", [])]

    def settings(self, document: ManifestDocument) -> dict[str, Any]:
        """Read monover settings from [workspace.metadata.monover]."""
        metadata = _table(_table(document.data, "workspace"), "metadata")
        settings = _table(metadata, "monover")
        return _plain(settings) if settings is not None else {}

    def write(self, document: ManifestDocument, field: VersionField) -> str:
        """Return the manifest text with only the version value replaced.

        The open document is left untouched; the edit is made on a fresh
        parse of its text so an aborted transaction leaves nothing behind.
        Replacing an existing value keeps its trailing comment.
        """
        doc = parse_cargo_toml(document.text, document.path)
        table, shared = version_table(doc)
        if table is None:
            raise SerializationError(
                document.path, "no [package] or [workspace.package] table to hold a version"
            )

        if field.kind is FieldKind.EXPLICIT:
            if not shared and isinstance(table.get("version"), Table):
                try:
                    return replace_marker_table(document.text, field.raw)
                except ValueError as exc:
                    raise SerializationError(document.path, str(exc)) from exc
            table["version"] = field.raw
        elif field.kind is FieldKind.INHERITED:
            if shared:
                raise SerializationError(
                    document.path, "[workspace.package] cannot inherit its own version"
                )
            marker = tomlkit.inline_table()
            marker["workspace"] = True
            table["version"] = marker
        else:
            raise SerializationError(
                document.path, f"cannot write a {field.kind.value} version field"
            )
        return tomlkit.dumps(doc)
