"""package.json reading and writing.

package.json is parsed with the json module for reading, but edits are
made by replacing the source span of the top-level "version" value, so
indentation, key order and everything else in the file stay byte-for-byte
as the author wrote them.

Workspace conventions:
- a root declares "workspaces" (a list of patterns, or an object with a
  "packages" list), or sits next to a pnpm-workspace.yaml;
- patterns starting with "!" are exclusions;
- a version string starting with "workspace:" defers to the root.
"""

from __future__ import annotations

import json
import re
from json.decoder import scanstring
from pathlib import Path
from typing import Any, NamedTuple

import yaml

from .errors import ManifestError, SerializationError
from .manifests import ManifestDocument, digest_text, read_manifest_text
from .models import Dialect, FieldKind, VersionField

INHERIT_PREFIX = "workspace:"
INHERIT_MARKER = "workspace:*"
PNPM_WORKSPACE_FILE = "pnpm-workspace.yaml"

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_decoder = json.JSONDecoder()


def parse_package_json(text: str, path: Path) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ManifestError(path, f"invalid JSON ({exc})") from exc
    if not isinstance(data, dict):
        raise ManifestError(path, "top-level JSON value must be an object")
    return data


def classify_version(data: dict[str, Any]) -> VersionField:
    """Classify the "version" value of a parsed package.json.

    null counts as Missing; any non-string value is Malformed.
    """
    value = data.get("version")
    if value is None:
        return VersionField.missing()
    if not isinstance(value, str):
        return VersionField.malformed(json.dumps(value))
    if value.startswith(INHERIT_PREFIX):
        return VersionField.inherited()
    return VersionField.from_string(value)


class _Member(NamedTuple):
    key: str
    key_start: int
    value_start: int
    value_end: int


def _skip_ws(text: str, idx: int) -> int:
    return _WHITESPACE.match(text, idx).end()


def scan_top_level(text: str) -> tuple[int, list[_Member]]:
    """Locate the members of the top-level object.

    Returns the offset of the opening brace and, for every member, the
    offsets of its key and of its value's source span.

    Raises:
        ValueError: If the text is not a JSON object.
    """
    idx = _skip_ws(text, 0)
    if not text.startswith("{", idx):
        raise ValueError("top-level value is not an object")
    brace = idx
    idx = _skip_ws(text, idx + 1)
    members: list[_Member] = []
    if text.startswith("}", idx):
        return brace, members

    while True:
        if not text.startswith('"', idx):
            raise ValueError(f"expected a key at offset {idx}")
        key_start = idx
        key, idx = scanstring(text, idx + 1)
        idx = _skip_ws(text, idx)
        if not text.startswith(":", idx):
            raise ValueError(f"expected ':' at offset {idx}")
        value_start = _skip_ws(text, idx + 1)
        _, value_end = _decoder.raw_decode(text, value_start)
        members.append(_Member(key, key_start, value_start, value_end))

        idx = _skip_ws(text, value_end)
        if text.startswith(",", idx):
            idx = _skip_ws(text, idx + 1)
        elif text.startswith("}", idx):
            return brace, members
        else:
            raise ValueError(f"expected ',' or '}}' at offset {idx}")


def replace_version(text: str, value: str) -> str:
    """Set the top-level "version" to `value`, touching nothing else.

    A missing "version" is inserted right after "name" (or as the first
    member), using the indentation of the existing first member.
    """
    rendered = json.dumps(value)
    brace, members = scan_top_level(text)

    existing = [m for m in members if m.key == "version"]
    if existing:
        # json.loads keeps the last duplicate, so edit that one
        span = existing[-1]
        return text[: span.value_start] + rendered + text[span.value_end :]

    entry = f'"version": {rendered}'
    if not members:
        return text[: brace + 1] + entry + text[brace + 1 :]

    first = members[0]
    separator = text[brace + 1 : first.key_start]
    names = [m for m in members if m.key == "name"]
    if names:
        after = names[-1].value_end
        return text[:after] + "," + separator + entry + text[after:]
    return text[: first.key_start] + entry + "," + separator + text[first.key_start :]


def _split_patterns(patterns: list[Any]) -> tuple[list[str], list[str]]:
    include: list[str] = []
    exclude: list[str] = []
    for pattern in patterns:
        if not isinstance(pattern, str):
            continue
        if pattern.startswith("!"):
            exclude.append(pattern[1:])
        else:
            include.append(pattern)
    return include, exclude


def load_pnpm_workspace(directory: Path) -> list[Any] | None:
    """Return the `packages` list of a pnpm-workspace.yaml, if one exists."""
    path = directory / PNPM_WORKSPACE_FILE
    if not path.is_file():
        return None
    try:
        data = yaml.safe_load(read_manifest_text(path)) or {}
    except yaml.YAMLError as exc:
        raise ManifestError(path, f"invalid YAML ({exc})") from exc
    packages = data.get("packages", []) if isinstance(data, dict) else []
    return list(packages or [])


class NpmAdapter:
    """Adapter for the JSON dialect (package.json)."""

    dialect = Dialect.NPM
    filename = "package.json"

    def load(self, path: Path) -> ManifestDocument:
        text = read_manifest_text(path)
        return ManifestDocument(
            path=path,
            dialect=self.dialect,
            text=text,
            data=parse_package_json(text, path),
            digest=digest_text(text),
        )

    def read(self, path: Path) -> tuple[VersionField, ManifestDocument]:
        document = self.load(path)
        return self.version_field(document), document

    def version_field(self, document: ManifestDocument) -> VersionField:
        return classify_version(document.data)

    def parse_version_field(self, text: str, path: Path) -> VersionField:
        return classify_version(parse_package_json(text, path))

    def package_name(self, document: ManifestDocument) -> str | None:
        name = document.data.get("name")
        return name if isinstance(name, str) and name else None

    def is_workspace_root(self, document: ManifestDocument) -> bool:
        if "workspaces" in document.data:
            return True
        return (document.path.parent / PNPM_WORKSPACE_FILE).is_file()

    def _patterns(self, document: ManifestDocument) -> list[Any]:
        workspaces = document.data.get("workspaces")
        if isinstance(workspaces, dict):
            workspaces = workspaces.get("packages")
        patterns = list(workspaces) if isinstance(workspaces, list) else []
        patterns.extend(load_pnpm_workspace(document.path.parent) or [])
        return patterns

    def member_patterns(self, document: ManifestDocument) -> list[str]:
        return _split_patterns(self._patterns(document))[0]

    def exclude_patterns(self, document: ManifestDocument) -> list[str]:
        return _split_patterns(self._patterns(document))[1]

    def settings(self, document: ManifestDocument) -> dict[str, Any]:
        """Read monover settings from the top-level "monover" object."""
        settings = document.data.get("monover")
        return settings if isinstance(settings, dict) else {}

    def write(self, document: ManifestDocument, field: VersionField) -> str:
        if field.kind is FieldKind.EXPLICIT and field.raw is not None:
            value = field.raw
        elif field.kind is FieldKind.INHERITED:
            value = INHERIT_MARKER
        else:
            raise SerializationError(
                document.path, f"cannot write a {field.kind.value} version field"
            )
        try:
            return replace_version(document.text, value)
        except (ValueError, IndexError) as exc:
            raise SerializationError(
                document.path, f"cannot locate the version field ({exc})"
            ) from exc
