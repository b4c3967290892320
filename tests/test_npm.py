"""Tests for monover.npm."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import NPM_ROOT, NPM_UI, write, write_json
from monover.errors import ManifestError, SerializationError
from monover.manifests import ManifestDocument
from monover.models import Dialect, FieldKind, VersionField
from monover.npm import NpmAdapter, classify_version, replace_version


class TestClassifyVersion:
    def test_explicit(self) -> None:
        assert classify_version({"version": "1.2.3"}) == VersionField.explicit("1.2.3")

    @pytest.mark.parametrize("marker", ["workspace:*", "workspace:^", "workspace:~1.0.0"])
    def test_inherited(self, marker: str) -> None:
        assert classify_version({"version": marker}).is_inherited

    def test_absent_is_missing(self) -> None:
        assert classify_version({"name": "x"}).kind is FieldKind.MISSING

    def test_null_is_missing(self) -> None:
        assert classify_version({"version": None}).kind is FieldKind.MISSING

    def test_non_semver_string(self) -> None:
        assert classify_version({"version": "x.y"}) == VersionField.malformed("x.y")

    def test_non_string_value(self) -> None:
        assert classify_version({"version": 1.5}) == VersionField.malformed("1.5")


class TestReplaceVersion:
    def test_replaces_only_the_value(self) -> None:
        assert replace_version(NPM_UI, "3.2.0") == NPM_UI.replace('"3.1.0"', '"3.2.0"')

    def test_nested_version_keys_untouched(self) -> None:
        text = '{"name": "a", "engines": {"version": "1.0.0"}, "version": "0.1.0"}'
        assert replace_version(text, "0.2.0") == (
            '{"name": "a", "engines": {"version": "1.0.0"}, "version": "0.2.0"}'
        )

    def test_keeps_crlf_and_odd_spacing(self) -> None:
        text = '{\r\n\t"name" : "a" ,\r\n\t"version"  :  "1.0.0"\r\n}\r\n'
        assert replace_version(text, "1.0.1") == text.replace("1.0.0", "1.0.1")

    def test_inserts_after_name(self) -> None:
        text = '{\n  "name": "a",\n  "private": true\n}\n'
        assert replace_version(text, "0.1.0") == (
            '{\n  "name": "a",\n  "version": "0.1.0",\n  "private": true\n}\n'
        )

    def test_inserts_first_without_name(self) -> None:
        text = '{\n    "private": true\n}\n'
        assert replace_version(text, "0.1.0") == (
            '{\n    "version": "0.1.0",\n    "private": true\n}\n'
        )

    def test_inserts_into_empty_object(self) -> None:
        assert replace_version("{}", "1.0.0") == '{"version": "1.0.0"}'

    def test_replaces_null(self) -> None:
        assert replace_version('{"version": null}', "1.0.0") == '{"version": "1.0.0"}'

    def test_duplicate_keys_edit_the_last(self) -> None:
        text = '{"version": "1.0.0", "version": "2.0.0"}'
        assert replace_version(text, "3.0.0") == '{"version": "1.0.0", "version": "3.0.0"}'

    def test_not_an_object(self) -> None:
        with pytest.raises(ValueError):
            replace_version("[1, 2]", "1.0.0")


class TestNpmAdapter:
    def test_read(self, tmp_path: Path) -> None:
        adapter = NpmAdapter()
        field, document = adapter.read(write(tmp_path, "package.json", NPM_UI))
        assert field == VersionField.explicit("3.1.0")
        assert adapter.package_name(document) == "@web/ui"
        assert not adapter.is_workspace_root(document)

    def test_workspaces_array(self, tmp_path: Path) -> None:
        path = write_json(
            tmp_path, "package.json", {"name": "r", "workspaces": ["packages/*", "!packages/legacy"]}
        )
        adapter = NpmAdapter()
        document = adapter.load(path)
        assert adapter.is_workspace_root(document)
        assert adapter.member_patterns(document) == ["packages/*"]
        assert adapter.exclude_patterns(document) == ["packages/legacy"]

    def test_workspaces_object(self, tmp_path: Path) -> None:
        path = write_json(tmp_path, "package.json", {"workspaces": {"packages": ["apps/*"]}})
        adapter = NpmAdapter()
        assert adapter.member_patterns(adapter.load(path)) == ["apps/*"]

    def test_pnpm_workspace_file(self, tmp_path: Path) -> None:
        path = write_json(tmp_path, "package.json", {"name": "r", "version": "1.0.0"})
        write(tmp_path, "pnpm-workspace.yaml", "packages:\n  - 'libs/*'\n  - '!libs/scratch'\n")
        adapter = NpmAdapter()
        document = adapter.load(path)
        assert adapter.is_workspace_root(document)
        assert adapter.member_patterns(document) == ["libs/*"]
        assert adapter.exclude_patterns(document) == ["libs/scratch"]

    def test_invalid_pnpm_workspace_file(self, tmp_path: Path) -> None:
        path = write_json(tmp_path, "package.json", {"name": "r"})
        write(tmp_path, "pnpm-workspace.yaml", "packages: [unclosed\n")
        adapter = NpmAdapter()
        with pytest.raises(ManifestError):
            adapter.member_patterns(adapter.load(path))

    def test_settings(self, tmp_path: Path) -> None:
        path = write_json(tmp_path, "package.json", {"workspaces": [], "monover": {"exclude": ["x"]}})
        adapter = NpmAdapter()
        assert adapter.settings(adapter.load(path)) == {"exclude": ["x"]}

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = write(tmp_path, "package.json", '{"name": ')
        with pytest.raises(ManifestError, match="invalid JSON"):
            NpmAdapter().read(path)

    def test_top_level_must_be_object(self, tmp_path: Path) -> None:
        path = write(tmp_path, "package.json", "[]")
        with pytest.raises(ManifestError, match="object"):
            NpmAdapter().read(path)

    def test_write_inherited_marker(self, tmp_path: Path) -> None:
        adapter = NpmAdapter()
        document = adapter.load(write(tmp_path, "package.json", NPM_UI))
        text = adapter.write(document, VersionField.inherited())
        assert text == NPM_UI.replace('"3.1.0"', '"workspace:*"')

    def test_write_missing_version(self, tmp_path: Path) -> None:
        adapter = NpmAdapter()
        document = adapter.load(write_json(tmp_path, "package.json", {"name": "x"}))
        text = adapter.write(document, VersionField.explicit("0.1.0"))
        assert adapter.parse_version_field(text, document.path) == VersionField.explicit("0.1.0")

    def test_write_unlocatable_field(self, tmp_path: Path) -> None:
        document = ManifestDocument(
            path=tmp_path / "package.json", dialect=Dialect.NPM, text="[1]", data={}, digest=""
        )
        with pytest.raises(SerializationError, match="cannot locate"):
            NpmAdapter().write(document, VersionField.explicit("1.0.0"))

    def test_root_fixture(self, tmp_path: Path) -> None:
        adapter = NpmAdapter()
        field, document = adapter.read(write(tmp_path, "package.json", NPM_ROOT))
        assert field == VersionField.explicit("2.0.0")
        assert adapter.is_workspace_root(document)
