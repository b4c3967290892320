"""Shared test fixtures."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

CARGO_ROOT = """\
# Acme workspace
[package]
name = "acme"
version = { workspace = true }

[workspace]
members = ["crates/*"]

[workspace.package]
version = "1.0.0"
edition = "2021"
"""

CARGO_CORE = """\
[package]
name = "acme-core"
# released on its own schedule
version = "0.5.0"
edition = "2021"

[dependencies]
serde = { version = "1", features = ["derive"] }
"""

CARGO_CLI = """\
[package]
name = "acme-cli"
version = { workspace = true }
edition.workspace = true

[dependencies]
acme-core = { path = "../core", version = "0.5.0" }
"""

NPM_ROOT = """\
{
  "name": "web",
  "version": "2.0.0",
  "private": true,
  "workspaces": ["packages/*"]
}
"""

NPM_UI = """\
{
  "name": "@web/ui",
  "version": "3.1.0",
  "dependencies": {
    "@web/utils": "workspace:*"
  }
}
"""

NPM_UTILS = """\
{
  "name": "@web/utils",
  "version": "workspace:*"
}
"""


def write(root: Path, rel: str, text: str) -> Path:
    """Write `text` to root/rel, creating parent directories."""
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


def write_json(root: Path, rel: str, data: dict) -> Path:
    return write(root, rel, json.dumps(data, indent=2) + "\n")


@pytest.fixture
def cargo_workspace(tmp_path: Path) -> Path:
    """A Cargo workspace: root at 1.0.0, acme-core explicit, acme-cli inherited."""
    root = tmp_path / "acme"
    write(root, "Cargo.toml", CARGO_ROOT)
    write(root, "crates/core/Cargo.toml", CARGO_CORE)
    write(root, "crates/cli/Cargo.toml", CARGO_CLI)
    return root


@pytest.fixture
def npm_workspace(tmp_path: Path) -> Path:
    """An npm workspace: root at 2.0.0, @web/ui explicit, @web/utils inherited."""
    root = tmp_path / "web"
    write(root, "package.json", NPM_ROOT)
    write(root, "packages/ui/package.json", NPM_UI)
    write(root, "packages/utils/package.json", NPM_UTILS)
    return root


@pytest.fixture
def mixed_lint_workspace(tmp_path: Path) -> Path:
    """Virtual Cargo workspace with 3 valid, 1 missing and 1 malformed member."""
    root = tmp_path / "lintme"
    write(root, "Cargo.toml", '[workspace]\nmembers = ["crates/*"]\n')
    write(root, "crates/a/Cargo.toml", '[package]\nname = "a"\nversion = "1.0.0"\n')
    write(root, "crates/b/Cargo.toml", '[package]\nname = "b"\nversion = "0.2.0"\n')
    write(root, "crates/c/Cargo.toml", '[package]\nname = "c"\nversion = "3.0.0-rc.1"\n')
    write(root, "crates/d/Cargo.toml", '[package]\nname = "d"\n')
    write(root, "crates/e/Cargo.toml", '[package]\nname = "e"\nversion = "x.y"\n')
    return root


def snapshot(root: Path) -> dict[Path, bytes]:
    """Contents of every file under root, for asserting nothing changed."""
    return {p: p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}
