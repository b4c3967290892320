"""Ignore-rule capabilities used during member discovery.

Discovery never decides on its own what counts as ignored; it hands the
candidate manifest paths to an IgnoreRules implementation. The default asks
git, so .gitignore, .git/info/exclude and global excludes all apply.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Protocol

from .shell import git

logger = logging.getLogger(__name__)


class IgnoreRules(Protocol):
    def ignored(self, paths: Iterable[Path]) -> set[Path]:
        """Return the subset of `paths` that should be skipped."""
        ...


class NoIgnoreRules:
    """Ignore nothing; used when ignored members are explicitly included."""

    def ignored(self, paths: Iterable[Path]) -> set[Path]:
        return set()


class GitIgnoreRules:
    """Evaluate ignore rules with `git check-ignore --stdin`.

    Outside a git repository, or without a git binary, nothing is ignored.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def ignored(self, paths: Iterable[Path]) -> set[Path]:
        candidates = list(paths)
        if not candidates:
            return set()
        try:
            result = git(
                "check-ignore",
                "--stdin",
                "-z",
                cwd=self.root,
                input="\0".join(str(p) for p in candidates) + "\0",
                check=False,
            )
        except FileNotFoundError:
            logger.debug("git not found; ignore rules not applied")
            return set()

        # 0: some paths ignored, 1: none ignored, anything else: not a repo etc.
        if result.returncode not in (0, 1):
            logger.debug("git check-ignore failed in %s: %s", self.root, result.stderr.strip())
            return set()

        reported = {entry for entry in result.stdout.split("\0") if entry}
        return {p for p in candidates if str(p) in reported}


def default_ignore_rules(root: Path, include_ignored: bool = False) -> IgnoreRules:
    if include_ignored:
        return NoIgnoreRules()
    return GitIgnoreRules(root)

