"""Apply a MutationPlan to disk as one transaction.

Three phases:
1. stage: produce the new text of every manifest in memory and re-parse it
   to prove the edit lands exactly where intended;
2. verify: re-read every manifest and compare its digest with what was
   read at discovery, and check it is still writable;
3. flush: replace each file atomically (temp file + rename), in plan order.

Any failure in phases 1-2 leaves the workspace untouched. A failure in
phase 3 after at least one file was replaced raises PartialCommit listing
the files already written.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path

from .errors import ManifestError, PartialCommit, SerializationError, StaleManifest
from .manifests import ManifestDocument, adapter_for, digest_text, read_manifest_text
from .models import CommitReport, MutationPlan, PlanEntry, VersionChange

logger = logging.getLogger(__name__)


@dataclass
class StagedEdit:
    entry: PlanEntry
    document: ManifestDocument
    text: str


def _document(entry: PlanEntry) -> ManifestDocument:
    package = entry.package
    adapter = adapter_for(package.dialect)
    if package.document is None:
        return adapter.load(package.manifest_path)
    return package.document


def stage(entry: PlanEntry) -> StagedEdit:
    """Render one edit in memory and check it reads back as the target.

    Raises:
        SerializationError: If the edit cannot be made or does not round-trip.
    """
    adapter = adapter_for(entry.package.dialect)
    document = _document(entry)
    text = adapter.write(document, entry.target)
    try:
        written = adapter.parse_version_field(text, document.path)
    except ManifestError as exc:
        raise SerializationError(document.path, f"edit produced an unparsable file ({exc.reason})") from exc
    if written != entry.target:
        raise SerializationError(
            document.path, f"edit reads back as {written}, expected {entry.target}"
        )
    logger.debug("staged %s: %s -> %s", document.path, entry.old, entry.target)
    return StagedEdit(entry=entry, document=document, text=text)


def verify(edit: StagedEdit) -> None:
    """Make sure the file on disk is still the one that was read.

    Raises:
        StaleManifest: If the file changed since discovery.
        SerializationError: If it can no longer be read or written.
    """
    path = edit.document.path
    try:
        current = read_manifest_text(path)
    except ManifestError as exc:
        raise SerializationError(path, exc.reason) from exc
    if digest_text(current) != edit.document.digest:
        raise StaleManifest(path)
    if not os.access(path, os.W_OK) or not os.access(path.parent, os.W_OK):
        raise SerializationError(path, "permission denied")


def atomic_write(path: Path, text: str) -> None:
    """Replace `path` with `text` via a temp file in the same directory.

    Readers see either the old or the new content, never a torn write. The
    original file mode is kept.
    """
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        shutil.copymode(path, tmp)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def apply_plan(plan: MutationPlan, *, dry_run: bool = False) -> CommitReport:
    """Write every planned change, or none of them.

    Args:
        plan: The plan from planner.plan().
        dry_run: Stage and verify everything, but write nothing.

    Returns:
        A report of every change, and of the files actually written.

    Raises:
        SerializationError: If any edit fails to stage or verify, or the first
            flush fails. Nothing has been written.
        PartialCommit: If a flush fails after other files were written.
    """
    changes = [
        VersionChange(
            package=entry.package.name,
            old_version=entry.old_version,
            new_version=entry.new_version,
            path=entry.package.manifest_path,
            action=entry.action,
        )
        for entry in plan.entries
    ]

    staged = [stage(entry) for entry in plan.entries if entry.writes]
    for edit in staged:
        verify(edit)

    report = CommitReport(operation=plan.operation, changes=changes, dry_run=dry_run)
    if dry_run:
        logger.debug("dry run: %d file(s) would be written", len(staged))
        return report

    for edit in staged:
        path = edit.document.path
        try:
            atomic_write(path, edit.text)
        except OSError as exc:
            if not report.written:
                raise SerializationError(path, exc.strerror or str(exc)) from exc
            raise PartialCommit(list(report.written), path, exc) from exc
        logger.debug("wrote %s", path)
        report.written.append(path)

    return report
