"""End-to-end run of one request: discover → select → plan → commit.

Every call re-reads the workspace from disk; nothing is cached between
requests.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel, Field

from .ignore import IgnoreRules
from .models import (
    CommitReport,
    Lint,
    LintReport,
    Operation,
    ScopeRequest,
    Show,
    ShowReport,
)
from .planner import lint, plan, show
from .selection import resolve_selection
from .workspace import load_workspace
from .writer import apply_plan

logger = logging.getLogger(__name__)


class Request(BaseModel):
    """A fully parsed request, as produced by the CLI (or any other caller).

    Attributes:
        operation: What to do.
        scope: Which packages to do it to.
        start_dir: Directory discovery starts from.
        include_ignored: Keep members that version control ignores.
        exclude: Extra member paths/globs to leave out of discovery.
        dry_run: Plan and validate, but write nothing.
    """

    operation: Operation
    scope: ScopeRequest = Field(default_factory=ScopeRequest.root_only)
    start_dir: Path = Field(default_factory=Path.cwd)
    include_ignored: bool = False
    exclude: list[str] = Field(default_factory=list)
    dry_run: bool = False


def run(
    request: Request, *, ignore_rules: IgnoreRules | None = None
) -> CommitReport | ShowReport | LintReport:
    """Execute a request against the workspace containing request.start_dir.

    Returns:
        A ShowReport or LintReport for read-only operations, otherwise the
        CommitReport of the transaction.

    Raises:
        MonoverError: Any discovery, selection, planning or commit failure.
    """
    workspace = load_workspace(
        request.start_dir,
        include_ignored=request.include_ignored,
        exclude=request.exclude,
        ignore_rules=ignore_rules,
    )
    selection = resolve_selection(workspace, request.scope)
    logger.debug("%s on %s", request.operation.describe(), ", ".join(selection.names))

    if isinstance(request.operation, Show):
        return show(workspace, selection)
    if isinstance(request.operation, Lint):
        return lint(workspace, selection)

    mutation_plan = plan(workspace, selection, request.operation)
    return apply_plan(mutation_plan, dry_run=request.dry_run)
