"""Git subprocess wrapper.

monover only shells out to git to evaluate ignore rules; everything else is
plain file I/O.
"""

from __future__ import annotations

import subprocess
from pathlib import Path


def git(
    *args: str, cwd: Path | None = None, input: str | None = None, check: bool = True
) -> subprocess.CompletedProcess[str]:
    """Run a git command and return the completed process.

    Args:
        *args: Arguments to pass to git (e.g., "check-ignore", "--stdin").
        cwd: Directory to run git in. Defaults to the current directory.
        input: Text fed to git's stdin.
        check: If True (default), raise on non-zero exit. Set to False
               for commands whose exit status carries meaning, like
               check-ignore (1 means "nothing ignored").

    Raises:
        FileNotFoundError: If no git binary is on PATH.
        subprocess.CalledProcessError: If check is True and git fails.
    """
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        input=input,
        capture_output=True,
        text=True,
        check=check,
    )
