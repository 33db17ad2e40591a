import logging

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..errors import GitError
from .command import CommandResult, run_command, run_command_async

logger = logging.getLogger(__name__)

STATUS_COMMAND = ["git", "status", "--porcelain"]

STATUS_ICONS = {
    "M": "●",  # modified
    "A": "+",  # added
    "D": "−",  # deleted
    "R": "→",  # renamed
    "C": "©",  # copied
    "U": "!",  # unmerged
}

UNTRACKED_ICON = "?"


def status_icon(code: str) -> str:
    return STATUS_ICONS.get(code, UNTRACKED_ICON)


@dataclass(frozen=True)
class StatusEntry:
    icon: str
    path: str


@dataclass(frozen=True)
class GitStatusSnapshot:
    """The working tree state, bucketed the way `git status` presents it."""

    staged: Tuple[StatusEntry, ...] = ()
    modified: Tuple[StatusEntry, ...] = ()
    untracked: Tuple[str, ...] = ()

    @property
    def is_clean(self) -> bool:
        return not (self.staged or self.modified or self.untracked)


@dataclass
class GitStatus:
    staged: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    branch: str = ""


def parse_porcelain(output: str) -> GitStatusSnapshot:
    """
    Parses `git status --porcelain` output.

    Column 0 is the index (staged) state, column 1 the work tree state. A path
    with both columns set shows up under staged and modified.
    """
    staged = []
    modified = []
    untracked = []

    for line in output.splitlines():
        if not line.strip():
            continue

        code = line[:2].ljust(2)
        path = line[3:]

        if code == "??":
            untracked.append(path)
            continue

        if code[0] not in (" ", "?"):
            staged.append(StatusEntry(status_icon(code[0]), path))
        if code[1] not in (" ", "?"):
            modified.append(StatusEntry(status_icon(code[1]), path))

    return GitStatusSnapshot(
        staged=tuple(staged), modified=tuple(modified), untracked=tuple(untracked)
    )


def _check(result: CommandResult, description: str) -> str:
    if result.success:
        return result.stdout

    reason = result.stderr.strip() or f"exit code {result.exit_code}"
    if result.exit_code == 127:
        reason = "git not found"
    logger.debug("%s failed: %s", description, reason)
    raise GitError(f"{description} failed: {reason}", result.exit_code, result.stderr)


def read_status(cwd: Optional[str] = None) -> GitStatusSnapshot:
    """
    Reads and parses the working tree status.

    Raises:
        GitError: If git is missing, `cwd` is not a repository, or git fails.
    """
    output = _check(run_command(STATUS_COMMAND, cwd=cwd), "git status")
    return parse_porcelain(output)


async def read_status_async(cwd: Optional[str] = None) -> GitStatusSnapshot:
    result = await run_command_async(STATUS_COMMAND[0], STATUS_COMMAND[1:], cwd=cwd)
    return parse_porcelain(_check(result, "git status"))


def current_branch(cwd: Optional[str] = None) -> str:
    return _check(
        run_command(["git", "branch", "--show-current"], cwd=cwd), "git branch"
    ).strip()


def show_git_status(cwd: Optional[str] = None) -> GitStatus:
    """Plain path lists plus the current branch, for reports."""
    snapshot = read_status(cwd)
    return GitStatus(
        staged=[entry.path for entry in snapshot.staged],
        modified=[entry.path for entry in snapshot.modified],
        untracked=list(snapshot.untracked),
        branch=current_branch(cwd),
    )


def show_git_diff(staged: bool = False, cwd: Optional[str] = None) -> str:
    command = ["git", "diff", "--cached"] if staged else ["git", "diff"]
    return _check(run_command(command, cwd=cwd), "git diff")


def show_git_log(count: int = 10, cwd: Optional[str] = None) -> str:
    return _check(
        run_command(["git", "log", "--oneline", f"-{count}"], cwd=cwd), "git log"
    )
