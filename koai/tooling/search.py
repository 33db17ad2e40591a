import logging
import os
import re

from dataclasses import dataclass
from typing import Iterable, List, Optional

from .command import run_command
from .directory import is_ignored

logger = logging.getLogger(__name__)


@dataclass
class SearchResult:
    file: str
    line: int
    column: int
    match: str
    context: str


def _search_file(path: str, regex: "re.Pattern") -> List[SearchResult]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            lines = f.read().splitlines()
    except (OSError, UnicodeDecodeError):
        # Binary or unreadable files are not searchable.
        return []

    results = []
    for number, line in enumerate(lines, start=1):
        for match in regex.finditer(line):
            results.append(
                SearchResult(
                    file=path,
                    line=number,
                    column=match.start() + 1,
                    match=match.group(0),
                    context=line.strip(),
                )
            )
    return results


def search_in_files(
    pattern: str,
    directory: Optional[str] = None,
    file_extensions: Optional[Iterable[str]] = None,
) -> List[SearchResult]:
    """Case-insensitive regex search over every non-hidden file under `directory`."""
    regex = re.compile(pattern, re.IGNORECASE)
    extensions = {ext.lower() for ext in file_extensions} if file_extensions else None
    results = []

    for root, dirs, files in os.walk(directory or os.getcwd()):
        dirs[:] = sorted(d for d in dirs if not is_ignored(d))
        for name in sorted(files):
            if is_ignored(name):
                continue
            if extensions and os.path.splitext(name)[1].lower() not in extensions:
                continue
            results.extend(_search_file(os.path.join(root, name), regex))

    logger.debug("Found %d matches for %r", len(results), pattern)
    return results


def search_with_grep(
    pattern: str,
    directory: Optional[str] = None,
    recursive: bool = True,
    ignore_case: bool = False,
    file_pattern: Optional[str] = None,
) -> str:
    """Runs grep and returns its output, or a readable failure message."""
    command = ["grep", "-n"]
    if recursive:
        command.append("-r")
    if ignore_case:
        command.append("-i")
    if file_pattern:
        command.append(f"--include={file_pattern}")
    command.extend([pattern, directory or os.getcwd()])

    result = run_command(command)
    # grep exits 1 when nothing matched.
    if result.success or (result.exit_code == 1 and not result.stderr):
        return result.stdout
    return f"Search failed: {result.stderr.strip() or result.exit_code}"
