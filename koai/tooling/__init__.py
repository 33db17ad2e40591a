"""
The `tooling` package wraps the filesystem, git, subprocesses and the network
behind small functions that return plain result records.

The agent uses the directory, file and git helpers. Search, fetch, network
checks, `list_files`, `show_git_diff` and `show_git_log` are part of the
package's public surface for scripts and other front ends; nothing in the
CLI calls them yet.
"""

from .command import CommandResult, run_command, run_command_async
from .directory import DirectoryItem, format_tree, show_directory_structure, show_directory_tree
from .fetch import FetchResult, download_file, fetch_data
from .files import FileInfo, list_files, read_file_content, write_file_content
from .git import (
    GitStatus,
    GitStatusSnapshot,
    StatusEntry,
    parse_porcelain,
    read_status,
    read_status_async,
    show_git_diff,
    show_git_log,
    show_git_status,
)
from .network import PingResult, PortResult, check_port, check_port_async, ping_host
from .search import SearchResult, search_in_files, search_with_grep


__all__ = [
    "CommandResult",
    "run_command",
    "run_command_async",
    "DirectoryItem",
    "format_tree",
    "show_directory_structure",
    "show_directory_tree",
    "FetchResult",
    "download_file",
    "fetch_data",
    "FileInfo",
    "list_files",
    "read_file_content",
    "write_file_content",
    "GitStatus",
    "GitStatusSnapshot",
    "StatusEntry",
    "parse_porcelain",
    "read_status",
    "read_status_async",
    "show_git_diff",
    "show_git_log",
    "show_git_status",
    "PingResult",
    "PortResult",
    "check_port",
    "check_port_async",
    "ping_host",
    "SearchResult",
    "search_in_files",
    "search_with_grep",
]
