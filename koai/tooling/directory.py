import logging
import os

from dataclasses import dataclass
from typing import List, Optional

from .command import run_command

logger = logging.getLogger(__name__)

IGNORED_NAMES = {"node_modules", "__pycache__"}


@dataclass
class DirectoryItem:
    name: str
    type: str  # "file" or "directory"
    size: Optional[int] = None
    children: Optional[List["DirectoryItem"]] = None

    def to_dict(self) -> dict:
        data = {"name": self.name, "type": self.type}
        if self.size is not None:
            data["size"] = self.size
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def is_ignored(name: str) -> bool:
    return name.startswith(".") or name in IGNORED_NAMES


def show_directory_structure(path: Optional[str] = None, max_depth: int = 3) -> List[DirectoryItem]:
    """
    Builds a tree of the entries under `path`, skipping hidden and vendored folders.

    Unreadable directories are logged and show up empty.
    """

    def build_tree(current: str, depth: int) -> List[DirectoryItem]:
        if depth <= 0:
            return []

        try:
            names = sorted(os.listdir(current))
        except OSError as e:
            logger.warning("Error reading directory %s: %s", current, e)
            return []

        items = []
        for name in names:
            if is_ignored(name):
                continue
            full_path = os.path.join(current, name)
            if os.path.isdir(full_path):
                items.append(
                    DirectoryItem(
                        name=name,
                        type="directory",
                        children=build_tree(full_path, depth - 1),
                    )
                )
            else:
                try:
                    size = os.path.getsize(full_path)
                except OSError:
                    size = None
                items.append(DirectoryItem(name=name, type="file", size=size))
        return items

    return build_tree(path or os.getcwd(), max_depth)


def format_tree(items: List[DirectoryItem], indent: str = "") -> str:
    lines = []
    for index, item in enumerate(items):
        is_last = index == len(items) - 1
        line = indent + ("└── " if is_last else "├── ") + item.name
        if item.type == "file" and item.size:
            line += f" ({item.size} bytes)"
        lines.append(line)

        if item.children:
            lines.append(format_tree(item.children, indent + ("    " if is_last else "│   ")))
    return "\n".join(lines)


def show_directory_tree(path: Optional[str] = None) -> str:
    """Uses the `tree` binary when available, otherwise formats the tree itself."""
    path = path or os.getcwd()
    result = run_command(["tree", path])
    if result.success:
        return result.stdout
    return format_tree(show_directory_structure(path))
