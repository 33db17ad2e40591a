"""Turns session state into rich Text for the panels."""

from typing import Iterable, Optional

from rich.text import Text

from ..tooling.git import GitStatusSnapshot, UNTRACKED_ICON
from .session import ERROR_PREFIX, ChatMessage, Role

WELCOME_TEXT = "Welcome to KoAI Chat!\nType your message below and press Enter to send."
GIT_HINT = "Press Ctrl+R to refresh • Press Tab to switch panels"


def format_message(message: ChatMessage) -> Text:
    time_str = message.timestamp.strftime("%H:%M:%S")
    if message.role is Role.USER:
        label, color = "You", "cyan"
    else:
        label, color = "AI", "green"

    text = Text()
    text.append(f"[{time_str}] {label}:", style=color)
    text.append(" ")
    if message.error and message.content.startswith(ERROR_PREFIX):
        text.append(ERROR_PREFIX, style="red")
        text.append(message.content[len(ERROR_PREFIX):])
    elif message.placeholder:
        text.append(message.content, style="dim")
    else:
        text.append(message.content)
    return text


def format_transcript(messages: Iterable[ChatMessage], notice: Optional[str] = None) -> Text:
    text = Text()
    if notice:
        text.append("Notice: ", style="bold red")
        text.append(f"{notice}\n\n")

    messages = list(messages)
    if not messages:
        text.append(WELCOME_TEXT)
        return text

    for message in messages:
        text.append_text(format_message(message))
        text.append("\n")
    return text


def format_git_status(
    snapshot: Optional[GitStatusSnapshot], error: Optional[str] = None
) -> Text:
    text = Text()
    text.append("Git Status\n\n", style="bold green")

    if error:
        text.append("Git Error: ", style="red")
        text.append(f"{error}\n\n")
    elif snapshot is None:
        text.append("Loading git status...\n\n", style="dim")
    elif snapshot.is_clean:
        text.append("✓ Working tree clean\n\n", style="green")
    else:
        if snapshot.staged:
            text.append("Staged Changes:\n", style="bold green")
            for entry in snapshot.staged:
                text.append(f"  {entry.icon}", style="green")
                text.append(f" {entry.path}\n")
            text.append("\n")

        if snapshot.modified:
            text.append("Modified:\n", style="bold yellow")
            for entry in snapshot.modified:
                text.append(f"  {entry.icon}", style="yellow")
                text.append(f" {entry.path}\n")
            text.append("\n")

        if snapshot.untracked:
            text.append("Untracked:\n", style="bold red")
            for path in snapshot.untracked:
                text.append(f"  {UNTRACKED_ICON}", style="red")
                text.append(f" {path}\n")
            text.append("\n")

    text.append(GIT_HINT, style="cyan")
    return text
