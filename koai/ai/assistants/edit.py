import logging

from typing import Mapping, Optional

from rich.console import Console

from ...config import CompletionOptions, Settings
from ...errors import FileError, KoaiError
from ...tooling.files import read_file_content, write_file_content
from ..llm import CompletionClient
from .chat import EXIT_WORDS, _read_prompt, create_client, render_response

logger = logging.getLogger(__name__)

EDIT_INSTRUCTIONS = (
    "Apply the instruction below to the file that follows it. "
    "Reply with the complete updated file content only."
)


def build_edit_prompt(instruction: str, path: str, content: str) -> str:
    return (
        f"{EDIT_INSTRUCTIONS}\n\n"
        f"Instruction: {instruction}\n\n"
        f"File: {path}\n"
        f"{content}"
    )


def edit_file(
    client: CompletionClient, path: str, instruction: str, options: CompletionOptions
) -> str:
    """
    Rewrites `path` in place with the model's answer to `instruction`.

    The model output replaces the file as-is; there is no diff or
    confirmation step.

    Raises:
        FileError: If the file is missing, unreadable or cannot be written.
        CompletionError: If the completion request fails.
    """
    info = read_file_content(path)
    if not info.exists:
        raise FileError(path, "File not found")

    new_content = client.complete(build_edit_prompt(instruction, path, info.content), options)
    write_file_content(path, new_content, create_dir=False)
    logger.info("Rewrote %s (%d chars)", path, len(new_content))
    return new_content


def edit(
    settings: Settings,
    prompt: str,
    file: Optional[str] = None,
    overrides: Optional[Mapping] = None,
    raw: bool = False,
    console: Optional[Console] = None,
) -> str:
    """Runs one edit request, either printing the result or rewriting `file`."""
    if not prompt or not prompt.strip():
        raise ValueError("Prompt must not be empty.")

    options = settings.options_for("edit", overrides)
    client = create_client(settings)
    console = console or Console()

    with Console(stderr=True).status("Processing edit request"):
        if file:
            result = edit_file(client, file, prompt, options)
        else:
            result = client.complete(prompt, options)

    if file:
        console.print(f"[green]✓ Updated file:[/] {file}")
    else:
        render_response(console, result, raw=raw)
    return result


def edit_loop(
    settings: Settings,
    file: Optional[str] = None,
    overrides: Optional[Mapping] = None,
    console: Optional[Console] = None,
):
    """Interactive edit session. With `file`, every instruction rewrites that file."""
    options = settings.options_for("edit", overrides)
    client = create_client(settings)
    console = console or Console()

    target = f" on [cyan]{file}[/]" if file else ""
    console.print(f"[bold]KoAI edit{target}[/] - type [cyan]exit[/] to leave.")

    while True:
        instruction = _read_prompt("edit> ")
        if instruction is None or instruction.strip().lower() in EXIT_WORDS:
            break
        if not instruction.strip():
            continue

        try:
            with console.status("Editing..."):
                if file:
                    edit_file(client, file, instruction, options)
                else:
                    result = client.complete(instruction, options)
        except KoaiError as e:
            logger.debug("Edit turn failed", exc_info=True)
            console.print(f"[red]Error:[/] {e}")
            continue

        if file:
            console.print(f"[green]✓ Updated file:[/] {file}")
        else:
            render_response(console, result)
