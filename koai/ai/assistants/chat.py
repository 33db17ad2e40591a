import logging

from typing import Mapping, Optional

from rich.console import Console
from rich.markdown import Markdown

from ...config import CompletionOptions, Settings
from ...errors import KoaiError
from ..llm import CompletionClient

logger = logging.getLogger(__name__)

EXIT_WORDS = {"exit", "quit", "/exit", "/quit"}


def create_client(settings: Settings) -> CompletionClient:
    """Builds the completion client, failing fast when no credential is set."""
    return CompletionClient(settings.api_key, provider=settings.provider)


def render_response(console: Console, text: str, raw: bool = False):
    """
    Prints a model response.

    Markdown is rendered only on a terminal; when piped (or with `raw`) the
    text is written exactly as received.
    """
    if raw or not console.is_terminal:
        console.out(text, highlight=False)
    else:
        console.print(Markdown(text))


def _do_chat(client: CompletionClient, prompt: str, options: CompletionOptions) -> str:
    return client.complete(prompt, options)


def chat(
    settings: Settings,
    prompt: str,
    overrides: Optional[Mapping] = None,
    raw: bool = False,
    console: Optional[Console] = None,
) -> str:
    """Sends one prompt and prints the answer."""
    if not prompt or not prompt.strip():
        raise ValueError("Prompt must not be empty.")

    options = settings.options_for("chat", overrides)
    client = create_client(settings)
    console = console or Console()

    with Console(stderr=True).status("Processing chat request"):
        response = _do_chat(client, prompt, options)

    render_response(console, response, raw=raw)
    return response


def _read_prompt(message: str = "> ") -> Optional[str]:
    try:
        return input(message)
    except (KeyboardInterrupt, EOFError):
        return None


def chat_loop(
    settings: Settings,
    overrides: Optional[Mapping] = None,
    console: Optional[Console] = None,
):
    """
    Keeps asking for prompts until the user types `exit` or hits Ctrl-D/Ctrl-C.

    Errors from the completion service are shown and the loop carries on.
    """
    options = settings.options_for("chat", overrides)
    client = create_client(settings)
    console = console or Console()
    console.print("[bold]KoAI chat[/] - type [cyan]exit[/] to leave.")

    while True:
        prompt = _read_prompt()
        if prompt is None or prompt.strip().lower() in EXIT_WORDS:
            break
        if not prompt.strip():
            continue

        try:
            with console.status("Thinking..."):
                response = _do_chat(client, prompt, options)
        except KoaiError as e:
            logger.debug("Chat turn failed", exc_info=True)
            console.print(f"[red]Error:[/] {e}")
            continue

        render_response(console, response)
