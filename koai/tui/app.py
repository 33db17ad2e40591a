"""Textual front end for the panel session.

Left panel: chat transcript and input. Right panel: git status.
"""

import logging

from contextlib import contextmanager
from typing import Mapping, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.logging import TextualHandler
from textual.widgets import Footer, Input, Static

from ..ai.assistants.chat import create_client
from ..config import Settings
from ..errors import ConfigurationError
from ..tooling.git import read_status_async
from .formatting import format_git_status, format_transcript
from .session import (
    InputEvent,
    InputHandler,
    Key,
    PanelFocus,
    PanelSession,
    Resize,
    SessionState,
    SessionView,
    Submit,
)

logger = logging.getLogger(__name__)

TUI_SYSTEM_MESSAGE = (
    "You are a helpful AI assistant integrated into a terminal-based "
    "development tool. Be concise and helpful."
)

APP_CSS = """
#panels {
    height: 1fr;
}

#chat-panel {
    width: 50%;
    border: round cyan;
    border-title-color: cyan;
}

#git-panel {
    width: 50%;
    border: round green;
    border-title-color: green;
}

#git-panel:focus-within {
    border: round yellow;
}

#chat-messages {
    height: 1fr;
    padding: 0 1;
}

#chat-input {
    dock: bottom;
    margin: 0 1;
}

#chat-input:focus {
    border: tall yellow;
}

#git-scroll {
    height: 1fr;
    padding: 0 1;
}
"""


class GitScroll(VerticalScroll):
    """Scrollable git status. `q` quits while it has focus."""

    BINDINGS = [Binding("q", "app.session_key('q')", "Quit", show=False)]


class AppRenderer:
    """Adapts the Textual app to the session's renderer interface."""

    def __init__(self, app: "KoaiApp"):
        self.app = app

    def render(self, view: SessionView) -> None:
        self.app.show(view)

    def on_input(self, handler: InputHandler) -> None:
        self.app.input_handler = handler

    def exit(self) -> None:
        self.app.exit()


class KoaiApp(App):
    CSS = APP_CSS
    TITLE = "KoAI - Terminal UI"

    BINDINGS = [
        Binding("tab", "session_key('tab')", "Switch panel", priority=True),
        Binding("ctrl+r", "session_key('ctrl+r')", "Refresh git"),
        Binding("escape", "session_key('escape')", "Quit", priority=True),
        Binding("ctrl+c", "session_key('ctrl+c')", "Quit", priority=True),
    ]

    def __init__(self, session: PanelSession):
        super().__init__()
        self.session = session
        self.input_handler: Optional[InputHandler] = None
        self._view: Optional[SessionView] = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="panels"):
            with Vertical(id="chat-panel"):
                with VerticalScroll(id="chat-messages"):
                    yield Static(id="chat-log")
                yield Input(placeholder="Ask anything...", id="chat-input")
            with Vertical(id="git-panel"):
                with GitScroll(id="git-scroll"):
                    yield Static(id="git-status")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#chat-panel").border_title = "AI Chat"
        self.query_one("#git-panel").border_title = "Git UI"
        self.session.attach(AppRenderer(self))
        self.run_worker(self.session.start(), group="session")

    def show(self, view: SessionView) -> None:
        """Full redraw of both panels from a session view."""
        self._view = view
        self.query_one("#chat-log", Static).update(
            format_transcript(view.transcript, view.notice)
        )
        self.query_one("#chat-messages", VerticalScroll).scroll_end(animate=False)
        self.query_one("#git-status", Static).update(
            format_git_status(view.snapshot, view.git_error)
        )

        if view.focus is PanelFocus.GIT:
            self.query_one("#git-scroll", GitScroll).focus()
        else:
            self.query_one("#chat-input", Input).focus()

        self.sub_title = "waiting for response..." if view.state is SessionState.SENDING else ""

    def _dispatch(self, event: InputEvent) -> None:
        if self.input_handler is not None:
            self.run_worker(self.input_handler(event), group="session")

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if not event.value.strip():
            return
        if self._view is not None and self._view.state is SessionState.SENDING:
            self.notify("Still waiting for the previous response.", timeout=2)
            return

        event.input.value = ""
        self._dispatch(Submit(event.value))

    def on_resize(self, event) -> None:
        self._dispatch(Resize())

    def action_session_key(self, key: str) -> None:
        self._dispatch(Key(key))


def build_session(settings: Settings, overrides: Optional[Mapping] = None) -> PanelSession:
    """
    Wires the session to the completion client and git.

    Without a credential the session still starts; the notice explains why
    every message fails.
    """
    values = {"system_message": TUI_SYSTEM_MESSAGE}
    values.update({k: v for k, v in (overrides or {}).items() if v is not None})
    options = settings.options_for("chat", values)

    notice = None
    try:
        complete = create_client(settings).complete
    except ConfigurationError as e:
        logger.debug("Starting the panel session without a credential: %s", e)
        notice = f"{e} Please check your environment."
        error = e

        def complete(prompt, options=None):
            raise ConfigurationError(str(error))

    return PanelSession(complete, read_status_async, options=options, notice=notice)


@contextmanager
def textual_logging():
    """Sends log records to the Textual log while the app owns the terminal."""
    root = logging.getLogger()
    saved = root.handlers[:]
    handler = TextualHandler(stderr=False, stdout=False)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.handlers = [handler]
    try:
        yield handler
    finally:
        root.handlers = saved


def run_tui(settings: Settings, overrides: Optional[Mapping] = None):
    session = build_session(settings, overrides)
    with textual_logging():
        KoaiApp(session).run()
