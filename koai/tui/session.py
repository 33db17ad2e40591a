"""Panel session: the state machine behind the two-panel terminal UI.

The session knows nothing about the terminal. It talks to a renderer through
two calls, `render(view)` and `on_input(handler)`, so it can be driven by the
Textual app or by a test double.

States:
    IDLE        chat panel focused, nothing in flight
    SENDING     a completion request is pending
    GIT_VIEW    git panel focused; returns to chat by itself after a delay
    TERMINATED  the user quit

Only one completion request can be in flight. A submission made while one is
pending is rejected and nothing is sent. Focus switches and git refreshes are
handled at any time.
"""

import asyncio
import contextvars
import logging
import threading

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Protocol, Tuple, Union

from ..config import CompletionOptions
from ..errors import KoaiError
from ..tooling.git import GitStatusSnapshot

logger = logging.getLogger(__name__)

FOCUS_RETURN_DELAY = 2.0
PLACEHOLDER_TEXT = "🤔 Thinking..."
EMPTY_RESPONSE_TEXT = "Sorry, no answer is available right now."
ERROR_PREFIX = "Error:"

QUIT_KEYS = ("escape", "ctrl+c")
REFRESH_KEYS = ("ctrl+r",)
SWITCH_KEYS = ("tab",)


class Role(Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)
    placeholder: bool = False
    error: bool = False


class PanelFocus(Enum):
    CHAT = "chat"
    GIT = "git"


class SessionState(Enum):
    IDLE = "idle"
    SENDING = "sending"
    GIT_VIEW = "git_view"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Submit:
    text: str


@dataclass(frozen=True)
class Key:
    name: str


@dataclass(frozen=True)
class Resize:
    pass


InputEvent = Union[Submit, Key, Resize]
InputHandler = Callable[[InputEvent], Awaitable[None]]


@dataclass(frozen=True)
class SessionView:
    """Everything a renderer needs to draw one frame."""

    state: SessionState
    focus: PanelFocus
    transcript: Tuple[ChatMessage, ...]
    snapshot: Optional[GitStatusSnapshot]
    git_error: Optional[str]
    notice: Optional[str] = None


class Renderer(Protocol):
    def render(self, view: SessionView) -> None:
        ...

    def on_input(self, handler: InputHandler) -> None:
        ...


CompleteFn = Callable[[str, CompletionOptions], str]
ReadStatusFn = Callable[[], Awaitable[GitStatusSnapshot]]


def run_in_daemon_thread(func: Callable, *args) -> "asyncio.Future":
    """
    Runs a blocking call on a daemon thread and returns a future for its result.

    Unlike `asyncio.to_thread`, nothing waits for the thread on shutdown, so
    quitting never blocks on a request that is still in flight. A result that
    arrives after the loop has closed is dropped.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()
    context = contextvars.copy_context()

    def resolve(setter, value):
        if not future.done():
            setter(value)

    def deliver(setter, value):
        try:
            loop.call_soon_threadsafe(resolve, setter, value)
        except RuntimeError:
            logger.debug("Event loop closed before the call finished")

    def worker():
        try:
            result = context.run(func, *args)
        except BaseException as e:
            deliver(future.set_exception, e)
        else:
            deliver(future.set_result, result)

    threading.Thread(target=worker, name="koai-completion", daemon=True).start()
    return future


class PanelSession:
    def __init__(
        self,
        complete: CompleteFn,
        read_status: ReadStatusFn,
        options: CompletionOptions,
        focus_return_delay: float = FOCUS_RETURN_DELAY,
        notice: Optional[str] = None,
    ):
        """
        Args:
            complete: Blocking `(prompt, options) -> text` call. It runs on a
                      daemon thread so the UI keeps handling keys meanwhile
                      and quitting does not wait for it.
            read_status: Coroutine function returning a fresh git snapshot.
            options: Completion options passed through to `complete`.
            focus_return_delay: Seconds before focus goes back to the chat panel.
            notice: Message shown above the transcript (e.g. a missing credential).
        """
        self._complete = complete
        self._read_status = read_status
        self.options = options
        self.focus_return_delay = focus_return_delay
        self.notice = notice

        self.transcript: List[ChatMessage] = []
        self.snapshot: Optional[GitStatusSnapshot] = None
        self.git_error: Optional[str] = None
        self.focus = PanelFocus.CHAT

        self._pending = False
        self._terminated = False
        self._focus_timer: Optional[asyncio.TimerHandle] = None
        self._renderer: Optional[Renderer] = None

    @property
    def state(self) -> SessionState:
        if self._terminated:
            return SessionState.TERMINATED
        if self._pending:
            return SessionState.SENDING
        if self.focus is PanelFocus.GIT:
            return SessionState.GIT_VIEW
        return SessionState.IDLE

    @property
    def pending(self) -> bool:
        return self._pending

    def view(self) -> SessionView:
        return SessionView(
            state=self.state,
            focus=self.focus,
            transcript=tuple(self.transcript),
            snapshot=self.snapshot,
            git_error=self.git_error,
            notice=self.notice,
        )

    def attach(self, renderer: Renderer):
        self._renderer = renderer
        renderer.on_input(self.dispatch)
        self.redraw()

    def redraw(self):
        if self._renderer is not None and not self._terminated:
            self._renderer.render(self.view())

    async def start(self):
        """Loads the first git snapshot."""
        await self.refresh_git()

    async def dispatch(self, event: InputEvent):
        if self._terminated:
            return

        if isinstance(event, Submit):
            await self.submit(event.text)
        elif isinstance(event, Key):
            await self.handle_key(event.name)
        elif isinstance(event, Resize):
            self.redraw()

    async def handle_key(self, key: str) -> bool:
        if key in QUIT_KEYS or (key == "q" and self.focus is PanelFocus.GIT):
            self.quit()
        elif key in SWITCH_KEYS:
            self.switch_focus()
        elif key in REFRESH_KEYS:
            await self.refresh_git()
        else:
            return False
        return True

    # Chat

    async def submit(self, text: str) -> bool:
        """
        Sends `text` to the completion service.

        Returns False, without sending anything, for blank text or while a
        previous request is still pending.
        """
        text = text.strip()
        if not text or self._pending or self._terminated:
            return False

        self._pending = True
        placeholder = ChatMessage(Role.ASSISTANT, PLACEHOLDER_TEXT, placeholder=True)
        self.transcript.append(ChatMessage(Role.USER, text))
        self.transcript.append(placeholder)
        self.redraw()

        try:
            response = await run_in_daemon_thread(self._complete, text, self.options)
            reply = ChatMessage(Role.ASSISTANT, response or EMPTY_RESPONSE_TEXT)
        except (KoaiError, ValueError) as e:
            logger.info("Completion failed: %s", e)
            reply = ChatMessage(Role.ASSISTANT, f"{ERROR_PREFIX} {e}", error=True)
        finally:
            self._pending = False

        self._resolve_placeholder(placeholder, reply)
        self.redraw()
        return True

    def _resolve_placeholder(self, placeholder: ChatMessage, reply: ChatMessage):
        for index, message in enumerate(self.transcript):
            if message is placeholder:
                self.transcript[index] = reply
                return
        self.transcript.append(reply)

    # Focus

    def switch_focus(self):
        """Toggles focus. Moving to the git panel needs a running event loop."""
        if self.focus is PanelFocus.GIT:
            self.return_to_chat()
            return

        self.focus = PanelFocus.GIT
        self._schedule_return()
        self.redraw()

    def return_to_chat(self):
        self._cancel_return()
        if self.focus is PanelFocus.CHAT:
            return
        self.focus = PanelFocus.CHAT
        self.redraw()

    def _schedule_return(self):
        self._cancel_return()
        loop = asyncio.get_running_loop()
        self._focus_timer = loop.call_later(self.focus_return_delay, self.return_to_chat)

    def _cancel_return(self):
        if self._focus_timer is not None:
            self._focus_timer.cancel()
            self._focus_timer = None

    # Git

    async def refresh_git(self):
        """Replaces the git snapshot, or records why it could not be read."""
        try:
            snapshot = await self._read_status()
        except KoaiError as e:
            logger.info("Git status failed: %s", e)
            self.snapshot = None
            self.git_error = str(e)
        else:
            self.snapshot = snapshot
            self.git_error = None
        self.redraw()

    # Lifecycle

    def quit(self):
        if self._terminated:
            return
        self._terminated = True
        self._cancel_return()

        exit_app = getattr(self._renderer, "exit", None)
        if callable(exit_app):
            exit_app()
