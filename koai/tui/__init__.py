"""
The `tui` package holds the two-panel terminal session: a renderer-agnostic
state machine and its Textual front end.
"""

from .session import ChatMessage, PanelFocus, PanelSession, Role, SessionState, SessionView


__all__ = [
    "ChatMessage",
    "PanelFocus",
    "PanelSession",
    "Role",
    "SessionState",
    "SessionView",
]
