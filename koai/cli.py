#!/usr/bin/env python3

import argparse
import argcomplete
import logging
import os
import sys

from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Dict, List, Optional

from .ai import agent, chat, chat_loop, edit, edit_loop
from .config import Settings, load_settings
from .tui.app import run_tui

logger = logging.getLogger(__name__)

LOG_LEVEL_ENV = "KOAI_LOG_LEVEL"

_available_commands: List["Command"] = []
_settings: Optional[Settings] = None


@dataclass
class Argument(ABC):
    def __init__(self, help: str, kwargs: Optional[dict] = None):
        self.help = help
        self.kwargs = kwargs if kwargs is not None else {}

    @abstractmethod
    def add_to_parser(self, parser: argparse.ArgumentParser):
        pass


class OptionalArg(Argument):
    def __init__(
        self,
        short_option: str,
        long_option: str,
        help: str,
        kwargs: Optional[dict] = None,
    ):
        super().__init__(help=help, kwargs=kwargs)
        self.short_option = short_option
        self.long_option = long_option

    def add_to_parser(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            self.short_option, self.long_option, help=self.help, **self.kwargs
        )


class PositionalArg(Argument):
    def __init__(self, name: str, help: str, kwargs: Optional[dict] = None):
        super().__init__(help=help, kwargs=kwargs)
        self.name = name

    def add_to_parser(self, parser: argparse.ArgumentParser):
        parser.add_argument(self.name, help=self.help, **self.kwargs)


@dataclass
class Command:
    name: str
    func: Callable
    help: str
    description: str
    args: list[Argument]


def _load_settings(config_path: Optional[str] = None):
    global _settings
    if _settings is None or config_path:
        _settings = load_settings(config_path)


def command(args: List[Argument]):
    def decorator(func):
        if not func.__name__.startswith("handle_"):
            raise ValueError("Command handler must start with 'handle_'.")

        if not func.__doc__:
            raise ValueError(
                f"Command handler '{func.__name__}' must have a docstring for its help text."
            )

        @wraps(func)
        def wrapper(args):
            _load_settings(getattr(args, "config", None))
            return func(args)

        command_name = func.__name__.split("_")[1]
        # Use the first line of the docstring as the help text and
        # the full docstring for the detailed description.
        help_text = func.__doc__.strip().split("\n")[0]
        _available_commands.append(
            Command(command_name, wrapper, help_text, func.__doc__, args)
        )
        return wrapper

    return decorator


# Accepted by every command that calls the completion service. These win over
# the settings file, which wins over the built-in defaults.
COMPLETION_ARGS: List[Argument] = [
    OptionalArg(
        short_option="-m",
        long_option="--model",
        help="Model identifier to use for this call.",
    ),
    OptionalArg(
        short_option="-n",
        long_option="--max-tokens",
        help="Maximum number of tokens to generate.",
        kwargs={"type": int, "dest": "max_tokens"},
    ),
    OptionalArg(
        short_option="-t",
        long_option="--temperature",
        help="Sampling temperature, between 0 and 2.",
        kwargs={"type": float},
    ),
    OptionalArg(
        short_option="-s",
        long_option="--system",
        help="System message sent before the prompt.",
        kwargs={"dest": "system_message"},
    ),
]

RAW_ARG = OptionalArg(
    short_option="-r",
    long_option="--raw",
    help="Print the answer as plain text instead of rendered Markdown.",
    kwargs={"action": "store_true"},
)

FILE_ARG = OptionalArg(
    short_option="-f",
    long_option="--file",
    help="Edit this file in place with the model's answer.",
)


def _overrides(args) -> Dict:
    return {
        "model": getattr(args, "model", None),
        "max_tokens": getattr(args, "max_tokens", None),
        "temperature": getattr(args, "temperature", None),
        "system_message": getattr(args, "system_message", None),
    }


##############################################################################


@command(
    [
        PositionalArg(name="prompt", help="The question or request for the AI."),
        RAW_ARG,
        *COMPLETION_ARGS,
    ]
)
def handle_ac(args):
    """AI chat: send one prompt and print the answer."""
    chat(_settings, args.prompt, overrides=_overrides(args), raw=args.raw)


@command(
    [
        PositionalArg(name="prompt", help="The edit instruction."),
        FILE_ARG,
        RAW_ARG,
        *COMPLETION_ARGS,
    ]
)
def handle_ae(args):
    """AI edit: run one edit request, optionally rewriting a file in place.
    With --file, the file content is sent along with the instruction and the file is
    overwritten with the answer as-is.
    """
    edit(_settings, args.prompt, file=args.file, overrides=_overrides(args), raw=args.raw)


@command(COMPLETION_ARGS)
def handle_chat(args):
    """Chat with the AI interactively.
    Type `exit` or press Ctrl-D to leave.
    """
    chat_loop(_settings, overrides=_overrides(args))


@command([FILE_ARG, *COMPLETION_ARGS])
def handle_edit(args):
    """Send edit instructions interactively.
    With --file, every instruction rewrites that file.
    """
    edit_loop(_settings, file=args.file, overrides=_overrides(args))


@command(COMPLETION_ARGS)
def handle_tui(args):
    """Open the terminal UI with a chat panel and a git status panel.
    Tab switches panels, Ctrl+R refreshes git status, Esc quits.
    """
    run_tui(_settings, overrides=_overrides(args))


@command(
    [
        PositionalArg(name="prompt", help="What you want to achieve in this project."),
        RAW_ARG,
        *COMPLETION_ARGS,
    ]
)
def handle_agent(args):
    """Analyze a request against the current project and suggest next steps."""
    agent(_settings, args.prompt, overrides=_overrides(args), raw=args.raw)


##############################################################################


def _configure_logging(verbose: bool):
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.getenv(LOG_LEVEL_ENV, "WARNING").upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="koai",
        description="An AI assistant for your terminal, backed by a hosted completion service.",
    )
    parser.add_argument(
        "-c", "--config", help="Path to a JSON settings file."
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug information to stderr."
    )
    subparsers = parser.add_subparsers(
        dest="command", help="Sub-commands", required=True
    )

    # Sort commands alphabetically for consistent --help output.
    _available_commands.sort(key=lambda cmd: cmd.name)

    for command in _available_commands:
        subparser = subparsers.add_parser(
            command.name, help=command.help, description=command.description
        )
        for arg in command.args:
            arg.add_to_parser(subparser)
        subparser.set_defaults(func=command.func)

    return parser


def run_cli(argv: Optional[List[str]] = None):
    """
    Parses command-line arguments and executes the corresponding command.

    Errors are reported on stderr but do not change the exit status, so the
    commands stay friendly to shell pipelines.

    Args:
        argv: A list of strings representing the command-line arguments.
              If None, `sys.argv[1:]` is used automatically by `parse_args`.
    """
    parser = build_parser()

    # Enable argument auto-completion.
    argcomplete.autocomplete(parser)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    try:
        args.func(args)
    except KeyboardInterrupt:
        logger.debug("Interrupted by user")
    except Exception as e:
        logger.debug("Command '%s' failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)


def main():
    """The main entry point for the command-line interface, called by the `koai` script."""
    run_cli()
    sys.exit(0)


if __name__ == "__main__":
    main()
