import asyncio
import logging
import os
import shlex
import subprocess

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command. Never raised, always returned."""

    stdout: str
    stderr: str
    exit_code: int
    success: bool


def _split(command: Union[str, Sequence[str]]) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return list(command)


def run_command(
    command: Union[str, Sequence[str]],
    cwd: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    shell: bool = False,
) -> CommandResult:
    """
    Runs a command to completion and captures its output.

    Args:
        command: A command line (split with shlex unless `shell` is set) or
                 an argument list.
        cwd: Working directory. Defaults to the current directory.
        timeout: Seconds before the command is abandoned.
        shell: Run the command line through the system shell.
    """
    args = command if shell else _split(command)
    logger.debug("Running command: %s", command)
    try:
        result = subprocess.run(
            args,
            cwd=cwd or os.getcwd(),
            capture_output=True,
            text=True,
            timeout=timeout,
            shell=shell,
        )
    except FileNotFoundError as e:
        return CommandResult(stdout="", stderr=str(e), exit_code=127, success=False)
    except subprocess.TimeoutExpired as e:
        return CommandResult(
            stdout=_decode(e.stdout),
            stderr=f"Command timed out after {timeout} seconds.",
            exit_code=124,
            success=False,
        )
    except OSError as e:
        return CommandResult(stdout="", stderr=str(e), exit_code=1, success=False)

    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        exit_code=result.returncode,
        success=result.returncode == 0,
    )


async def run_command_async(
    command: str,
    args: Sequence[str] = (),
    cwd: Optional[str] = None,
) -> CommandResult:
    """Runs `command` with `args` without blocking the event loop."""
    logger.debug("Running command (async): %s %s", command, " ".join(args))
    try:
        process = await asyncio.create_subprocess_exec(
            command,
            *args,
            cwd=cwd or os.getcwd(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        return CommandResult(stdout="", stderr=str(e), exit_code=127, success=False)
    except OSError as e:
        return CommandResult(stdout="", stderr=str(e), exit_code=1, success=False)

    stdout, stderr = await process.communicate()
    exit_code = process.returncode or 0
    return CommandResult(
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        exit_code=exit_code,
        success=exit_code == 0,
    )


def _decode(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
