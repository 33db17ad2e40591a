import asyncio
import platform
import re

from dataclasses import dataclass
from typing import Optional

from .command import run_command

_TIME_RE = re.compile(r"time[<=]\s*([\d.]+)\s*ms", re.IGNORECASE)


@dataclass
class PingResult:
    host: str
    alive: bool
    time: Optional[float] = None
    error: Optional[str] = None


@dataclass
class PortResult:
    host: str
    port: int
    open: bool
    error: Optional[str] = None


def _ping_command(host: str, timeout: float) -> list:
    if platform.system().lower() == "windows":
        return ["ping", "-n", "1", "-w", str(int(timeout * 1000)), host]
    return ["ping", "-c", "1", "-W", str(max(1, int(timeout))), host]


def ping_host(host: str, timeout: float = 5) -> PingResult:
    """Sends a single ICMP echo through the system `ping` binary."""
    result = run_command(_ping_command(host, timeout), timeout=timeout + 5)
    if not result.success:
        return PingResult(
            host=host,
            alive=False,
            error=result.stderr.strip() or result.stdout.strip() or f"exit code {result.exit_code}",
        )

    match = _TIME_RE.search(result.stdout)
    return PingResult(host=host, alive=True, time=float(match.group(1)) if match else None)


async def check_port_async(host: str, port: int, timeout: float = 3) -> PortResult:
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except asyncio.TimeoutError:
        return PortResult(host=host, port=port, open=False, error="Timeout")
    except OSError as e:
        return PortResult(host=host, port=port, open=False, error=str(e))

    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return PortResult(host=host, port=port, open=True)


def check_port(host: str, port: int, timeout: float = 3) -> PortResult:
    """Checks whether a TCP connection to `host:port` can be opened."""
    return asyncio.run(check_port_async(host, port, timeout))
