"""Subprocess execution for the developer tool credentials.

The Azure CLI, Azure Developer CLI and Azure PowerShell credentials shell
out to their tools. :func:`run_process` runs one command without a shell,
captures both streams as text and enforces a timeout; the process is
killed when the timeout expires. :func:`get_safe_working_dir` and
:func:`parse_expires_on` cover the rest of what those credentials share.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional, Sequence

from pydantic import BaseModel, Field

from azidentity.client.identity_client import parse_date
from azidentity.config import EnvironmentSnapshot, is_windows
from azidentity.constants import DEFAULT_PROCESS_TIMEOUT
from azidentity.exceptions import CredentialUnavailableError

logger = logging.getLogger(__name__)


class ProcessResult(BaseModel):
    """Captured output of a finished process."""

    returncode: int = Field(description="Exit status of the process")
    stdout: str = Field(default="")
    stderr: str = Field(default="")


async def run_process(
    args: Sequence[str],
    *,
    cwd: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ProcessResult:
    """Run *args* and capture its output.

    Args:
        args: The executable followed by its arguments.
        cwd: Working directory for the process.
        timeout: Seconds before the process is killed; defaults to
            :data:`~azidentity.constants.DEFAULT_PROCESS_TIMEOUT`.

    Returns:
        The captured :class:`ProcessResult`.

    Raises:
        FileNotFoundError: If the executable does not exist.
        TimeoutError: If the process ran longer than *timeout*.
    """
    limit = timeout if timeout is not None else DEFAULT_PROCESS_TIMEOUT
    logger.debug("Running %s", args[0])
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=cwd,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=limit)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise TimeoutError(f"{args[0]} did not finish within {limit} seconds") from None
    return ProcessResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def get_safe_working_dir(env: EnvironmentSnapshot, tool: str) -> str:
    """Return a working directory that holds no project files a tool could pick up.

    Raises:
        CredentialUnavailableError: On Windows when ``SystemRoot`` is unset.
    """
    if is_windows():
        system_root = env.get("SystemRoot")
        if not system_root:
            raise CredentialUnavailableError(
                f"{tool} credential expects a 'SystemRoot' environment variable"
            )
        return system_root
    return "/bin"


_DOTNET_DATE = re.compile(r"^/Date\((-?\d+)\)/$")


def parse_expires_on(value: Any) -> int:
    """Convert a developer tool's expiry value to milliseconds since the epoch.

    Accepts epoch seconds, ISO 8601 and the local ``YYYY-MM-DD hh:mm:ss``
    form printed by the Azure CLI, and the ``/Date(ms)/`` form Windows
    PowerShell uses for ``DateTimeOffset``.

    Raises:
        ValueError: If *value* is not a recognizable date.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return int(value * 1000)
    if isinstance(value, str):
        match = _DOTNET_DATE.match(value.strip())
        if match:
            return int(match.group(1))
        parsed = parse_date(value)
        if parsed is not None:
            return int(parsed.timestamp() * 1000)
    raise ValueError(f"Unable to parse the token expiration: {value!r}")
