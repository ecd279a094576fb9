"""Docker runtime client.

Implements the ServiceRuntime protocol on top of the docker CLI. Every
command is spawned from an argument vector, so service names are never
interpolated into a shell.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, final

import anyio
import orjson

from fleetwarden.exceptions import ControlCommandError

from ._models import ContainerInfo

if TYPE_CHECKING:
    from collections.abc import Sequence
    from subprocess import CompletedProcess

_NOT_FOUND_MARKERS = ("No such object", "No such container")


@final
class DockerRuntime:
    """Container runtime backed by the docker command line.

    Attributes:
        binary: Path or name of the docker executable.
        command_timeout: Seconds allowed for a single docker invocation,
            added on top of any grace period the command itself waits for.
    """

    __slots__ = ("binary", "command_timeout")

    def __init__(self, binary: str = "docker", command_timeout: float = 60.0) -> None:
        """Initialize the runtime.

        Args:
            binary: Docker executable to invoke.
            command_timeout: Seconds allowed per docker invocation.
        """
        self.binary = binary
        self.command_timeout = command_timeout

    async def _run(
        self,
        args: Sequence[str],
        *,
        service_name: str,
        timeout: float | None = None,
    ) -> CompletedProcess[bytes]:
        """Run a docker subcommand and return the completed process.

        Raises:
            ControlCommandError: If docker cannot be spawned or times out.
        """
        command = [self.binary, *args]
        effective_timeout = timeout if timeout is not None else self.command_timeout
        try:
            with anyio.fail_after(effective_timeout):
                return await anyio.run_process(command, check=False)
        except TimeoutError as e:
            msg = f"'{' '.join(command)}' timed out after {effective_timeout:.0f}s"
            raise ControlCommandError(msg, service_name=service_name, cause=e) from e
        except OSError as e:
            msg = f"Failed to run '{self.binary}': {e}"
            raise ControlCommandError(msg, service_name=service_name, cause=e) from e

    async def _checked(
        self,
        args: Sequence[str],
        *,
        service_name: str,
        timeout: float | None = None,
    ) -> CompletedProcess[bytes]:
        result = await self._run(args, service_name=service_name, timeout=timeout)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            detail = stderr or f"exit code {result.returncode}"
            msg = f"docker {args[0]} {service_name} failed: {detail}"
            raise ControlCommandError(
                msg,
                service_name=service_name,
                exit_code=result.returncode,
                stderr=stderr,
            )
        return result

    async def start(self, name: str) -> None:
        """Start the named container."""
        _ = await self._checked(["start", name], service_name=name)

    async def graceful_stop(self, name: str, timeout: float) -> None:
        """Stop the named container, letting docker kill it after ``timeout``."""
        grace = max(0, math.ceil(timeout))
        _ = await self._checked(
            ["stop", "-t", str(grace), name],
            service_name=name,
            timeout=grace + self.command_timeout,
        )

    async def kill(self, name: str) -> None:
        """Kill the named container."""
        _ = await self._checked(["kill", name], service_name=name)

    async def inspect(self, name: str) -> ContainerInfo | None:
        """Return container state, or None if the container does not exist."""
        result = await self._run(["inspect", name], service_name=name)
        if result.returncode != 0:
            stderr = result.stderr.decode("utf-8", errors="replace").strip()
            if any(marker in stderr for marker in _NOT_FOUND_MARKERS):
                return None
            msg = f"docker inspect {name} failed: {stderr or f'exit code {result.returncode}'}"
            raise ControlCommandError(
                msg, service_name=name, exit_code=result.returncode, stderr=stderr
            )

        try:
            payload = orjson.loads(result.stdout)
        except orjson.JSONDecodeError as e:
            msg = f"docker inspect {name} returned invalid JSON"
            raise ControlCommandError(msg, service_name=name, cause=e) from e

        if not payload:
            return None
        return parse_inspect_payload(name, payload[0])

    async def exec(self, name: str, argv: Sequence[str], timeout: float) -> None:
        """Run a command inside the named container."""
        _ = await self._checked(["exec", name, *argv], service_name=name, timeout=timeout)


def parse_inspect_payload(name: str, data: dict[str, object]) -> ContainerInfo:
    """Convert one ``docker inspect`` object into ContainerInfo.

    Args:
        name: The container name that was inspected.
        data: One element of the JSON array printed by docker inspect.

    Returns:
        The parsed container info.
    """
    state = data.get("State")
    config = data.get("Config")
    state_dict = state if isinstance(state, dict) else {}
    config_dict = config if isinstance(config, dict) else {}

    status = state_dict.get("Status")
    started_at = state_dict.get("StartedAt")
    image = config_dict.get("Image")

    return ContainerInfo(
        name=name,
        running=bool(state_dict.get("Running", False)),
        state=str(status).lower() if status else "unknown",
        started_at=str(started_at) if started_at else None,
        image=str(image) if image else None,
    )
