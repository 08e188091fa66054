"""Subordinate process transport with piped streams."""

import asyncio
import logging
import os
import shutil

from remote_mcp.errors import ReadError, StrategyUnavailable, TransportUnavailable

logger = logging.getLogger(__name__)


def which(name: str) -> str | None:
    """Look up an executable on the search path.

    Probed on every call so that installing a helper takes effect without
    restarting the server.
    """
    return shutil.which(name)


class ProcessTransport:
    """A spawned process with piped stdin, stdout and stderr.

    Owns the process for its whole lifetime: callers must await close()
    (or use ``async with``) so a hung process never outlives the operation.
    """

    def __init__(self, process: asyncio.subprocess.Process, program: str) -> None:
        self.process = process
        self.program = program

    @classmethod
    async def spawn(
        cls,
        argv: list[str],
        env: dict[str, str] | None = None,
    ) -> "ProcessTransport":
        """Spawn a process with all three standard streams piped.

        Args:
            argv: Program and arguments (no shell involved)
            env: Extra environment variables merged over os.environ

        Raises:
            StrategyUnavailable: If the program does not exist
            TransportUnavailable: If the process cannot be started
        """
        program = argv[0]
        full_env = {**os.environ, **env} if env else None

        logger.debug("Spawning %s (%d args)", program, len(argv) - 1)
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=full_env,
            )
        except FileNotFoundError as e:
            raise StrategyUnavailable(f"{program} not found: {e.strerror or e}") from e
        except OSError as e:
            raise TransportUnavailable(f"cannot start {program}: {e.strerror or e}") from e

        return cls(process, program)

    @property
    def stdin(self) -> asyncio.StreamWriter:
        assert self.process.stdin is not None
        return self.process.stdin

    @property
    def stdout(self) -> asyncio.StreamReader:
        assert self.process.stdout is not None
        return self.process.stdout

    @property
    def stderr(self) -> asyncio.StreamReader:
        assert self.process.stderr is not None
        return self.process.stderr

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    @property
    def running(self) -> bool:
        return self.process.returncode is None

    async def read_stderr(self) -> bytes:
        """Drain stderr to EOF (used when no watcher owns the stream)."""
        try:
            return await self.stderr.read()
        except (OSError, asyncio.IncompleteReadError, asyncio.LimitOverrunError) as e:
            raise ReadError(f"failed to read diagnostics of {self.program}: {e}") from e

    async def close_stdin(self) -> None:
        """Signal end-of-input to the process."""
        if self.stdin.is_closing():
            return
        try:
            self.stdin.close()
            await self.stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("stdin of %s already closed by peer", self.program)

    async def wait(self) -> int:
        """Wait for the process to exit and return its status."""
        return await self.process.wait()

    def kill(self) -> None:
        """Kill the process if it is still running."""
        if self.running:
            logger.debug("Killing %s (pid=%s)", self.program, self.process.pid)
            try:
                self.process.kill()
            except ProcessLookupError:
                pass

    async def close(self) -> None:
        """Kill if still running and reap the process."""
        self.kill()
        if not self.stdin.is_closing():
            self.stdin.close()
        await self.process.wait()

    async def __aenter__(self) -> "ProcessTransport":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
