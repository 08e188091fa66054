"""Authenticated remote sessions.

A RemoteSession owns exactly one transport: an asyncssh connection for the
native strategy, or a spawned ssh-family process for the others. Sessions
never outlive the operation that opened them.

Process-backed sessions are bound to the command they were spawned with,
since the external client authenticates and executes in one process.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

import asyncssh

from remote_mcp.errors import ExecutionError, ReadError
from remote_mcp.models import CommandResult, StrategyKind
from remote_mcp.services.classifier import classify_process_failure
from remote_mcp.utils.output import normalize_output

if TYPE_CHECKING:
    from remote_mcp.services.process import ProcessTransport
    from remote_mcp.services.watcher import PromptWatcher

logger = logging.getLogger(__name__)

Cleanup = Callable[[], None]

READ_CHUNK_SIZE = 65536


class Channel(Protocol):
    """Bidirectional byte channel to a remote process (used by transfers)."""

    async def write(self, data: bytes) -> None: ...

    async def read_exactly(self, n: int) -> bytes: ...

    async def readline(self) -> bytes: ...

    async def write_eof(self) -> None: ...

    async def wait_closed(self) -> int | None: ...


class RemoteSession(ABC):
    """Authenticated handle exposing command execution and channels."""

    strategy: StrategyKind
    # Whether the remote command has been seen running (process sessions
    # only learn this from its output)
    command_started: bool = True

    @abstractmethod
    async def run(
        self,
        command: str,
        timeout: float | None = None,
        drop_blank: bool = True,
    ) -> CommandResult:
        """Execute a command and collect its complete output.

        Args:
            command: Command passed through verbatim (no quoting)
            timeout: Seconds before the command is abandoned, None for no limit
            drop_blank: Remove blank lines from the result

        Raises:
            ExecutionError: On dispatch failure or timeout
            ReadError: If the output cannot be drained
        """

    @abstractmethod
    async def open_channel(self, command: str) -> Channel:
        """Start a command and return a byte channel to it."""

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying transport."""

    async def __aenter__(self) -> "RemoteSession":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class NativeChannel:
    """Channel over an asyncssh client process."""

    def __init__(self, process: asyncssh.SSHClientProcess) -> None:
        self._process = process

    async def write(self, data: bytes) -> None:
        self._process.stdin.write(data)
        await self._process.stdin.drain()

    async def read_exactly(self, n: int) -> bytes:
        return await self._process.stdout.readexactly(n)

    async def readline(self) -> bytes:
        return await self._process.stdout.readline()

    async def write_eof(self) -> None:
        self._process.stdin.write_eof()

    async def wait_closed(self) -> int | None:
        await self._process.wait_closed()
        return self._process.exit_status


class NativeSession(RemoteSession):
    """Session over an authenticated asyncssh connection."""

    strategy = StrategyKind.NATIVE

    def __init__(self, conn: asyncssh.SSHClientConnection) -> None:
        self.conn = conn

    async def run(
        self,
        command: str,
        timeout: float | None = None,
        drop_blank: bool = True,
    ) -> CommandResult:
        try:
            result = await self.conn.run(
                command, check=False, encoding=None, timeout=timeout
            )
        except asyncssh.TimeoutError as e:
            raise ExecutionError(f"command timed out after {timeout}s") from e
        except asyncssh.ChannelOpenError as e:
            raise ExecutionError(f"cannot open session channel: {e.reason}") from e
        except (asyncssh.Error, OSError) as e:
            raise ExecutionError(f"command dispatch failed: {e}") from e

        returncode = result.returncode
        return CommandResult(
            lines=normalize_output(result.stdout, drop_blank=drop_blank),
            exit_succeeded=returncode == 0,
            exit_status=returncode,
        )

    async def open_channel(self, command: str) -> Channel:
        try:
            process = await self.conn.create_process(command, encoding=None)
        except (asyncssh.Error, OSError) as e:
            raise ExecutionError(f"cannot open channel: {e}") from e
        return NativeChannel(process)

    async def close(self) -> None:
        logger.debug("Closing native connection")
        self.conn.close()
        await self.conn.wait_closed()


class ProcessChannel:
    """Channel over the pipes of a spawned ssh-family process."""

    def __init__(self, session: "ProcessSession") -> None:
        self._session = session
        self._transport = session.transport

    async def write(self, data: bytes) -> None:
        self._transport.stdin.write(data)
        await self._transport.stdin.drain()

    async def read_exactly(self, n: int) -> bytes:
        try:
            data = await self._transport.stdout.readexactly(n)
        except asyncio.IncompleteReadError as e:
            if e.partial:
                self._session.mark_started()
            raise
        self._session.mark_started()
        return data

    async def readline(self) -> bytes:
        line = await self._transport.stdout.readline()
        if line:
            self._session.mark_started()
        return line

    async def write_eof(self) -> None:
        await self._transport.close_stdin()

    async def wait_closed(self) -> int | None:
        returncode = await self._transport.wait()
        self._session.release_login()
        stderr_lines = await self._session.collect_diagnostics()
        error = classify_process_failure(returncode, stderr_lines, self._session.strategy)
        if error is not None:
            raise error
        return returncode


class ProcessSession(RemoteSession):
    """Session backed by a running ssh, sshpass or plink process.

    ``after_login`` callbacks run once, as soon as the remote command is
    known to be running (first stdout byte) or the client has exited,
    whichever comes first. ``cleanup`` callbacks run on close.
    """

    def __init__(
        self,
        transport: "ProcessTransport",
        command: str,
        strategy: StrategyKind,
        watcher: "PromptWatcher | None" = None,
        cleanup: list[Cleanup] | None = None,
        after_login: list[Cleanup] | None = None,
    ) -> None:
        self.transport = transport
        self.command = command
        self.strategy = strategy
        self.watcher = watcher
        self.command_started = False
        self._cleanup = list(cleanup or [])
        self._after_login = list(after_login or [])
        self._closed = False

    def _check_command(self, command: str) -> None:
        if command != self.command:
            raise ExecutionError(
                f"{self.strategy.value} session is bound to a different command"
            )

    def release_login(self) -> None:
        """Run the after-login callbacks if they have not run yet."""
        callbacks, self._after_login = self._after_login, []
        for callback in callbacks:
            callback()

    def mark_started(self) -> None:
        """Record that output from the remote command has arrived."""
        if not self.command_started:
            logger.debug("%s session produced output", self.strategy.value)
            self.command_started = True
        self.release_login()

    async def collect_diagnostics(self) -> list[str]:
        """Return the diagnostic stream once the process has exited."""
        if self.watcher is not None:
            await self.watcher.join()
            return list(self.watcher.lines)
        return normalize_output(await self.transport.read_stderr(), drop_blank=False)

    async def _read_output(self) -> bytes:
        chunks: list[bytes] = []
        while True:
            try:
                chunk = await self.transport.stdout.read(READ_CHUNK_SIZE)
            except OSError as e:
                raise ReadError(
                    f"failed to read output of {self.transport.program}: {e}"
                ) from e
            if not chunk:
                return b"".join(chunks)
            self.mark_started()
            chunks.append(chunk)

    async def _collect(self, drop_blank: bool) -> CommandResult:
        await self.transport.close_stdin()
        if self.watcher is not None:
            stdout = await self._read_output()
            returncode = await self.transport.wait()
            self.release_login()
            stderr_lines = await self.collect_diagnostics()
        else:
            stdout, stderr = await asyncio.gather(
                self._read_output(), self.transport.read_stderr()
            )
            returncode = await self.transport.wait()
            self.release_login()
            stderr_lines = normalize_output(stderr, drop_blank=False)

        error = classify_process_failure(returncode, stderr_lines, self.strategy)
        if error is not None:
            raise error

        if returncode != 0 and stderr_lines:
            logger.debug(
                "Remote command exited with %s: %s",
                returncode,
                stderr_lines[-1],
            )

        return CommandResult(
            lines=normalize_output(stdout, drop_blank=drop_blank),
            exit_succeeded=returncode == 0,
            exit_status=returncode,
        )

    async def run(
        self,
        command: str,
        timeout: float | None = None,
        drop_blank: bool = True,
    ) -> CommandResult:
        self._check_command(command)
        try:
            return await asyncio.wait_for(self._collect(drop_blank), timeout=timeout)
        except asyncio.TimeoutError as e:
            self.transport.kill()
            raise ExecutionError(f"command timed out after {timeout}s") from e

    async def open_channel(self, command: str) -> Channel:
        self._check_command(command)
        return ProcessChannel(self)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self.transport.close()
            if self.watcher is not None:
                await self.watcher.join()
        finally:
            self.release_login()
            for cleanup in self._cleanup:
                cleanup()
