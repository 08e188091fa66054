"""Tests for native and process-backed remote sessions."""

import asyncio
import sys
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from remote_mcp.errors import AuthRejected, ExecutionError, TransportUnavailable
from remote_mcp.models import Credential, StrategyKind
from remote_mcp.services.process import ProcessTransport
from remote_mcp.services.session import NativeSession, ProcessSession
from remote_mcp.services.watcher import PromptWatcher


def python_command(source: str) -> list[str]:
    return [sys.executable, "-c", source]


@pytest.fixture
def mock_connection() -> MagicMock:
    """Create a mock asyncssh connection."""
    conn = MagicMock()
    conn.run = AsyncMock()
    conn.create_process = AsyncMock()
    conn.wait_closed = AsyncMock()
    return conn


@pytest.mark.asyncio
class TestNativeSession:
    """Tests for NativeSession."""

    async def test_run_returns_ordered_lines(self, mock_connection: MagicMock) -> None:
        """echo A; echo B yields ['A', 'B']."""
        mock_connection.run.return_value = MagicMock(stdout=b"A\nB\n", returncode=0)
        session = NativeSession(mock_connection)

        result = await session.run("echo A; echo B")

        assert result.lines == ["A", "B"]
        assert result.exit_succeeded
        mock_connection.run.assert_called_once_with(
            "echo A; echo B", check=False, encoding=None, timeout=None
        )

    async def test_nonzero_exit_is_reported(self, mock_connection: MagicMock) -> None:
        mock_connection.run.return_value = MagicMock(stdout=b"partial\n", returncode=3)
        result = await NativeSession(mock_connection).run("false")
        assert not result.exit_succeeded
        assert result.exit_status == 3
        assert result.lines == ["partial"]

    async def test_dispatch_failure(self, mock_connection: MagicMock) -> None:
        mock_connection.run.side_effect = asyncssh.ChannelOpenError(2, "refused")
        with pytest.raises(ExecutionError, match="channel"):
            await NativeSession(mock_connection).run("ls")

    async def test_timeout(self, mock_connection: MagicMock) -> None:
        mock_connection.run.side_effect = asyncssh.TimeoutError.__new__(asyncssh.TimeoutError)
        with pytest.raises(ExecutionError, match="timed out"):
            await NativeSession(mock_connection).run("sleep 100", timeout=1)

    async def test_close(self, mock_connection: MagicMock) -> None:
        async with NativeSession(mock_connection):
            pass
        mock_connection.close.assert_called_once()
        mock_connection.wait_closed.assert_awaited_once()


@pytest.mark.asyncio
class TestProcessSession:
    """Tests for ProcessSession using the running interpreter as the client."""

    async def test_run_collects_lines(self) -> None:
        command = "echo A; echo B"
        transport = await ProcessTransport.spawn(
            python_command("print('A'); print(''); print('B')")
        )
        async with ProcessSession(transport, command, StrategyKind.HELPER_A) as session:
            result = await session.run(command)

        assert result.lines == ["A", "B"]
        assert result.exit_status == 0

    async def test_keeps_blank_lines_when_asked(self) -> None:
        command = "cat file"
        transport = await ProcessTransport.spawn(python_command("print('A'); print(''); print('B')"))
        async with ProcessSession(transport, command, StrategyKind.HELPER_A) as session:
            result = await session.run(command, drop_blank=False)

        assert result.lines == ["A", "", "B"]

    async def test_remote_failure_is_not_auth_failure(self) -> None:
        """A non-transport exit status is returned, not raised."""
        command = "ls /root"
        transport = await ProcessTransport.spawn(
            python_command(
                "import sys; sys.stderr.write('ls: Permission denied\\n'); sys.exit(2)"
            )
        )
        async with ProcessSession(transport, command, StrategyKind.INTERACTIVE) as session:
            result = await session.run(command)

        assert result.exit_status == 2
        assert not result.exit_succeeded

    async def test_client_rejection_is_classified(self) -> None:
        command = "ls"
        transport = await ProcessTransport.spawn(
            python_command(
                "import sys; sys.stderr.write('Permission denied (password).\\n'); sys.exit(255)"
            )
        )
        async with ProcessSession(transport, command, StrategyKind.INTERACTIVE) as session:
            with pytest.raises(AuthRejected):
                await session.run(command)

    async def test_bound_to_spawn_command(self) -> None:
        transport = await ProcessTransport.spawn(python_command("pass"))
        async with ProcessSession(transport, "ls", StrategyKind.HELPER_A) as session:
            with pytest.raises(ExecutionError, match="different command"):
                await session.run("rm -rf /")

    async def test_timeout_kills_process(self) -> None:
        command = "sleep"
        transport = await ProcessTransport.spawn(python_command("import time; time.sleep(30)"))
        async with ProcessSession(transport, command, StrategyKind.HELPER_A) as session:
            with pytest.raises(ExecutionError, match="timed out"):
                await session.run(command, timeout=0.2)

        assert not transport.running

    async def test_run_with_watcher_uses_transcript(self) -> None:
        """With a watcher, diagnostics come from its transcript."""
        command = "ls"
        transport = await ProcessTransport.spawn(
            python_command(
                "import sys; sys.stderr.write('Connection refused\\n'); sys.exit(255)"
            )
        )
        watcher = PromptWatcher(transport.stderr, transport.stdin, Credential("pw"))
        watcher.start()
        session = ProcessSession(transport, command, StrategyKind.INTERACTIVE, watcher=watcher)

        async with session:
            with pytest.raises(TransportUnavailable) as exc_info:
                await session.run(command)

        assert exc_info.value.phase == "connect"
        assert watcher.lines == ["Connection refused"]

    async def test_close_runs_cleanup_once(self) -> None:
        cleanup = MagicMock()
        transport = await ProcessTransport.spawn(python_command("pass"))
        session = ProcessSession(transport, "x", StrategyKind.HELPER_B, cleanup=[cleanup])

        await session.close()
        await session.close()

        cleanup.assert_called_once()

    async def test_cleanup_runs_when_close_fails(self) -> None:
        cleanup = MagicMock()
        transport = MagicMock()
        transport.close = AsyncMock(side_effect=asyncio.CancelledError())
        session = ProcessSession(transport, "x", StrategyKind.HELPER_B, cleanup=[cleanup])

        with pytest.raises(asyncio.CancelledError):
            await session.close()

        cleanup.assert_called_once()

    async def test_bare_ssh_error_status_belongs_to_command(self) -> None:
        """A command exiting 255 without client diagnostics is a normal result."""
        command = "exit 255"
        transport = await ProcessTransport.spawn(python_command("import sys; sys.exit(255)"))
        session = ProcessSession(transport, command, StrategyKind.HELPER_A)

        async with session:
            result = await session.run(command)

        assert not result.exit_succeeded
        assert result.exit_status == 255

    async def test_output_marks_command_started(self) -> None:
        """Errors after the first output byte are attributed to a running command."""
        command = "curl http://localhost"
        transport = await ProcessTransport.spawn(
            python_command(
                "import sys; print('partial'); sys.stdout.flush(); "
                "sys.stderr.write('Connection refused\\n'); sys.exit(255)"
            )
        )
        session = ProcessSession(transport, command, StrategyKind.HELPER_A)
        assert not session.command_started

        async with session:
            with pytest.raises(TransportUnavailable):
                await session.run(command)

        assert session.command_started

    async def test_silent_client_failure_is_not_started(self) -> None:
        command = "uptime"
        transport = await ProcessTransport.spawn(
            python_command("import sys; sys.stderr.write('Connection refused\\n'); sys.exit(255)")
        )
        session = ProcessSession(transport, command, StrategyKind.HELPER_A)

        async with session:
            with pytest.raises(TransportUnavailable):
                await session.run(command)

        assert not session.command_started

    async def test_after_login_runs_on_first_output(self) -> None:
        """Login state is released while the command is still running."""
        released = MagicMock()
        command = "tail -f log"
        transport = await ProcessTransport.spawn(
            python_command(
                "import sys, time; print('ready'); sys.stdout.flush(); time.sleep(30)"
            )
        )
        session = ProcessSession(
            transport, command, StrategyKind.HELPER_B, after_login=[released]
        )

        async with session:
            channel = await session.open_channel(command)
            assert await channel.readline() == b"ready\n"
            assert transport.running
            released.assert_called_once()

        released.assert_called_once()

    async def test_after_login_runs_on_exit_without_output(self) -> None:
        released = MagicMock()
        transport = await ProcessTransport.spawn(python_command("pass"))
        session = ProcessSession(transport, "true", StrategyKind.HELPER_B, after_login=[released])

        async with session:
            result = await session.run("true")
            released.assert_called_once()

        assert result.lines == []
        assert not session.command_started
        released.assert_called_once()
