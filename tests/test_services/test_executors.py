"""Tests for the remote session operations."""

import sys
from unittest.mock import AsyncMock, patch

import pytest

from remote_mcp.config import Config, HostKeyVerifier, Settings
from remote_mcp.errors import (
    AuthRejected,
    EmptyResult,
    ExecutionError,
    LaunchError,
    MalformedTarget,
)
from remote_mcp.models import CommandResult, Credential
from remote_mcp.services import executors
from remote_mcp.services.session import Channel, RemoteSession
from remote_mcp.utils.output import normalize_output


class FakeSession(RemoteSession):
    """Session returning canned raw output through the normalizer."""

    def __init__(self, output: bytes = b"", status: int = 0) -> None:
        self.output = output
        self.status = status
        self.calls: list[tuple[str, float | None, bool]] = []

    async def run(self, command, timeout=None, drop_blank=True) -> CommandResult:
        self.calls.append((command, timeout, drop_blank))
        return CommandResult(
            lines=normalize_output(self.output, drop_blank=drop_blank),
            exit_succeeded=self.status == 0,
            exit_status=self.status,
        )

    async def open_channel(self, command: str) -> Channel:
        raise NotImplementedError

    async def close(self) -> None:
        pass


class FakeChain:
    """Chain that hands a fixed session to the operation."""

    def __init__(self, session: RemoteSession | None = None, error: Exception | None = None):
        self.session = session or FakeSession()
        self.error = error
        self.calls: list[tuple[object, Credential, str]] = []

    async def run(self, target, credential, command, operation):
        self.calls.append((target, credential, command))
        if self.error is not None:
            raise self.error
        return await operation(self.session)


@pytest.fixture
def config() -> Config:
    return Config(settings=Settings(), host_keys=HostKeyVerifier(known_hosts_path="none"))


@pytest.mark.asyncio
class TestExecuteRemoteCommand:
    """Tests for execute_remote_command."""

    async def test_lines_in_order(self, config: Config) -> None:
        """echo A; echo B returns ['A', 'B']."""
        chain = FakeChain(FakeSession(b"A\nB\n"))
        result = await executors.execute_remote_command(
            "root@10.0.0.5", "pw", "echo A; echo B", config=config, chain=chain
        )

        assert result.lines == ["A", "B"]
        target, _, command = chain.calls[0]
        assert command == "echo A; echo B"
        assert target.destination == "root@10.0.0.5"

    async def test_nonzero_exit_is_not_raised(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"oops\n", status=1))
        result = await executors.execute_remote_command(
            "root@h", "pw", "false", config=config, chain=chain
        )
        assert not result.exit_succeeded
        assert result.lines == ["oops"]

    async def test_empty_output_is_empty_list(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"\n\n"))
        result = await executors.execute_remote_command(
            "root@h", "pw", "true", config=config, chain=chain
        )
        assert result.lines == []

    async def test_keep_blank_lines_setting(self) -> None:
        config = Config(
            settings=Settings(keep_blank_lines=True),
            host_keys=HostKeyVerifier(known_hosts_path="none"),
        )
        chain = FakeChain(FakeSession(b"A\n\nB\n"))
        result = await executors.execute_remote_command(
            "root@h", "pw", "cat f", config=config, chain=chain
        )
        assert result.lines == ["A", "", "B"]

    async def test_timeout_passed_to_session(self, config: Config) -> None:
        session = FakeSession(b"x\n")
        await executors.execute_remote_command(
            "root@h", "pw", "sleep 1", timeout=5.0, config=config, chain=FakeChain(session)
        )
        assert session.calls[0][1] == 5.0

    async def test_credential_wiped_after_success(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"x\n"))
        await executors.execute_remote_command("root@h", "pw", "id", config=config, chain=chain)
        assert chain.calls[0][1].is_wiped

    async def test_credential_wiped_after_failure(self, config: Config) -> None:
        chain = FakeChain(error=AuthRejected("native: denied"))
        with pytest.raises(AuthRejected):
            await executors.execute_remote_command("root@h", "pw", "id", config=config, chain=chain)
        assert chain.calls[0][1].is_wiped

    async def test_malformed_target_never_reaches_chain(self, config: Config) -> None:
        chain = FakeChain()
        with pytest.raises(MalformedTarget):
            await executors.execute_remote_command("hostonly", "pw", "id", config=config, chain=chain)
        assert chain.calls == []

    async def test_option_injection_rejected(self, config: Config) -> None:
        chain = FakeChain()
        with pytest.raises(MalformedTarget):
            await executors.execute_remote_command(
                "-oProxyCommand=x@host", "pw", "id", config=config, chain=chain
            )
        assert chain.calls == []

    async def test_port_from_config(self) -> None:
        config = Config(
            settings=Settings(ssh_port=2222),
            host_keys=HostKeyVerifier(known_hosts_path="none"),
        )
        chain = FakeChain(FakeSession(b"x\n"))
        await executors.execute_remote_command("root@h", "pw", "id", config=config, chain=chain)
        assert chain.calls[0][0].port == 2222


@pytest.mark.asyncio
class TestListRemoteDirectories:
    """Tests for list_remote_directories."""

    async def test_lists_home_directory(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"total 0\ndrwx------ 2 root root 40 Jan 1 00:00 .ssh\n"))
        lines = await executors.list_remote_directories("root@h", "pw", config=config, chain=chain)

        assert chain.calls[0][2] == "ls -la"
        assert lines[0] == "total 0"
        assert len(lines) == 2

    async def test_quotes_path(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"x\n"))
        await executors.list_remote_directories(
            "root@h", "pw", path="/var/my dir", config=config, chain=chain
        )
        assert chain.calls[0][2] == "ls -la '/var/my dir'"

    async def test_blank_output_is_empty_result(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"\n  \n\n"))
        with pytest.raises(EmptyResult) as exc_info:
            await executors.list_remote_directories("root@h", "pw", config=config, chain=chain)
        assert exc_info.value.phase == "execute"

    async def test_nonzero_exit_is_execution_error(self, config: Config) -> None:
        chain = FakeChain(FakeSession(b"", status=2))
        with pytest.raises(ExecutionError, match="status 2") as exc_info:
            await executors.list_remote_directories(
                "root@h", "pw", path="/root", config=config, chain=chain
            )
        assert not isinstance(exc_info.value, EmptyResult)

    async def test_rejection_propagates(self, config: Config) -> None:
        chain = FakeChain(error=AuthRejected("interactive: Permission denied"))
        with pytest.raises(AuthRejected):
            await executors.list_remote_directories("root@h", "pw", config=config, chain=chain)

    async def test_browse_parses_entries(self, config: Config) -> None:
        output = (
            b"total 8\n"
            b"drwxr-xr-x 2 root root 4096 Jan 1 00:00 .\n"
            b"-rw-r--r-- 1 root root   12 Jan 1 00:00 notes.txt\n"
        )
        entries = await executors.browse_remote_directory(
            "root@h", "pw", config=config, chain=FakeChain(FakeSession(output))
        )
        assert [(e.name, e.type) for e in entries] == [("notes.txt", "file")]


@pytest.mark.asyncio
class TestSaveRemoteFile:
    """Tests for save_remote_file."""

    async def test_runs_sink_command(self, config: Config) -> None:
        chain = FakeChain()
        sent = AsyncMock(return_value="result")
        with patch("remote_mcp.services.executors.send_file", sent):
            result = await executors.save_remote_file(
                "root@h", "pw", "/tmp/out.txt", b"data", timeout=3.0, config=config, chain=chain
            )

        assert result == "result"
        assert chain.calls[0][2] == "scp -t /tmp/out.txt"
        sent.assert_awaited_once_with(chain.session, "/tmp/out.txt", b"data", timeout=3.0)
        assert chain.calls[0][1].is_wiped

    async def test_rejects_directory_path(self, config: Config) -> None:
        chain = FakeChain()
        with pytest.raises(ValueError, match="must name a file"):
            await executors.save_remote_file("root@h", "pw", "/tmp/", b"x", config=config, chain=chain)
        assert chain.calls == []


@pytest.mark.asyncio
class TestOpenElevatedLocalShell:
    """Tests for open_elevated_local_shell."""

    async def test_not_windows(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "linux")
        with pytest.raises(LaunchError, match="only supported on Windows") as exc_info:
            await executors.open_elevated_local_shell("dir")
        assert exc_info.value.phase == "launch"

    async def test_powershell_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        with patch("remote_mcp.services.executors.which", return_value=None):
            with pytest.raises(LaunchError, match="powershell not found"):
                await executors.open_elevated_local_shell("dir")

    async def test_spawns_without_waiting(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        spawn = AsyncMock()
        with patch("remote_mcp.services.executors.which", return_value="C:/ps.exe"), \
             patch("remote_mcp.services.executors.asyncio.create_subprocess_exec", spawn):
            await executors.open_elevated_local_shell("Get-Service 'w32time'")

        argv = spawn.call_args.args
        assert argv[0] == "powershell"
        assert "-Verb RunAs" in argv[-1]
        assert "''w32time''" in argv[-1]
        spawn.return_value.wait.assert_not_called()

    async def test_spawn_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(sys, "platform", "win32")
        with patch("remote_mcp.services.executors.which", return_value="C:/ps.exe"), \
             patch(
                 "remote_mcp.services.executors.asyncio.create_subprocess_exec",
                 AsyncMock(side_effect=PermissionError(13, "Access is denied")),
             ):
            with pytest.raises(LaunchError, match="Access is denied"):
                await executors.open_elevated_local_shell("dir")


def test_elevated_shell_argv() -> None:
    argv = executors.elevated_shell_argv("echo 'hi'")
    assert argv[:3] == ["powershell", "-NoExit", "-Command"]
    assert argv[3] == (
        "Start-Process PowerShell -Verb RunAs "
        "-ArgumentList '-NoExit -Command \"echo ''hi''\"'"
    )
