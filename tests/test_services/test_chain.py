"""Tests for the authentication strategy chain."""

import pytest

from remote_mcp.config import Config, HostKeyVerifier, Settings
from remote_mcp.errors import (
    AuthExhausted,
    AuthRejected,
    ExecutionError,
    StrategyUnavailable,
    TransportUnavailable,
)
from remote_mcp.models import CommandResult, ConnectionTarget, Credential, StrategyKind
from remote_mcp.services.chain import StrategyChain
from remote_mcp.services.session import Channel, RemoteSession
from remote_mcp.services.strategies import AuthenticationStrategy

TARGET = ConnectionTarget(user="root", host="10.0.0.5")


class FakeSession(RemoteSession):
    """Session that returns canned output."""

    def __init__(self, lines: list[str] | None = None, started: bool = False) -> None:
        self.lines = lines or ["ok"]
        self.command_started = started
        self.closed = False

    async def run(self, command, timeout=None, drop_blank=True) -> CommandResult:
        return CommandResult(lines=list(self.lines))

    async def open_channel(self, command: str) -> Channel:
        raise NotImplementedError

    async def close(self) -> None:
        self.closed = True


class FakeStrategy(AuthenticationStrategy):
    """Strategy with scripted availability and outcome."""

    def __init__(
        self,
        kind: StrategyKind,
        available: bool = True,
        error: Exception | None = None,
        started: bool = False,
    ) -> None:
        self.kind = kind
        self.available = available
        self.error = error
        self.started = started
        self.opened = 0
        self.sessions: list[FakeSession] = []

    def is_available(self) -> bool:
        return self.available

    async def open(self, target, credential, command) -> RemoteSession:
        self.opened += 1
        if self.error is not None:
            raise self.error
        session = FakeSession([self.kind.value], started=self.started)
        self.sessions.append(session)
        return session


def make_chain(
    native: FakeStrategy | None = None,
    sshpass: FakeStrategy | None = None,
    plink: FakeStrategy | None = None,
    interactive: FakeStrategy | None = None,
) -> StrategyChain:
    return StrategyChain(
        native=native or FakeStrategy(StrategyKind.NATIVE, available=False),
        helpers=[
            sshpass or FakeStrategy(StrategyKind.HELPER_A, available=False),
            plink or FakeStrategy(StrategyKind.HELPER_B, available=False),
        ],
        interactive=interactive or FakeStrategy(StrategyKind.INTERACTIVE),
    )


async def run_lines(session: RemoteSession) -> list[str]:
    return (await session.run("cmd")).lines


async def run_chain(chain: StrategyChain) -> list[str]:
    return await chain.run(TARGET, Credential("pw"), "cmd", run_lines)


@pytest.mark.asyncio
class TestStrategyChain:
    """Tests for StrategyChain ordering and error policy."""

    async def test_native_is_the_only_attempt(self) -> None:
        native = FakeStrategy(StrategyKind.NATIVE)
        sshpass = FakeStrategy(StrategyKind.HELPER_A)
        chain = make_chain(native=native, sshpass=sshpass)

        assert await run_chain(chain) == ["native"]
        assert sshpass.opened == 0
        assert [a.strategy for a in chain.attempts] == [StrategyKind.NATIVE]

    async def test_native_rejection_is_final(self) -> None:
        native = FakeStrategy(StrategyKind.NATIVE, error=AuthRejected("native: denied"))
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(native=native, interactive=interactive)

        with pytest.raises(AuthRejected):
            await run_chain(chain)
        assert interactive.opened == 0

    async def test_native_transport_failure_is_not_wrapped(self) -> None:
        native = FakeStrategy(StrategyKind.NATIVE, error=TransportUnavailable("native: refused"))
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(native=native, interactive=interactive)

        with pytest.raises(TransportUnavailable) as exc_info:
            await run_chain(chain)
        assert not isinstance(exc_info.value, AuthExhausted)
        assert interactive.opened == 0

    async def test_interactive_attempted_exactly_once_without_helpers(self) -> None:
        """No native, no helpers: one interactive attempt, never zero."""
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(interactive=interactive)

        assert await run_chain(chain) == ["interactive"]
        assert interactive.opened == 1
        assert [a.strategy for a in chain.attempts] == [StrategyKind.INTERACTIVE]

    async def test_transport_failure_advances_to_next_helper(self) -> None:
        sshpass = FakeStrategy(StrategyKind.HELPER_A, error=TransportUnavailable("sshpass: refused"))
        plink = FakeStrategy(StrategyKind.HELPER_B)
        chain = make_chain(sshpass=sshpass, plink=plink)

        assert await run_chain(chain) == ["plink"]
        assert [a.strategy for a in chain.attempts] == [
            StrategyKind.HELPER_A,
            StrategyKind.HELPER_B,
        ]
        assert not chain.attempts[0].succeeded
        assert chain.attempts[1].succeeded

    async def test_helper_rejection_is_final(self) -> None:
        sshpass = FakeStrategy(StrategyKind.HELPER_A, error=AuthRejected("sshpass: incorrect password"))
        plink = FakeStrategy(StrategyKind.HELPER_B)
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(sshpass=sshpass, plink=plink, interactive=interactive)

        with pytest.raises(AuthRejected, match="incorrect password"):
            await run_chain(chain)
        assert plink.opened == 0
        assert interactive.opened == 0

    async def test_missing_helper_binary_is_skipped(self) -> None:
        sshpass = FakeStrategy(StrategyKind.HELPER_A, error=StrategyUnavailable("sshpass not found"))
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(sshpass=sshpass, interactive=interactive)

        assert await run_chain(chain) == ["interactive"]

    async def test_exhaustion_wraps_last_error(self) -> None:
        last = TransportUnavailable("interactive: connection refused")
        chain = make_chain(
            sshpass=FakeStrategy(StrategyKind.HELPER_A, error=TransportUnavailable("sshpass: refused")),
            interactive=FakeStrategy(StrategyKind.INTERACTIVE, error=last),
        )

        with pytest.raises(AuthExhausted) as exc_info:
            await run_chain(chain)

        assert exc_info.value.last_error is last
        assert "interactive: connection refused" in str(exc_info.value)
        assert exc_info.value.phase == "authenticate"

    async def test_interactive_missing_after_helper_failure(self) -> None:
        first = TransportUnavailable("sshpass: no route to host")
        chain = make_chain(
            sshpass=FakeStrategy(StrategyKind.HELPER_A, error=first),
            interactive=FakeStrategy(
                StrategyKind.INTERACTIVE, error=StrategyUnavailable("ssh not found")
            ),
        )

        with pytest.raises(AuthExhausted) as exc_info:
            await run_chain(chain)
        assert exc_info.value.last_error is first

    async def test_nothing_could_start(self) -> None:
        chain = make_chain(
            interactive=FakeStrategy(
                StrategyKind.INTERACTIVE, error=StrategyUnavailable("ssh not found")
            ),
        )

        with pytest.raises(StrategyUnavailable):
            await run_chain(chain)

    async def test_interactive_rejection_is_final(self) -> None:
        chain = make_chain(
            interactive=FakeStrategy(StrategyKind.INTERACTIVE, error=AuthRejected("interactive: denied")),
        )
        with pytest.raises(AuthRejected):
            await run_chain(chain)

    async def test_post_auth_errors_propagate_unchanged(self) -> None:
        """Errors raised by the operation are not masked and the session is closed."""
        plink = FakeStrategy(StrategyKind.HELPER_B)
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(plink=plink, interactive=interactive)

        async def failing(session: RemoteSession) -> None:
            raise ExecutionError("listing failed")

        with pytest.raises(ExecutionError, match="listing failed"):
            await chain.run(TARGET, Credential("pw"), "cmd", failing)

        assert interactive.opened == 0
        assert plink.sessions[0].closed

    async def test_transport_failure_during_operation_advances(self) -> None:
        """A process client failing at exit still moves on to the next strategy."""
        sshpass = FakeStrategy(StrategyKind.HELPER_A)
        interactive = FakeStrategy(StrategyKind.INTERACTIVE)
        chain = make_chain(sshpass=sshpass, interactive=interactive)

        async def operation(session: RemoteSession) -> list[str]:
            lines = (await session.run("cmd")).lines
            if lines == ["sshpass"]:
                raise TransportUnavailable("sshpass: host public key is unknown")
            return lines

        assert await chain.run(TARGET, Credential("pw"), "cmd", operation) == ["interactive"]
        assert sshpass.sessions[0].closed
        assert not chain.attempts[0].dispatched

    async def test_failure_after_command_started_is_not_redispatched(self) -> None:
        """A command exiting with the client's status after printing runs exactly once."""
        sshpass = FakeStrategy(StrategyKind.HELPER_A, started=True)
        plink = FakeStrategy(StrategyKind.HELPER_B, started=True)
        interactive = FakeStrategy(StrategyKind.INTERACTIVE, started=True)
        chain = make_chain(sshpass=sshpass, plink=plink, interactive=interactive)
        dispatched: list[str] = []

        async def operation(session: RemoteSession) -> list[str]:
            lines = (await session.run("cmd")).lines
            dispatched.extend(lines)
            raise TransportUnavailable("sshpass: connection closed")

        with pytest.raises(TransportUnavailable) as exc_info:
            await chain.run(TARGET, Credential("pw"), "cmd", operation)

        assert not isinstance(exc_info.value, AuthExhausted)
        assert dispatched == ["sshpass"]
        assert plink.opened == 0
        assert interactive.opened == 0
        assert chain.attempts[0].dispatched

    async def test_interactive_failure_after_start_is_not_wrapped(self) -> None:
        interactive = FakeStrategy(StrategyKind.INTERACTIVE, started=True)
        chain = make_chain(interactive=interactive)

        async def operation(session: RemoteSession) -> None:
            raise TransportUnavailable("interactive: connection reset")

        with pytest.raises(TransportUnavailable) as exc_info:
            await chain.run(TARGET, Credential("pw"), "cmd", operation)

        assert not isinstance(exc_info.value, AuthExhausted)
        assert interactive.opened == 1

    async def test_attempts_reset_per_run(self) -> None:
        chain = make_chain()
        await run_chain(chain)
        await run_chain(chain)
        assert len(chain.attempts) == 1


def test_from_config_builds_default_order() -> None:
    config = Config(
        settings=Settings(native_transport=False, connect_timeout=3, prompt_deadline=4.0),
        host_keys=HostKeyVerifier(known_hosts_path="none"),
    )
    chain = StrategyChain.from_config(config)

    assert chain.native.kind is StrategyKind.NATIVE
    assert not chain.native.is_available()
    assert [h.kind for h in chain.helpers] == [StrategyKind.HELPER_A, StrategyKind.HELPER_B]
    assert chain.interactive.kind is StrategyKind.INTERACTIVE
    assert chain.interactive.prompt_deadline == 4.0
