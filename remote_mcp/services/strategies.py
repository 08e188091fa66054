"""Authentication strategies.

Each strategy is a way of turning a target plus credential into an
authenticated RemoteSession:

- NativeStrategy: asyncssh in-process, no external binary
- SshpassStrategy: ``sshpass -e ssh``; secret in the SSHPASS environment
- PlinkStrategy: ``plink -pwfile``; secret in a named pipe removed once
  read (a transient 0600 file where pipes are unavailable)
- InteractiveStrategy: plain ``ssh`` with the prompt watcher injecting the
  secret into stdin

Availability is probed on every call (search-path lookup), so the chain
logic stays platform-agnostic and can be exercised with fakes.
"""

import asyncio
import errno
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from remote_mcp.config.settings import DEFAULT_PROMPT_MARKERS, DEFAULT_REJECTION_MARKERS
from remote_mcp.errors import AuthRejected
from remote_mcp.models import ConnectionTarget, Credential, PromptKind, StrategyKind
from remote_mcp.services.native import open_native_connection
from remote_mcp.services.process import ProcessTransport, which
from remote_mcp.services.session import NativeSession, ProcessSession, RemoteSession
from remote_mcp.services.watcher import PromptWatcher

logger = logging.getLogger(__name__)

HAVE_FIFO = hasattr(os, "mkfifo")

PIPE_POLL_INTERVAL = 0.01


class AuthenticationStrategy(ABC):
    """Capability interface for one way of authenticating."""

    kind: StrategyKind

    @abstractmethod
    def is_available(self) -> bool:
        """Probe whether the strategy can run on this host right now."""

    @abstractmethod
    async def open(
        self,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
    ) -> RemoteSession:
        """Authenticate and return a session.

        Args:
            target: Parsed connection target
            credential: Secret for the remote account
            command: Remote command the session will run (process-backed
                strategies spawn the client with it)

        Raises:
            AuthRejected: If the credential is refused
            TransportUnavailable: If the strategy cannot reach the host
        """


class NativeStrategy(AuthenticationStrategy):
    """In-process SSH via asyncssh."""

    kind = StrategyKind.NATIVE

    def __init__(
        self,
        enabled: bool = True,
        known_hosts: str | None = None,
        connect_timeout: float | None = None,
    ) -> None:
        self.enabled = enabled
        self.known_hosts = known_hosts
        self.connect_timeout = connect_timeout

    def is_available(self) -> bool:
        return self.enabled

    async def open(
        self,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
    ) -> RemoteSession:
        conn = await open_native_connection(
            target,
            credential,
            known_hosts=self.known_hosts,
            connect_timeout=self.connect_timeout,
        )
        return NativeSession(conn)


class ProcessStrategy(AuthenticationStrategy):
    """Shared OpenSSH option handling for process-backed strategies."""

    def __init__(
        self,
        host_key_options: list[str] | None = None,
        connect_timeout: int = 10,
    ) -> None:
        self.host_key_options = list(host_key_options or ["-o", "StrictHostKeyChecking=no"])
        self.connect_timeout = connect_timeout

    def ssh_options(self, target: ConnectionTarget) -> list[str]:
        """OpenSSH client options for a single password attempt."""
        return [
            *self.host_key_options,
            "-o", "NumberOfPasswordPrompts=1",
            "-o", f"ConnectTimeout={self.connect_timeout}",
            "-p", str(target.port),
        ]


class SshpassStrategy(ProcessStrategy):
    """Helper A: sshpass reading the secret from its environment."""

    kind = StrategyKind.HELPER_A

    def is_available(self) -> bool:
        return which("sshpass") is not None and which("ssh") is not None

    async def open(
        self,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
    ) -> RemoteSession:
        argv = [
            "sshpass", "-e",
            "ssh", *self.ssh_options(target),
            target.destination,
            command,
        ]
        logger.info("Spawning sshpass session to %s", target)
        transport = await ProcessTransport.spawn(
            argv, env={"SSHPASS": credential.reveal()}
        )
        return ProcessSession(transport, command, self.kind)


def _write_credential_file(credential: Credential) -> str:
    """Write the secret to a unique file readable only by this user."""
    fd, path = tempfile.mkstemp(prefix="remote_mcp_", suffix=".pw")
    try:
        os.chmod(path, 0o600)
        os.write(fd, credential.reveal().encode())
    except BaseException:
        os.close(fd)
        Path(path).unlink(missing_ok=True)
        raise
    os.close(fd)
    return path


class CredentialFile:
    """Transient ``-pwfile`` handed to plink.

    With named pipes available the secret goes through a FIFO in a private
    directory. It never reaches the disk, and the path disappears as soon
    as plink has read it. Otherwise a 0600 regular file is used, which the
    session removes once the login is over.
    """

    def __init__(self, credential: Credential) -> None:
        self._credential = credential
        self._directory: str | None = None
        self._feeder: asyncio.Task[None] | None = None
        self.path = ""

    def create(self) -> str:
        """Create the path plink will read the secret from."""
        if not HAVE_FIFO:
            self.path = _write_credential_file(self._credential)
            return self.path

        self._directory = tempfile.mkdtemp(prefix="remote_mcp_")
        self.path = os.path.join(self._directory, "pw")
        try:
            os.mkfifo(self.path, 0o600)
        except BaseException:
            self.remove()
            raise
        self._feeder = asyncio.create_task(self._feed())
        return self.path

    async def _feed(self) -> None:
        # Opening the write end fails with ENXIO until plink opens the pipe
        while True:
            try:
                fd = os.open(self.path, os.O_WRONLY | os.O_NONBLOCK)
                break
            except OSError as e:
                if e.errno != errno.ENXIO:
                    logger.debug("Credential pipe closed before use: %s", e.strerror)
                    return
            await asyncio.sleep(PIPE_POLL_INTERVAL)

        try:
            os.write(fd, self._credential.reveal().encode())
        except OSError as e:
            logger.debug("Credential pipe write failed: %s", e.strerror)
        finally:
            os.close(fd)
            self._unlink()

    def _unlink(self) -> None:
        if not self.path:
            return
        Path(self.path).unlink(missing_ok=True)
        if self._directory is not None:
            try:
                os.rmdir(self._directory)
            except FileNotFoundError:
                pass
            self._directory = None
        self.path = ""
        logger.debug("Removed transient credential file")

    def remove(self) -> None:
        """Remove the path if plink has not consumed it yet (idempotent)."""
        if self._feeder is not None and not self._feeder.done():
            self._feeder.cancel()
        self._unlink()


class PlinkStrategy(ProcessStrategy):
    """Helper B: PuTTY's plink reading the secret from a transient file."""

    kind = StrategyKind.HELPER_B

    def is_available(self) -> bool:
        return which("plink") is not None

    async def open(
        self,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
    ) -> RemoteSession:
        pwfile = CredentialFile(credential)
        argv = [
            "plink", "-batch", "-ssh",
            "-P", str(target.port),
            "-pwfile", pwfile.create(),
            target.destination,
            command,
        ]
        logger.info("Spawning plink session to %s", target)
        try:
            transport = await ProcessTransport.spawn(argv)
        except BaseException:
            pwfile.remove()
            raise

        return ProcessSession(
            transport,
            command,
            self.kind,
            cleanup=[pwfile.remove],
            after_login=[pwfile.remove],
        )


class InteractiveStrategy(ProcessStrategy):
    """Last resort: plain ssh with the secret injected on prompt."""

    kind = StrategyKind.INTERACTIVE

    def __init__(
        self,
        host_key_options: list[str] | None = None,
        connect_timeout: int = 10,
        prompt_markers: Iterable[str] = DEFAULT_PROMPT_MARKERS,
        rejection_markers: Iterable[str] = DEFAULT_REJECTION_MARKERS,
        prompt_deadline: float = 10.0,
        settle_delay: float = 0.5,
    ) -> None:
        super().__init__(host_key_options, connect_timeout)
        self.prompt_markers = list(prompt_markers)
        self.rejection_markers = list(rejection_markers)
        self.prompt_deadline = prompt_deadline
        self.settle_delay = settle_delay

    def is_available(self) -> bool:
        # Always attempted; a missing ssh binary surfaces from spawn()
        return True

    async def open(
        self,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
    ) -> RemoteSession:
        argv = ["ssh", *self.ssh_options(target), target.destination, command]
        logger.info("Spawning interactive ssh session to %s", target)
        transport = await ProcessTransport.spawn(argv)

        watcher = PromptWatcher(
            transport.stderr,
            transport.stdin,
            credential,
            prompt_markers=self.prompt_markers,
            rejection_markers=self.rejection_markers,
            settle_delay=self.settle_delay,
        )
        watcher.start()

        try:
            decision = await watcher.wait_for_decision(deadline=self.prompt_deadline)
        except AuthRejected:
            await transport.close()
            await watcher.join()
            raise

        if decision is not None and decision.kind is PromptKind.AUTH_FAILURE:
            await transport.close()
            await watcher.join()
            raise AuthRejected(f"interactive: {decision.line.strip()}")

        if decision is None:
            logger.info("No password prompt from %s, continuing without injection", target)
        else:
            logger.debug("Password prompt answered for %s", target)

        return ProcessSession(transport, command, self.kind, watcher=watcher)
