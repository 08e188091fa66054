"""Ordered authentication strategy chain.

Rules:
- If the native strategy is available it is the only attempt, and its
  failure is final.
- Otherwise helpers are tried in order. A missing helper is skipped, a
  transport failure advances the chain, a rejected credential stops it.
- The interactive strategy is always attempted exactly once as the last
  resort, and its outcome is final.
- Errors raised by the operation propagate unchanged once the remote
  command has started, so a command is never dispatched twice. Until
  then a process client failing at exit is treated like a failed login.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from remote_mcp.errors import (
    AuthExhausted,
    AuthRejected,
    RemoteError,
    StrategyUnavailable,
    TransportUnavailable,
)
from remote_mcp.models import ConnectionTarget, Credential, StrategyKind
from remote_mcp.services.session import RemoteSession
from remote_mcp.services.strategies import (
    AuthenticationStrategy,
    InteractiveStrategy,
    NativeStrategy,
    PlinkStrategy,
    SshpassStrategy,
)

if TYPE_CHECKING:
    from remote_mcp.config import Config

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionOperation = Callable[[RemoteSession], Awaitable[T]]


@dataclass
class Attempt:
    """Outcome of one strategy attempt."""

    strategy: StrategyKind
    error: RemoteError | None = None
    dispatched: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class StrategyChain:
    """Try authentication strategies in a fixed order."""

    native: AuthenticationStrategy
    helpers: list[AuthenticationStrategy]
    interactive: AuthenticationStrategy
    attempts: list[Attempt] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: "Config") -> "StrategyChain":
        """Build the default chain from configuration.

        Args:
            config: Application configuration

        Returns:
            Chain of native, sshpass, plink and interactive strategies
        """
        settings = config.settings
        host_key_options = config.host_keys.openssh_options()

        return cls(
            native=NativeStrategy(
                enabled=settings.native_transport,
                known_hosts=config.host_keys.native_known_hosts(),
                connect_timeout=settings.connect_timeout,
            ),
            helpers=[
                SshpassStrategy(host_key_options, settings.connect_timeout),
                PlinkStrategy(host_key_options, settings.connect_timeout),
            ],
            interactive=InteractiveStrategy(
                host_key_options,
                settings.connect_timeout,
                prompt_markers=settings.prompt_markers,
                rejection_markers=settings.rejection_markers,
                prompt_deadline=settings.prompt_deadline,
                settle_delay=settings.settle_delay,
            ),
        )

    async def _attempt(
        self,
        strategy: AuthenticationStrategy,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
        operation: SessionOperation[T],
    ) -> T:
        """Authenticate with one strategy and run the operation.

        Process-backed strategies only learn the authentication outcome
        when the client exits, so rejection and transport errors raised by
        the operation are recorded against the attempt as well, together
        with whether the remote command had already started.
        """
        attempt = Attempt(strategy.kind)
        self.attempts.append(attempt)
        logger.info("Trying %s authentication for %s", strategy.kind.value, target)
        try:
            session = await strategy.open(target, credential, command)
        except (AuthRejected, TransportUnavailable) as e:
            attempt.error = e
            logger.info("%s attempt failed: %s", strategy.kind.value, e)
            raise

        async with session:
            try:
                return await operation(session)
            except (AuthRejected, TransportUnavailable) as e:
                attempt.error = e
                attempt.dispatched = session.command_started
                if attempt.dispatched:
                    logger.info("%s command failed after start: %s", strategy.kind.value, e)
                else:
                    logger.info("%s attempt failed: %s", strategy.kind.value, e)
                raise

    async def run(
        self,
        target: ConnectionTarget,
        credential: Credential,
        command: str,
        operation: SessionOperation[T],
    ) -> T:
        """Authenticate and run an operation on the resulting session.

        Args:
            target: Parsed connection target
            credential: Secret for the remote account
            command: Remote command the operation runs
            operation: Coroutine function receiving the session

        Returns:
            Whatever the operation returns

        Raises:
            AuthRejected: The credential was refused
            AuthExhausted: Every attempted strategy failed to connect
            TransportUnavailable: No strategy could even start, or the client
                failed after the remote command had started
        """
        self.attempts = []

        if self.native.is_available():
            return await self._attempt(self.native, target, credential, command, operation)

        last_error: RemoteError | None = None
        for helper in self.helpers:
            if not helper.is_available():
                logger.debug("%s not installed, skipping", helper.kind.value)
                continue
            try:
                return await self._attempt(helper, target, credential, command, operation)
            except StrategyUnavailable as e:
                logger.debug("%s could not start: %s", helper.kind.value, e)
            except TransportUnavailable as e:
                if self.attempts[-1].dispatched:
                    raise
                last_error = e

        try:
            return await self._attempt(
                self.interactive, target, credential, command, operation
            )
        except StrategyUnavailable as e:
            if last_error is None:
                raise
            raise AuthExhausted(last_error) from e
        except TransportUnavailable as e:
            if self.attempts[-1].dispatched:
                raise
            raise AuthExhausted(e) from e
