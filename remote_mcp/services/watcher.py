"""Prompt watcher and interactive credential injector.

A subordinate ssh process may or may not ask for a password on its
diagnostic stream before reading stdin. The watcher reads that stream on a
background task, and on the first password prompt writes the secret plus a
line terminator to the process's stdin exactly once. A rejection marker seen
before any prompt resolves the decision as a failure without writing.

The foreground never blocks on the watcher for longer than the prompt
deadline: wait_for_decision() polls in short intervals and gives up when
the deadline passes, leaving overall completion to the process itself.

After the decision the task keeps draining the stream into ``lines`` so the
process cannot stall on a full stderr pipe and later diagnostics are still
available to the error classifier.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Protocol

from remote_mcp.config.settings import DEFAULT_PROMPT_MARKERS, DEFAULT_REJECTION_MARKERS
from remote_mcp.errors import InjectionError
from remote_mcp.models import Credential, PromptEvent, PromptKind
from remote_mcp.utils.output import decode_output

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 4096


class StreamWriter(Protocol):
    """The part of asyncio.StreamWriter the injector needs."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class PromptWatcher:
    """Watch a diagnostic stream for credential prompts."""

    def __init__(
        self,
        stderr: asyncio.StreamReader,
        stdin: StreamWriter,
        credential: Credential,
        prompt_markers: Iterable[str] = DEFAULT_PROMPT_MARKERS,
        rejection_markers: Iterable[str] = DEFAULT_REJECTION_MARKERS,
        settle_delay: float = 0.5,
        terminator: bytes = b"\n",
    ) -> None:
        """Initialize watcher.

        Args:
            stderr: Diagnostic stream of the subordinate process
            stdin: Input stream of the subordinate process
            credential: Secret to inject on prompt
            prompt_markers: Case-insensitive substrings marking a password prompt
            rejection_markers: Case-insensitive substrings marking a rejection
            settle_delay: Seconds to wait between prompt and write
            terminator: Bytes appended to the secret
        """
        self._stderr = stderr
        self._stdin = stdin
        self._credential = credential
        self.prompt_markers = [m.lower() for m in prompt_markers]
        self.rejection_markers = [m.lower() for m in rejection_markers]
        self.settle_delay = settle_delay
        self.terminator = terminator

        self.lines: list[str] = []
        self.injections = 0
        self.injection_error: InjectionError | None = None
        self.timed_out = False

        self._decided = False
        self._decision: asyncio.Future[PromptEvent | None] | None = None
        self._task: asyncio.Task[None] | None = None

    def start(self) -> asyncio.Task[None]:
        """Start the background reader task (once)."""
        if self._task is not None:
            return self._task
        self._decision = asyncio.get_running_loop().create_future()
        self._task = asyncio.create_task(self._run(), name="prompt-watcher")
        return self._task

    @property
    def decided(self) -> bool:
        return self._decision is not None and self._decision.done()

    def _matches(self, line: str, markers: list[str]) -> bool:
        lowered = line.lower()
        return any(marker in lowered for marker in markers)

    def _resolve(self, event: PromptEvent | None) -> None:
        self._decided = True
        if self._decision is not None and not self._decision.done():
            self._decision.set_result(event)

    async def _inject(self, line: str) -> None:
        """Write the secret once, after the settle delay."""
        self._decided = True
        await asyncio.sleep(self.settle_delay)
        try:
            self._stdin.write(self._credential.reveal().encode() + self.terminator)
            await self._stdin.drain()
        except (OSError, RuntimeError, ValueError) as e:
            # never include the secret in the message
            self.injection_error = InjectionError(
                f"failed to write credential to input stream: {type(e).__name__}"
            )
            logger.warning("Credential injection failed: %s", type(e).__name__)
            self._resolve(None)
            return

        self.injections += 1
        logger.debug("Credential injected after prompt %r", line.strip())
        self._resolve(PromptEvent(kind=PromptKind.PASSWORD_PROMPT, line=line))

    async def _handle_line(self, line: str) -> None:
        self.lines.append(line)
        if self._decided:
            return

        if self._matches(line, self.prompt_markers):
            await self._inject(line)
        elif self._matches(line, self.rejection_markers):
            logger.debug("Rejection observed before prompt: %r", line.strip())
            self._resolve(PromptEvent(kind=PromptKind.AUTH_FAILURE, line=line))

    async def _run(self) -> None:
        buffer = b""
        try:
            while True:
                chunk = await self._stderr.read(READ_CHUNK_SIZE)
                if not chunk:
                    break

                buffer += chunk
                *complete, buffer = buffer.split(b"\n")
                for raw in complete:
                    await self._handle_line(decode_output(raw).rstrip("\r"))

                # ssh prints "user@host's password: " without a newline
                if buffer and not self._decided:
                    partial = decode_output(buffer)
                    if self._matches(partial, self.prompt_markers):
                        await self._inject(partial)

            if buffer:
                await self._handle_line(decode_output(buffer).rstrip("\r"))
        except OSError as e:
            logger.debug("Diagnostic stream read failed: %s", e)
        finally:
            if not self._decided:
                logger.debug("Diagnostic stream ended without a prompt")
            self._resolve(None)

    async def wait_for_decision(
        self,
        deadline: float = 10.0,
        poll_interval: float = 0.1,
    ) -> PromptEvent | None:
        """Poll for the watcher's decision, bounded by a deadline.

        Args:
            deadline: Maximum seconds to wait
            poll_interval: Seconds between polls

        Returns:
            The decision event, or None if the stream ended without a
            prompt or the deadline passed.

        Raises:
            InjectionError: If writing the secret failed
        """
        if self._decision is None:
            self.start()
        assert self._decision is not None

        loop = asyncio.get_running_loop()
        started = loop.time()
        while loop.time() - started < deadline:
            if self._decision.done():
                break
            await asyncio.sleep(poll_interval)

        if self.injection_error is not None:
            raise self.injection_error

        if not self._decision.done():
            self.timed_out = True
            logger.warning("No prompt decision within %.1fs, proceeding", deadline)
            return None

        return self._decision.result()

    async def join(self, timeout: float = 1.0) -> None:
        """Wait for the reader task to finish, cancelling it if it lingers.

        Called after the owning process has exited, when the stream is at
        EOF and the task finishes on its own.
        """
        task = self._task
        if task is None:
            return

        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            logger.debug("Prompt watcher still running after %.1fs, cancelling", timeout)
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            return

        if not task.cancelled() and task.exception() is not None:
            logger.error("Prompt watcher failed: %r", task.exception())
