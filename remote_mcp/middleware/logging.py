"""Logging middleware for tool calls with integrated timing."""

import json
import logging
import time
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from remote_mcp.middleware.base import RemoteMiddleware, redact_arguments

# Methods with a dedicated hook below
HANDLED_METHODS = ("tools/call", "tools/list")


class LoggingMiddleware(RemoteMiddleware):
    """Log tool calls with redacted arguments, outcome and duration.

    Passwords and file contents never reach the log: arguments are redacted
    before formatting, both in the summary line and in payload logging.
    Tool results that report a failure (``Error: <phase>: ...``) are logged
    at WARNING with the failed phase.

    Example:
        >>> middleware = LoggingMiddleware(include_payloads=True)
        >>> mcp.add_middleware(middleware)
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_payloads: bool = False,
        max_payload_length: int = 1000,
        slow_threshold_ms: float = 1000.0,
    ) -> None:
        """Initialize logging middleware.

        Args:
            logger: Optional custom logger.
            include_payloads: Whether to log (redacted) arguments and results.
            max_payload_length: Maximum payload length before truncation.
            slow_threshold_ms: Duration above which a call logs at WARNING.
        """
        super().__init__(logger=logger)
        self.include_payloads = include_payloads
        self.max_payload_length = max_payload_length
        self.slow_threshold_ms = slow_threshold_ms

    def _truncate(self, data: Any) -> str:
        try:
            text = json.dumps(data, default=str)
        except (TypeError, ValueError):
            text = str(data)

        if len(text) > self.max_payload_length:
            return text[: self.max_payload_length] + "... [truncated]"
        return text

    def _format_args(self, args: dict[str, Any] | None) -> str:
        """Format redacted tool arguments as ``(key=value, ...)``."""
        parts = []
        for key, value in redact_arguments(args).items():
            if isinstance(value, str) and len(value) > 50:
                value = value[:50] + "..."
            parts.append(f"{key}={value!r}")
        return f"({', '.join(parts)})"

    def _format_duration(self, duration_ms: float) -> str:
        if duration_ms >= self.slow_threshold_ms:
            return f"{duration_ms:.1f}ms SLOW!"
        return f"{duration_ms:.1f}ms"

    def _failure_phase(self, result: Any) -> str | None:
        """Phase named by an ``Error: <phase>: ...`` tool result, if any."""
        text = result
        content = getattr(result, "content", None)
        if isinstance(content, (list, tuple)) and len(content) == 1:
            text = getattr(content[0], "text", None)

        if isinstance(text, str) and text.startswith("Error: "):
            phase, sep, _ = text[len("Error: "):].partition(":")
            return phase if sep else "unknown"
        return None

    def _summarize_result(self, result: Any) -> str:
        if result is None:
            return "null"

        if isinstance(result, str):
            lines = result.count("\n") + 1
            if lines > 1:
                return f"{len(result)} chars, {lines} lines"
            return f"{len(result)} chars"

        if isinstance(result, (list, tuple)):
            return f"{len(result)} items"

        if isinstance(result, dict):
            return f"{len(result)} keys"

        if hasattr(result, "content"):
            content = result.content
            if isinstance(content, (list, tuple)):
                return f"{len(content)} content item(s)"
            return "content"

        return type(result).__name__

    async def on_call_tool(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        start = time.perf_counter()
        tool_name = getattr(context.message, "name", "unknown")
        args = getattr(context.message, "arguments", None)

        self.logger.info(">>> TOOL: %s%s", tool_name, self._format_args(args))
        if self.include_payloads and args:
            self.logger.debug("    Args: %s", self._truncate(redact_arguments(args)))

        try:
            result = await call_next(context)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            self.logger.error(
                "!!! TOOL: %s -> %s: %s [%s]",
                tool_name,
                type(e).__name__,
                e,
                self._format_duration(duration_ms),
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        phase = self._failure_phase(result)
        if phase is not None:
            self.logger.warning(
                "<<< TOOL: %s -> failed in %s [%s]",
                tool_name,
                phase,
                self._format_duration(duration_ms),
            )
        else:
            level = (
                logging.WARNING if duration_ms >= self.slow_threshold_ms else logging.INFO
            )
            self.logger.log(
                level,
                "<<< TOOL: %s -> %s [%s]",
                tool_name,
                self._summarize_result(result),
                self._format_duration(duration_ms),
            )

        if self.include_payloads and result is not None:
            self.logger.debug("    Result: %s", self._truncate(result))

        return result

    async def on_list_tools(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        start = time.perf_counter()
        result = await call_next(context)
        duration_ms = (time.perf_counter() - start) * 1000

        tool_count: int | str = "?"
        if hasattr(result, "tools"):
            tool_count = len(result.tools)
        elif isinstance(result, (list, tuple)):
            tool_count = len(result)

        self.logger.info(
            "<<< LIST TOOLS -> %s tool(s) [%s]",
            tool_count,
            self._format_duration(duration_ms),
        )
        return result

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Debug-log MCP methods without a dedicated hook."""
        method = context.method
        if method in HANDLED_METHODS:
            return await call_next(context)

        start = time.perf_counter()
        self.logger.debug(">>> MCP: %s", method)
        result = await call_next(context)
        self.logger.debug(
            "<<< MCP: %s [%s]",
            method,
            self._format_duration((time.perf_counter() - start) * 1000),
        )
        return result
