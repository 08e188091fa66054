"""Data models for Remote MCP."""

from remote_mcp.models.command import CommandResult, TransferResult
from remote_mcp.models.credential import Credential
from remote_mcp.models.listing import FileEntry
from remote_mcp.models.prompt import PromptEvent, PromptKind
from remote_mcp.models.strategy import StrategyKind
from remote_mcp.models.target import DEFAULT_SSH_PORT, ConnectionTarget

__all__ = [
    "CommandResult",
    "ConnectionTarget",
    "Credential",
    "DEFAULT_SSH_PORT",
    "FileEntry",
    "PromptEvent",
    "PromptKind",
    "StrategyKind",
    "TransferResult",
]
