"""Command execution data models."""

from dataclasses import dataclass, field


@dataclass
class CommandResult:
    """Fully collected output of a remote command."""

    lines: list[str] = field(default_factory=list)
    exit_succeeded: bool = True
    exit_status: int | None = 0


@dataclass
class TransferResult:
    """Result of a completed file transfer."""

    remote_path: str
    bytes_transferred: int
