"""Connection target data models."""

from dataclasses import dataclass

DEFAULT_SSH_PORT = 22


@dataclass(frozen=True)
class ConnectionTarget:
    """Parsed ``user@host`` connection target."""

    user: str
    host: str
    port: int = DEFAULT_SSH_PORT

    @property
    def destination(self) -> str:
        """Destination in the ``user@host`` form expected by ssh clients."""
        return f"{self.user}@{self.host}"

    def __str__(self) -> str:
        return f"{self.user}@{self.host}:{self.port}"
