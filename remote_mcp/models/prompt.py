"""Prompt watcher signals."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PromptKind(Enum):
    """What the watcher saw on the diagnostic stream."""

    PASSWORD_PROMPT = "password_prompt"
    AUTH_FAILURE = "auth_failure"


@dataclass(frozen=True)
class PromptEvent:
    """A decision emitted once by the prompt watcher."""

    kind: PromptKind
    line: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
