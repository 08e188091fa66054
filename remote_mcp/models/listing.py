"""Directory listing data models."""

from dataclasses import dataclass


@dataclass
class FileEntry:
    """One entry of an ``ls -la`` listing."""

    name: str
    type: str
    size: str | None = None
    permissions: str | None = None
    date: str | None = None
