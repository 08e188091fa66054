"""Parsing of ``ls -la`` output into file entries."""

import re

from remote_mcp.models import FileEntry

_FIELDS = re.compile(r"\s+")


def _entry_type(permissions: str) -> str:
    if permissions.startswith("d"):
        return "directory"
    if permissions.startswith("l"):
        return "symlink"
    return "file"


def parse_directory_listing(lines: list[str]) -> list[FileEntry]:
    """Parse ``ls -la`` lines into entries.

    The ``total`` header and the ``.``/``..`` entries are dropped. Lines
    that do not look like long-format entries are kept with type "unknown".
    """
    entries: list[FileEntry] = []
    for line in lines:
        if line.startswith("total"):
            continue

        parts = _FIELDS.split(line.strip())
        if len(parts) < 8:
            entries.append(FileEntry(name=line, type="unknown"))
            continue

        permissions = parts[0]
        entry = FileEntry(
            name=" ".join(parts[8:]),
            type=_entry_type(permissions),
            size=parts[4],
            permissions=permissions,
            date=" ".join(parts[5:8]),
        )
        if entry.name in (".", ".."):
            continue
        entries.append(entry)

    return entries
