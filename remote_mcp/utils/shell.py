"""Shell command safety utilities."""

import shlex


def quote_path(path: str) -> str:
    """Safely quote a remote path for shell commands.

    Args:
        path: File system path to quote

    Returns:
        Shell-safe quoted path
    """
    return shlex.quote(path)


def quote_powershell(text: str) -> str:
    """Escape text for a single-quoted PowerShell string literal.

    Args:
        text: Text to embed between single quotes

    Returns:
        Text with embedded single quotes doubled
    """
    return text.replace("'", "''")
