"""MCP tools for Remote MCP."""

from remote_mcp.tools.remote import (
    browse_remote_directory,
    execute_remote_command,
    list_remote_directories,
    open_elevated_local_shell,
    save_remote_file,
)

__all__ = [
    "browse_remote_directory",
    "execute_remote_command",
    "list_remote_directories",
    "open_elevated_local_shell",
    "save_remote_file",
]
