"""Utilities for Remote MCP."""

from remote_mcp.utils.console import ColorfulFormatter, RemoteRequestFormatter
from remote_mcp.utils.listing import parse_directory_listing
from remote_mcp.utils.output import decode_output, normalize_lines, normalize_output
from remote_mcp.utils.parser import parse_target
from remote_mcp.utils.shell import quote_path, quote_powershell
from remote_mcp.utils.validation import validate_remote_path, validate_target

__all__ = [
    "ColorfulFormatter",
    "decode_output",
    "normalize_lines",
    "normalize_output",
    "parse_directory_listing",
    "parse_target",
    "quote_path",
    "quote_powershell",
    "RemoteRequestFormatter",
    "validate_remote_path",
    "validate_target",
]
