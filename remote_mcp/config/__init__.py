"""Configuration module for Remote MCP.

Provides focused classes for different configuration concerns:
- Config: Main configuration class (aggregates all components)
- HostKeyVerifier: Manages SSH host key verification
- Settings: Environment variable configuration
"""

from remote_mcp.config.host_keys import HostKeyVerifier
from remote_mcp.config.main import Config
from remote_mcp.config.settings import Settings

__all__ = ["Config", "HostKeyVerifier", "Settings"]
