"""Services for Remote MCP."""

from remote_mcp.services.chain import Attempt, StrategyChain
from remote_mcp.services.classifier import classify_native_error, classify_process_failure
from remote_mcp.services.executors import (
    browse_remote_directory,
    execute_remote_command,
    list_remote_directories,
    open_elevated_local_shell,
    save_remote_file,
)
from remote_mcp.services.process import ProcessTransport, which
from remote_mcp.services.session import NativeSession, ProcessSession, RemoteSession
from remote_mcp.services.state import get_config, reset_state, set_config
from remote_mcp.services.strategies import (
    AuthenticationStrategy,
    InteractiveStrategy,
    NativeStrategy,
    PlinkStrategy,
    SshpassStrategy,
)
from remote_mcp.services.transfer import send_file
from remote_mcp.services.watcher import PromptWatcher

__all__ = [
    "Attempt",
    "AuthenticationStrategy",
    "InteractiveStrategy",
    "NativeSession",
    "NativeStrategy",
    "PlinkStrategy",
    "ProcessSession",
    "ProcessTransport",
    "PromptWatcher",
    "RemoteSession",
    "SshpassStrategy",
    "StrategyChain",
    "browse_remote_directory",
    "classify_native_error",
    "classify_process_failure",
    "execute_remote_command",
    "get_config",
    "list_remote_directories",
    "open_elevated_local_shell",
    "reset_state",
    "save_remote_file",
    "send_file",
    "set_config",
    "which",
]
