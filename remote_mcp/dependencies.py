"""Dependency injection container for Remote MCP.

Replaces global singleton pattern with explicit dependency injection.
"""

from dataclasses import dataclass

from remote_mcp.config import Config
from remote_mcp.services.chain import StrategyChain


@dataclass
class Dependencies:
    """Container for Remote MCP dependencies.

    Holds the configuration. Strategy chains are built per operation since
    they record the attempts of a single call.

    Example:
        deps = Dependencies.create()
        lines = await list_remote_directories(..., config=deps.config, chain=deps.new_chain())
    """

    config: Config

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies with configuration from the environment.

        Returns:
            Initialized Dependencies instance
        """
        return cls(config=Config.from_env())

    @classmethod
    def from_config(cls, config: Config) -> "Dependencies":
        """Create dependencies with custom configuration.

        Args:
            config: Custom Config instance
        """
        return cls(config=config)

    def new_chain(self) -> StrategyChain:
        """Build a fresh strategy chain for one operation."""
        return StrategyChain.from_config(self.config)
