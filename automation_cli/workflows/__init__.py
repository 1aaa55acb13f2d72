"""Command workflows, one module per command group."""

from . import config, contracts, keys, network
from .context import DEFAULT_ENVIRONMENT, CommandContext

__all__ = ["CommandContext", "DEFAULT_ENVIRONMENT", "config", "contracts", "keys", "network"]
