"""Chain gateway: transaction building, inclusion waits and explorer links."""

from .explorer import EXPLORERS, explorer_link
from .gateway import ChainGateway
from .verify import log_verify_hint, verify_command

__all__ = ["ChainGateway", "EXPLORERS", "explorer_link", "log_verify_hint", "verify_command"]
