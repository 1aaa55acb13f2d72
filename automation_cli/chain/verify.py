"""Explorer verification hints printed after a deployment."""

from __future__ import annotations

import logging
import shlex
from typing import Any, Optional

from ..state.models import Verifier

LOGGER = logging.getLogger(__name__)


def verify_command(verifier: Optional[Verifier], address: str, *constructor_args: Any) -> Optional[str]:
    """Return the hardhat command that verifies ``address``, if a verifier is configured."""

    if verifier is None or not verifier.network_name or not verifier.contracts_directory:
        return None
    parts = ["npx", "hardhat", "verify", "--network", verifier.network_name, address]
    parts.extend(str(arg) for arg in constructor_args)
    command = " ".join(shlex.quote(part) for part in parts)
    return f"cd {shlex.quote(verifier.contracts_directory)} && {command}"


def log_verify_hint(verifier: Optional[Verifier], address: str, *constructor_args: Any) -> None:
    command = verify_command(verifier, address, *constructor_args)
    if command is not None:
        LOGGER.info("verify with: %s", command)


__all__ = ["log_verify_hint", "verify_command"]
