"""Error taxonomy shared by every component of the CLI."""

from __future__ import annotations

from typing import Optional, TypeVar

_E = TypeVar("_E", bound="AutomationError")


class AutomationError(RuntimeError):
    """Base class for every error the tool reports to the operator."""

    def with_context(self: _E, message: str) -> _E:
        """Return a copy of this error of the same kind prefixed with ``message``."""

        wrapped = self.__class__.__new__(self.__class__)
        wrapped.__dict__.update(self.__dict__)
        RuntimeError.__init__(wrapped, f"{message}: {self}")
        wrapped.__cause__ = self
        return wrapped


# State store ---------------------------------------------------------------


class StateError(AutomationError):
    """Raised for state-directory read and write failures."""


class ReadConfigError(StateError):
    pass


class WriteConfigError(StateError):
    pass


class KeyNotFoundError(StateError):
    """Raised when an alias is not present in the key vault."""


class InvalidAddressError(StateError, ValueError):
    """Raised when a value is not a 20-byte hex address."""


# Chain gateway and contract catalog -----------------------------------------


class ChainError(AutomationError):
    """Raised for chain RPC and contract failures."""


class NetworkConnectionError(ChainError):
    pass


class PublicKeyCastingError(ChainError):
    pass


class ContractInitializationError(ChainError):
    pass


class ClientInteractionError(ChainError):
    pass


class ChainTransactionError(ChainError):
    """A transaction was mined with a failed status."""

    def __init__(self, message: str, *, tx_hash: Optional[str] = None, link: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash
        self.link = link


class ContractCreationError(ChainError):
    pass


class ContractConnectionError(ChainError):
    pass


# Node orchestrator ------------------------------------------------------------


class NodeError(AutomationError):
    """Raised for container and node HTTP failures."""


class FilesystemError(NodeError):
    pass


class NodeConnectionError(NodeError):
    """Transport failure or health-probe timeout while talking to a node."""


class AuthenticationError(NodeError):
    pass


class EncodingError(NodeError):
    """A node response could not be decoded or carried an error envelope."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NodeNotFoundError(NodeError):
    pass


class ContainerEngineError(NodeError):
    """The container engine rejected a request or could not be reached."""


# Amount parser ---------------------------------------------------------------


class AmountError(AutomationError, ValueError):
    pass


class InvalidAmountError(AmountError):
    pass


class ExponentParseError(AmountError):
    pass


# Workflow preconditions ------------------------------------------------------


class PreconditionError(AutomationError):
    """Raised when a command runs before the state it depends on exists."""


class MissingContractError(PreconditionError):
    pass


class RegistrarNotAvailable(MissingContractError):
    pass


class BootstrapNotAvailable(PreconditionError):
    pass


__all__ = [
    "AmountError",
    "AuthenticationError",
    "AutomationError",
    "BootstrapNotAvailable",
    "ChainError",
    "ChainTransactionError",
    "ClientInteractionError",
    "ContainerEngineError",
    "ContractConnectionError",
    "ContractCreationError",
    "ContractInitializationError",
    "EncodingError",
    "ExponentParseError",
    "FilesystemError",
    "InvalidAddressError",
    "InvalidAmountError",
    "KeyNotFoundError",
    "MissingContractError",
    "NetworkConnectionError",
    "NodeConnectionError",
    "NodeError",
    "NodeNotFoundError",
    "PreconditionError",
    "PublicKeyCastingError",
    "ReadConfigError",
    "RegistrarNotAvailable",
    "StateError",
    "WriteConfigError",
]
