"""Lookup of compiled contract artifacts (creation bytecode)."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..errors import ContractCreationError

LOGGER = logging.getLogger(__name__)


@dataclass
class Artifact:
    name: str
    abi: List[Dict[str, Any]]
    bytecode: str


@dataclass
class ArtifactStore:
    """Finds ``<Name>.json`` build outputs below ``root``.

    Both Hardhat (``"bytecode": "0x…"``) and Foundry
    (``"bytecode": {"object": "0x…"}``) layouts are understood.
    """

    root: Optional[Path]
    _cache: Dict[str, Artifact] = field(default_factory=dict, repr=False)

    def locate(self, name: str) -> Path:
        if self.root is None:
            raise ContractCreationError(
                f"no contracts directory configured; cannot find {name}.json "
                "(set AUTOMATION_CLI_CONTRACTS_DIR or the Verifier.ContractsDirectory key)"
            )
        root = Path(self.root).expanduser()
        direct = root / f"{name}.json"
        if direct.is_file():
            return direct
        for candidate in sorted(root.rglob(f"{name}.json")):
            if candidate.is_file():
                return candidate
        raise ContractCreationError(f"artifact {name}.json not found under {root}")

    def load(self, name: str) -> Artifact:
        if name in self._cache:
            return self._cache[name]
        path = self.locate(name)
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise ContractCreationError(f"failed to read artifact {path}: {exc}") from exc
        bytecode = payload.get("bytecode")
        if isinstance(bytecode, dict):
            bytecode = bytecode.get("object")
        if not isinstance(bytecode, str) or len(bytecode.removeprefix("0x")) == 0:
            raise ContractCreationError(f"artifact {path} carries no creation bytecode")
        if not bytecode.startswith("0x"):
            bytecode = f"0x{bytecode}"
        artifact = Artifact(name=name, abi=list(payload.get("abi") or []), bytecode=bytecode)
        self._cache[name] = artifact
        LOGGER.debug("loaded artifact %s from %s", name, path)
        return artifact


__all__ = ["Artifact", "ArtifactStore"]
