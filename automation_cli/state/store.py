"""On-disk layout of the state directory."""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import tomllib
from pathlib import Path
from typing import Union

import tomli_w
from pydantic import ValidationError

from ..errors import ReadConfigError, WriteConfigError
from .models import Environment, PrivateKeys

LOGGER = logging.getLogger(__name__)

DEFAULT_STATE_DIRECTORY = "~/.automation-cli"
ENVIRONMENT_FILENAME = "config.toml"
KEYS_FILENAME = "keys.json"
FILE_MODE = 0o640
DIRECTORY_MODE = 0o760


def ensure_directory(path: Path) -> Path:
    path.mkdir(mode=DIRECTORY_MODE, parents=True, exist_ok=True)
    return path


def write_file(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` in one step, leaving mode 0640."""

    ensure_directory(path.parent)
    handle, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            stream.write(content)
        os.chmod(temp_name, FILE_MODE)
        os.replace(temp_name, path)
    except BaseException:
        Path(temp_name).unlink(missing_ok=True)
        raise


class StateStore:
    """Reads and writes the key vault and the per-environment records.

    Each command loads what it needs once, mutates it in memory and writes it
    back as a whole document. There is no locking: the last writer wins.
    """

    def __init__(self, root: Union[str, Path] = DEFAULT_STATE_DIRECTORY) -> None:
        self.root = Path(root).expanduser()

    def environment_directory(self, name: str) -> Path:
        return self.root / name

    def node_directory(self, environment: str, node: str) -> Path:
        return self.environment_directory(environment) / node

    # Environment records ----------------------------------------------------

    def load_environment(self, name: str) -> Environment:
        """Return the stored environment, or a fresh one with defaults applied."""

        path = self.environment_directory(name) / ENVIRONMENT_FILENAME
        try:
            ensure_directory(path.parent)
            if not path.exists():
                LOGGER.debug("no record at %s; starting environment %r from defaults", path, name)
                return Environment.new(name)
            with path.open("rb") as handle:
                document = tomllib.load(handle)
        except OSError as exc:
            raise ReadConfigError(f"failed to read {path}: {exc}") from exc
        except tomllib.TOMLDecodeError as exc:
            raise ReadConfigError(f"{path} is not valid TOML: {exc}") from exc

        if not document:
            return Environment.new(name)
        try:
            environment = Environment.model_validate(document)
        except ValidationError as exc:
            raise ReadConfigError(f"{path} holds an invalid environment: {exc}") from exc
        if not environment.group_name:
            environment.group_name = name
        return environment

    def save_environment(self, name: str, environment: Environment) -> Path:
        path = self.environment_directory(name) / ENVIRONMENT_FILENAME
        try:
            write_file(path, tomli_w.dumps(environment.to_document()))
        except OSError as exc:
            raise WriteConfigError(f"failed to write {path}: {exc}") from exc
        LOGGER.debug("environment %r written to %s", name, path)
        return path

    def delete_environment(self, name: str) -> None:
        path = self.environment_directory(name)
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return
        except OSError as exc:
            raise WriteConfigError(f"failed to delete {path}: {exc}") from exc
        LOGGER.info("environment %r deleted", name)

    # Key vault ----------------------------------------------------------------

    def load_key_vault(self) -> PrivateKeys:
        path = self.root / KEYS_FILENAME
        try:
            ensure_directory(self.root)
            if not path.exists():
                return PrivateKeys()
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ReadConfigError(f"failed to read {path}: {exc}") from exc
        if not text.strip():
            return PrivateKeys()
        try:
            return PrivateKeys.model_validate(json.loads(text))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ReadConfigError(f"{path} holds an invalid key vault: {exc}") from exc

    def save_key_vault(self, vault: PrivateKeys) -> Path:
        path = self.root / KEYS_FILENAME
        try:
            write_file(path, json.dumps(vault.model_dump(mode="json"), indent=2) + "\n")
        except OSError as exc:
            raise WriteConfigError(f"failed to write {path}: {exc}") from exc
        return path


__all__ = [
    "DEFAULT_STATE_DIRECTORY",
    "DIRECTORY_MODE",
    "ENVIRONMENT_FILENAME",
    "FILE_MODE",
    "KEYS_FILENAME",
    "StateStore",
    "ensure_directory",
    "write_file",
]
