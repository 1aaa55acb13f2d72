"""Key vault operations: create, store, import, list and delete."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional, Union

from eth_account import Account

from ..errors import KeyNotFoundError, PublicKeyCastingError, ReadConfigError
from ..state.models import Key
from .context import CommandContext

LOGGER = logging.getLogger(__name__)


def _strip_prefix(value: str) -> str:
    text = value.strip()
    return text[2:] if text.lower().startswith("0x") else text


def key_from_value(alias: str, value: str) -> Key:
    """Derive the address of a hex private key and wrap both as a vault entry."""

    text = _strip_prefix(value)
    try:
        account = Account.from_key(f"0x{text}")
    except (ValueError, TypeError) as exc:
        raise PublicKeyCastingError(f"value stored for {alias!r} is not a valid private key") from exc
    return Key(alias=alias, value=text, address=account.address)


def create_key(ctx: CommandContext, alias: str) -> Key:
    account = Account.create()
    key = Key(alias=alias, value=account.key.hex().removeprefix("0x"), address=account.address)
    vault = ctx.vault()
    vault.put(key)
    ctx.store.save_key_vault(vault)
    LOGGER.info("created key %s (%s)", alias, key.address)
    return key


def store_key(ctx: CommandContext, alias: str, value: str) -> Key:
    key = key_from_value(alias, value)
    vault = ctx.vault()
    vault.put(key)
    ctx.store.save_key_vault(vault)
    LOGGER.info("stored key %s (%s)", alias, key.address)
    return key


def list_keys(ctx: CommandContext) -> List[Key]:
    return list(ctx.vault().keys)


def delete_key(ctx: CommandContext, pattern: str) -> Key:
    vault = ctx.vault()
    removed = vault.delete(pattern)
    if removed is None:
        raise KeyNotFoundError(f"no key matches {pattern!r}")
    ctx.store.save_key_vault(vault)
    LOGGER.info("deleted key %s", removed.alias)
    return removed


def _read_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ReadConfigError(f"failed to read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ReadConfigError(f"{path} is not valid JSON: {exc}") from exc


def import_ganache(ctx: CommandContext, path: Union[str, Path]) -> List[Key]:
    """Import the accounts of a ganache ``--account_keys_path`` dump.

    The first account becomes ``ganache-primary``, later ones ``ganache-<i>``.
    Existing aliases are replaced.
    """

    payload = _read_json(Path(path))
    addresses = payload.get("addresses") or {}
    private_keys = payload.get("private_keys") or {}
    lowered = {str(address).lower(): value for address, value in private_keys.items()}

    def position(item: tuple) -> tuple:
        label = str(item[0])
        return (0, int(label), "") if label.isdigit() else (1, 0, label)

    imported: List[Key] = []
    for _, address in sorted(addresses.items(), key=position):
        value = private_keys.get(address, lowered.get(str(address).lower()))
        if value is None:
            continue
        suffix = "primary" if not imported else str(len(imported))
        imported.append(Key(alias=f"ganache-{suffix}", value=value, address=address))

    vault = ctx.vault()
    for key in imported:
        vault.put(key)
    ctx.store.save_key_vault(vault)
    LOGGER.info("imported %d ganache keys", len(imported))
    return imported


def _keystore_paths(path: Path) -> List[Path]:
    if path.is_dir():
        return sorted(entry for entry in path.iterdir() if entry.is_file())
    if path.is_file():
        return [path]
    raise ReadConfigError(f"{path} does not exist")


def import_geth(
    ctx: CommandContext,
    name: str,
    path: Union[str, Path],
    password_file: Optional[Union[str, Path]] = None,
) -> List[Key]:
    """Decrypt geth keystore files and store them as ``<name>-<i>``."""

    password = ""
    if password_file is not None:
        try:
            password = Path(password_file).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ReadConfigError(f"failed to read {password_file}: {exc}") from exc

    imported: List[Key] = []
    for index, keystore_path in enumerate(_keystore_paths(Path(path).expanduser())):
        keystore = _read_json(keystore_path)
        try:
            secret = Account.decrypt(keystore, password)
        except ValueError as exc:
            raise PublicKeyCastingError(f"failed to decrypt {keystore_path}: {exc}") from exc
        account = Account.from_key(secret)
        imported.append(Key(alias=f"{name}-{index}", value=bytes(secret).hex(), address=account.address))

    vault = ctx.vault()
    for key in imported:
        vault.put(key)
    ctx.store.save_key_vault(vault)
    LOGGER.info("imported %d geth keys as %s-*", len(imported), name)
    return imported


__all__ = [
    "create_key",
    "delete_key",
    "import_ganache",
    "import_geth",
    "key_from_value",
    "list_keys",
    "store_key",
]
