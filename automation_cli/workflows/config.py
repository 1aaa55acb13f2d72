"""Environment setup and dotted-key access to the environment record."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError

from ..errors import KeyNotFoundError, WriteConfigError
from ..state.models import DEFAULT_CHAIN_ID, DEFAULT_KEY_ALIAS, Environment
from .context import CommandContext

LOGGER = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def setup(
    ctx: CommandContext,
    *,
    chain_id: Optional[int] = None,
    private_key_alias: str = "",
    http_url: str = "",
    ws_url: str = "",
) -> Environment:
    """Create or update the environment header and persist it."""

    environment = ctx.load()
    environment.group_name = ctx.environment_name
    environment.chain_id = chain_id or DEFAULT_CHAIN_ID
    environment.private_key_alias = private_key_alias or DEFAULT_KEY_ALIAS
    environment.http_url = http_url
    environment.ws_url = ws_url
    path = ctx.save(environment)
    LOGGER.info("environment %r configured at %s", ctx.environment_name, path)
    return environment


def delete(ctx: CommandContext) -> None:
    ctx.store.delete_environment(ctx.environment_name)


def _locate(document: Dict[str, Any], key: str) -> Tuple[Any, Any]:
    """Return ``(container, actual key)`` for a dotted, case-insensitive path."""

    parts = [part for part in key.strip().split(".") if part]
    if not parts:
        raise KeyNotFoundError("empty configuration key")
    current: Any = document
    for depth, part in enumerate(parts):
        if isinstance(current, list):
            try:
                index = int(part)
                current[index]
            except (ValueError, IndexError) as exc:
                raise KeyNotFoundError(f"no configuration key {key!r}") from exc
            match: Any = index
        elif isinstance(current, dict):
            candidates = [name for name in current if name.lower() == part.lower()]
            if not candidates:
                raise KeyNotFoundError(f"no configuration key {key!r}")
            match = candidates[0]
        else:
            raise KeyNotFoundError(f"no configuration key {key!r}")
        if depth == len(parts) - 1:
            return current, match
        current = current[match]
    raise KeyNotFoundError(f"no configuration key {key!r}")


def _coerce(text: str, existing: Any) -> Any:
    if isinstance(existing, bool):
        lowered = text.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise WriteConfigError(f"{text!r} is not a boolean")
    if isinstance(existing, int):
        try:
            return int(text.strip())
        except ValueError as exc:
            raise WriteConfigError(f"{text!r} is not an integer") from exc
    if isinstance(existing, float):
        try:
            return float(text.strip())
        except ValueError as exc:
            raise WriteConfigError(f"{text!r} is not a number") from exc
    if isinstance(existing, (list, dict)):
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            if isinstance(existing, list):
                return [item.strip() for item in text.split(",") if item.strip()]
            raise WriteConfigError(f"{text!r} is not valid JSON")
    return text


def get_value(ctx: CommandContext, key: str) -> Any:
    container, match = _locate(ctx.load().to_document(), key)
    return container[match]


def set_value(ctx: CommandContext, key: str, value: str) -> Any:
    """Coerce ``value`` to the type already stored at ``key`` and save the record."""

    document = ctx.load().to_document()
    container, match = _locate(document, key)
    container[match] = _coerce(value, container[match])
    try:
        environment = Environment.model_validate(document)
    except ValidationError as exc:
        raise WriteConfigError(f"invalid value for {key}: {exc}") from exc
    ctx.save(environment)
    LOGGER.info("set %s", key)
    return container[match]


def render(value: Any) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value, indent=2)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


__all__ = ["delete", "get_value", "render", "set_value", "setup"]
