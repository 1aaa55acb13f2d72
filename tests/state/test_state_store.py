"""On-disk layout of the state directory."""

from __future__ import annotations

import json
import stat
import tomllib

import pytest

from automation_cli.errors import ReadConfigError
from automation_cli.state.models import Environment, Key, LinkTokenContract, PrivateKeys
from automation_cli.state.store import StateStore

LINK = "0x" + "12" * 20


def test_missing_environment_loads_defaults(tmp_path):
    store = StateStore(tmp_path)
    environment = store.load_environment("dev")
    assert environment.group_name == "dev"
    assert (tmp_path / "dev").is_dir()


def test_environment_round_trip_uses_persisted_key_names(tmp_path):
    store = StateStore(tmp_path)
    environment = Environment.new("dev")
    environment.chain_id = 31337
    environment.link_token = LinkTokenContract(address=LINK, mocked=True)
    path = store.save_environment("dev", environment)

    with path.open("rb") as handle:
        document = tomllib.load(handle)
    assert document["chain-id"] == 31337
    assert document["LinkToken"]["Mocked"] is True
    assert stat.S_IMODE(path.stat().st_mode) == 0o640

    loaded = store.load_environment("dev")
    assert loaded == environment


def test_invalid_toml_is_a_read_error(tmp_path):
    store = StateStore(tmp_path)
    (tmp_path / "dev").mkdir()
    (tmp_path / "dev" / "config.toml").write_text("chain-id = [", encoding="utf-8")
    with pytest.raises(ReadConfigError):
        store.load_environment("dev")


def test_key_vault_round_trip(tmp_path):
    store = StateStore(tmp_path)
    vault = PrivateKeys(keys=[Key(alias="default", value="ab" * 32, address="0x" + "01" * 20)])
    store.save_key_vault(vault)
    payload = json.loads((tmp_path / "keys.json").read_text(encoding="utf-8"))
    assert payload["keys"][0]["alias"] == "default"
    assert store.load_key_vault() == vault


def test_delete_environment_removes_directory(tmp_path):
    store = StateStore(tmp_path)
    store.save_environment("dev", Environment.new("dev"))
    store.delete_environment("dev")
    assert not (tmp_path / "dev").exists()
    store.delete_environment("dev")
