"""LINK token and verifiable-load interactions against a recording gateway."""

from __future__ import annotations

import asyncio

import pytest

from automation_cli.contracts.link import LinkToken
from automation_cli.contracts.load import DelayStats, VerifiableLoad
from automation_cli.state.models import LoadType

LINK = "0x" + "01" * 20
LOAD = "0x" + "04" * 20


def test_mint_grants_role_when_missing(fake_gateway):
    fake_gateway.call_results["getMinters"] = []
    asyncio.run(LinkToken(fake_gateway, LINK).mint(5))
    assert [name for name, _ in fake_gateway.transactions] == ["grantMintRole", "mint"]


def test_mint_skips_grant_for_existing_minter(fake_gateway):
    fake_gateway.call_results["getMinters"] = [fake_gateway.address.lower()]
    asyncio.run(LinkToken(fake_gateway, LINK).mint(5))
    assert fake_gateway.transactions == [("mint", (fake_gateway.address, 5))]


def test_zero_transfer_sends_nothing(fake_gateway):
    assert asyncio.run(LinkToken(fake_gateway, LINK).transfer(LOAD, 0)) is None
    assert fake_gateway.transactions == []


def test_approve_spender(fake_gateway):
    asyncio.run(LinkToken(fake_gateway, LINK).approve(LOAD, 10))
    assert fake_gateway.transactions == [("approve", (LOAD, 10))]


def test_register_conditional_upkeeps_in_batches(fake_gateway):
    fake_gateway.call_results["getActiveUpkeepIDsDeployedByThisContract"] = [7, 8]
    load = VerifiableLoad(fake_gateway, LOAD, LoadType.CONDITIONAL)
    ids = asyncio.run(load.register_upkeeps(45, 3))

    names = [name for name, _ in fake_gateway.transactions]
    assert names == [
        "batchRegisterUpkeeps",
        "batchRegisterUpkeeps",
        "batchRegisterUpkeeps",
        "batchSetIntervals",
        "batchUpdatePipelineData",
    ]
    assert [args[0] for _, args in fake_gateway.transactions[:3]] == [20, 20, 5]
    assert ids == [7, 8]


def test_send_link_funds_before_registering(fake_gateway):
    fake_gateway.call_results["getActiveUpkeepIDsDeployedByThisContract"] = []
    load = VerifiableLoad(fake_gateway, LOAD, LoadType.LOG_TRIGGER)
    asyncio.run(load.register_upkeeps(2, 1, link=LinkToken(fake_gateway, LINK), send_link=True))
    assert fake_gateway.transactions[0][0] == "transfer"
    assert fake_gateway.transactions[0][1][1] == load.funding_amount(2)


def test_stats_follow_active_upkeep_order(fake_gateway):
    fake_gateway.call_results["getActiveUpkeepIDsDeployedByThisContract"] = [3, 1]
    fake_gateway.call_results["buckets"] = lambda upkeep_id: 1
    fake_gateway.call_results["getBucketedDelays"] = lambda upkeep_id, bucket: [upkeep_id * 10 + bucket]
    stats = asyncio.run(VerifiableLoad(fake_gateway, LOAD, LoadType.CONDITIONAL).stats())

    assert stats.block == 100
    assert [item.label for item in stats.upkeeps] == ["3", "1"]
    assert stats.upkeeps[0].delays == [30.0, 31.0]
    assert stats.totals().performs == 4


def test_delay_percentiles():
    stats = DelayStats(label="x", delays=[float(value) for value in range(1, 101)])
    assert stats.average == pytest.approx(50.5)
    assert stats.maximum == 100.0
    assert stats.percentiles()[0] == pytest.approx(50.5)
    assert DelayStats(label="empty").percentiles() == [0.0, 0.0, 0.0, 0.0]
