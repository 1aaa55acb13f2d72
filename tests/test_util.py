"""Amount parsing and the bounded parallel runner."""

from __future__ import annotations

import asyncio

import pytest

from automation_cli.errors import InvalidAmountError
from automation_cli.util import Parallel, parse_exp


def test_parse_exp_plain_digits():
    assert parse_exp("1000") == 1000
    assert parse_exp(" 42 ") == 42


def test_parse_exp_scientific_form():
    assert parse_exp("2e18") == 2 * 10**18
    assert parse_exp("1e0") == 1
    assert parse_exp("25e3") == 25_000


@pytest.mark.parametrize("value", ["", "1.5e3", "-1", "e18", "2e", "0x10", "1e-3", "ten"])
def test_parse_exp_rejects_everything_else(value):
    with pytest.raises(InvalidAmountError):
        parse_exp(value)


def test_parallel_sums_all_jobs():
    def job(value):
        async def run(_token):
            await asyncio.sleep(0)
            return value

        return run

    results = asyncio.run(Parallel[int](10).run([job(value) for value in range(1, 21)]))
    assert sum(results) == 210
    assert len(results) == 20


def test_parallel_respects_limit():
    in_flight = 0
    peak = 0

    async def job(_token):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return 1

    asyncio.run(Parallel[int](3).run([job] * 12))
    assert peak <= 3


def test_parallel_failure_sets_token_and_propagates():
    token = asyncio.Event()
    started = []

    def job(index):
        async def run(_token):
            started.append(index)
            if index == 0:
                raise RuntimeError("boom")
            await asyncio.sleep(0)
            return index

        return run

    async def runner():
        return await Parallel[int](1).run([job(index) for index in range(5)], token)

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(runner())
    assert token.is_set()
    assert started == [0]


def test_parallel_rejects_zero_limit():
    with pytest.raises(ValueError):
        Parallel(0)
