"""Verifiable-load contracts: upkeep registration, cancellation and delay statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

import numpy as np
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..chain.gateway import ChainGateway
from ..errors import ClientInteractionError
from ..state.models import LoadType, checksum_address
from ..util import CancelToken, Parallel
from .abi import CONDITIONAL_LOAD_ABI, LOG_TRIGGER_LOAD_ABI
from .link import LinkToken

LOGGER = logging.getLogger(__name__)

REGISTER_BATCH_SIZE = 20
LOG_PREPARE_BATCH_SIZE = 25
UPKEEP_GAS_LIMIT = 500_000
UPKEEP_FUNDING = 10**16
CHECK_GAS_TO_BURN = 10_000
PERFORM_GAS_TO_BURN = 1_000
STATS_WORKERS = 20
PERCENTILES = (50, 90, 95, 99)

TRIGGER_TYPES = {LoadType.CONDITIONAL: 0, LoadType.LOG_TRIGGER: 1}


def _batches(items: Sequence[int], size: int) -> List[List[int]]:
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


@dataclass
class DelayStats:
    """Delay figures (in blocks) for one upkeep or for the whole contract."""

    label: str
    delays: List[float] = field(default_factory=list)

    @property
    def performs(self) -> int:
        return len(self.delays)

    @property
    def total(self) -> float:
        return float(sum(self.delays))

    @property
    def average(self) -> float:
        return self.total / self.performs if self.performs else 0.0

    @property
    def maximum(self) -> float:
        return float(max(self.delays)) if self.delays else 0.0

    def percentiles(self) -> List[float]:
        if not self.delays:
            return [0.0 for _ in PERCENTILES]
        return [float(value) for value in np.percentile(np.asarray(self.delays, dtype=float), PERCENTILES)]


@dataclass
class LoadStats:
    block: int
    upkeeps: List[DelayStats]

    def totals(self) -> DelayStats:
        combined: List[float] = []
        for upkeep in self.upkeeps:
            combined.extend(upkeep.delays)
        return DelayStats(label="Total", delays=sorted(combined))


class VerifiableLoad:
    def __init__(self, gateway: ChainGateway, address: str, load_type: LoadType) -> None:
        self.gateway = gateway
        self.address = checksum_address(address)
        self.load_type = load_type
        abi = CONDITIONAL_LOAD_ABI if load_type is LoadType.CONDITIONAL else LOG_TRIGGER_LOAD_ABI
        self.contract = gateway.contract(self.address, abi)

    async def active_upkeep_ids(self) -> List[int]:
        ids = await self.gateway.call(self.contract.functions.getActiveUpkeepIDsDeployedByThisContract(0, 0))
        return [int(upkeep_id) for upkeep_id in ids]

    async def cancel_upkeeps(self) -> List[int]:
        ids = await self.active_upkeep_ids()
        if not ids:
            LOGGER.info("no active upkeeps to cancel on %s", self.address)
            return []
        await self.gateway.transact(self.contract.functions.batchCancelUpkeeps(ids))
        LOGGER.info("cancelled %d upkeeps on %s", len(ids), self.address)
        return ids

    def funding_amount(self, count: int) -> int:
        multiplier = 2 if self.load_type is LoadType.LOG_TRIGGER else 1
        return count * UPKEEP_FUNDING * multiplier

    async def register_upkeeps(
        self,
        count: int,
        interval: int,
        *,
        link: Optional[LinkToken] = None,
        send_link: bool = False,
        cancel_existing: bool = False,
    ) -> List[int]:
        """Register ``count`` upkeeps and prime them to perform every ``interval`` blocks."""

        if cancel_existing:
            await self.cancel_upkeeps()
        if send_link:
            if link is None:
                raise ValueError("a LINK token is required to fund the load contract")
            await link.transfer(self.address, self.funding_amount(count))

        trigger_type = TRIGGER_TYPES[self.load_type]
        remaining = count
        while remaining > 0:
            size = min(remaining, REGISTER_BATCH_SIZE)
            await self.gateway.transact(
                self.contract.functions.batchRegisterUpkeeps(
                    size,
                    UPKEEP_GAS_LIMIT,
                    trigger_type,
                    b"\x00",
                    UPKEEP_FUNDING,
                    CHECK_GAS_TO_BURN,
                    PERFORM_GAS_TO_BURN,
                )
            )
            remaining -= size
            LOGGER.info("registered %d upkeeps (%d remaining)", size, remaining)

        ids = await self.active_upkeep_ids()
        if not ids:
            return ids

        if self.load_type is LoadType.CONDITIONAL:
            await self.gateway.transact(self.contract.functions.batchSetIntervals(ids, interval))
            await self.gateway.transact(self.contract.functions.batchUpdatePipelineData(ids))
        else:
            for batch in _batches(ids, LOG_PREPARE_BATCH_SIZE):
                await self.gateway.transact(self.contract.functions.batchSetIntervals(batch, interval))
                await self.gateway.transact(self.contract.functions.batchPreparingUpkeepsSimple(batch, 0, 0))
            await self.gateway.transact(self.contract.functions.batchSendLogs(0))
        return ids

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(1),
        retry=retry_if_exception_type(ClientInteractionError),
        reraise=True,
    )
    async def _read(self, function: Any, block: int) -> Any:
        return await self.gateway.call(function, block_identifier=block)

    async def _upkeep_delays(self, upkeep_id: int, block: int) -> DelayStats:
        functions = self.contract.functions
        bucket = int(await self._read(functions.buckets(upkeep_id), block))
        delays: List[float] = []
        for index in range(bucket + 1):
            bucket_delays = await self._read(functions.getBucketedDelays(upkeep_id, index), block)
            delays.extend(float(delay) for delay in bucket_delays)
        return DelayStats(label=str(upkeep_id), delays=sorted(delays))

    async def stats(self, cancel: Optional[CancelToken] = None) -> LoadStats:
        """Collect per-upkeep delay statistics pinned to the current block."""

        block = await self.gateway.block_number()
        ids = await self.active_upkeep_ids()

        def job(upkeep_id: int):
            async def run(_token: CancelToken) -> DelayStats:
                return await self._upkeep_delays(upkeep_id, block)

            return run

        results = await Parallel[DelayStats](STATS_WORKERS).run([job(upkeep_id) for upkeep_id in ids], cancel)
        order = {str(upkeep_id): position for position, upkeep_id in enumerate(ids)}
        results.sort(key=lambda item: order[item.label])
        return LoadStats(block=block, upkeeps=results)


__all__ = ["DelayStats", "LoadStats", "VerifiableLoad"]
