"""Amount parsing and the bounded parallel job runner."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from .errors import ExponentParseError, InvalidAmountError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

_DIGITS = re.compile(r"^[0-9]+$")
_EXPONENT = re.compile(r"^([0-9]+)e([0-9]+)$")


def parse_exp(value: str) -> int:
    """Parse ``"1000"`` or ``"2e18"`` style integer amounts.

    The exponent form is the mantissa followed by ``exponent`` zeros, so
    ``parse_exp("2e18") == 2 * 10**18``. Anything else, including decimals
    such as ``"1.5e3"``, raises :class:`InvalidAmountError`.
    """

    text = value.strip()
    if _DIGITS.match(text):
        return int(text)

    match = _EXPONENT.match(text)
    if match is None:
        raise InvalidAmountError(f"invalid amount: {value!r}")

    mantissa, exponent = match.groups()
    try:
        return int(mantissa) * 10 ** int(exponent)
    except (ValueError, OverflowError) as exc:
        raise ExponentParseError(f"invalid exponent in {value!r}") from exc


CancelToken = asyncio.Event
Job = Callable[[CancelToken], Awaitable[T]]


class Parallel(Generic[T]):
    """Run independent jobs with at most ``limit`` of them in flight.

    Results are collected in completion order, not input order. Callers that
    need input order must return an index alongside the value and sort on it.
    Jobs receive the shared cancellation token; once it is set no further job
    is started. The first job failure sets the token and is re-raised after
    the jobs already running have settled.
    """

    def __init__(self, limit: int) -> None:
        if limit < 1:
            raise ValueError("parallel limit must be at least 1")
        self.limit = limit

    async def run(self, jobs: Sequence[Job[T]], cancel: Optional[CancelToken] = None) -> List[T]:
        token = cancel if cancel is not None else asyncio.Event()
        semaphore = asyncio.Semaphore(self.limit)
        lock = asyncio.Lock()
        results: List[T] = []
        failures: List[BaseException] = []

        async def worker(job: Job[T]) -> None:
            async with semaphore:
                if token.is_set():
                    return
                try:
                    value = await job(token)
                except Exception as exc:
                    token.set()
                    failures.append(exc)
                    return
                async with lock:
                    results.append(value)

        await asyncio.gather(*(worker(job) for job in jobs))
        if failures:
            raise failures[0]
        LOGGER.debug("parallel run finished: %d of %d jobs produced results", len(results), len(jobs))
        return results


__all__ = ["CancelToken", "Job", "Parallel", "parse_exp"]
