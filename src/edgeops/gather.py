"""Concurrent scatter/gather of independent remote reads.

Each probe declares its own failure policy:

- required (fail-hard): an exception aborts the whole gather once every
  probe has finished. Siblings are never cancelled; the first failure in
  probe order propagates unchanged.
- optional (fail-soft): an exception is logged and replaced by the probe's
  fallback value; the gather continues.

The policy is applied per probe at the gather point, never per batch.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Probe:
    """One independent read.

    Attributes:
        name: Key of the result in the gathered mapping.
        call: Zero-argument coroutine function performing the read.
        required: Whether a failure aborts the gather.
        fallback: Factory for the substitute value of a failed optional probe.
    """

    name: str
    call: Callable[[], Awaitable[Any]]
    required: bool = True
    fallback: Callable[[], Any] = field(default=list)


async def _run_probe(probe: Probe) -> Any:
    if probe.required:
        return await probe.call()

    try:
        return await probe.call()
    except Exception as e:
        logger.warning(
            "Optional probe failed, using fallback",
            extra={"probe": probe.name, "error": str(e), "error_type": type(e).__name__},
        )
        return probe.fallback()


async def gather_probes(probes: Sequence[Probe]) -> dict[str, Any]:
    """Issue all probes concurrently and join their results.

    Args:
        probes: Probes with unique names.

    Returns:
        Mapping of probe name to result (or fallback for failed optional probes).

    Raises:
        ValueError: If probe names are not unique.
        Exception: The exception of the first failed required probe, in probe order.
    """
    names = [probe.name for probe in probes]
    if len(set(names)) != len(names):
        raise ValueError(f"Probe names must be unique: {names}")

    tasks = [asyncio.ensure_future(_run_probe(probe)) for probe in probes]
    # No probe is cancelled; a sibling mid-way through writes finishes them
    results = await asyncio.gather(*tasks, return_exceptions=True)

    for probe, result in zip(probes, results, strict=True):
        if isinstance(result, BaseException):
            logger.warning(
                "Required probe failed",
                extra={
                    "probe": probe.name,
                    "error": str(result),
                    "error_type": type(result).__name__,
                },
            )
            raise result

    return dict(zip(names, results, strict=True))
