# =============================================================================
# routing/fanout.py  -  Concurrent sub-query policies
# =============================================================================
#
# Two tools issue several provider queries at once and combine them:
#
#   compare_routes    → ALL_OR_NOTHING: one failed query fails the comparison
#   get_live_traffic  → BEST_EFFORT:    a failed departure-time sample is
#                                       logged and left out
#
# Both policies wait for every branch to settle before returning, so no
# query is left running in the background after a tool call completes.
# =============================================================================

import asyncio
import enum
import logging
from typing import Any, Awaitable, Optional, Sequence

logger = logging.getLogger(__name__)


class FanOutPolicy(enum.Enum):
    BEST_EFFORT = "best_effort"
    ALL_OR_NOTHING = "all_or_nothing"


async def gather(
    coros: Sequence[Awaitable[Any]],
    policy: FanOutPolicy,
    labels: Optional[Sequence[str]] = None,
) -> list[Any]:
    """Run `coros` concurrently and combine them according to `policy`.

    Returns results in input order.  Under BEST_EFFORT a failed branch
    becomes None; under ALL_OR_NOTHING the first failure (in input order)
    is re-raised once every branch has settled.
    """
    labels = list(labels) if labels is not None else [str(i) for i in range(len(coros))]
    results = await asyncio.gather(*coros, return_exceptions=True)

    failures = [(label, r) for label, r in zip(labels, results) if isinstance(r, BaseException)]
    if not failures:
        return list(results)

    if policy is FanOutPolicy.ALL_OR_NOTHING:
        raise failures[0][1]

    for label, exc in failures:
        logger.warning("Failed to get result for %s: %s", label, exc)
    return [None if isinstance(r, BaseException) else r for r in results]
