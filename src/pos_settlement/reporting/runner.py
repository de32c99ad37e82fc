"""Debounced, latest-wins driver for report aggregation.

Report screens fire a new aggregation on every filter change. Requests are
numbered; free-text searches wait ``search_debounce_seconds`` first, and a
result is only published if no newer request was issued in the meantime.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from pos_settlement.config import SettlementConfig
from pos_settlement.exceptions import AggregationError
from pos_settlement.reporting.aggregate import AggregationResult, aggregate
from pos_settlement.reporting.filters import AggregationFilter

logger = logging.getLogger(__name__)

SalesLoader = Callable[[AggregationFilter], Awaitable[Sequence[Mapping[str, Any]]]]


@dataclass(frozen=True)
class AggregationState:
    """Snapshot published to report views.

    Attributes:
        loading: A request is in flight.
        error: Message of the last failed request, else None.
        result: Last successfully published result.
        sequence: Number of the request this state belongs to.
    """

    loading: bool = False
    error: Optional[str] = None
    result: AggregationResult = field(default_factory=AggregationResult)
    sequence: int = 0


class AggregationRunner:
    """Runs ``aggregate`` against a loader, discarding superseded results.

    Args:
        loader: Async callable returning the raw sale records for a filter.
        config: Debounce delay, timezone and ranking limit.
        clock: Callable returning "now" for named ranges. If None, the
            wall clock is used.
        on_update: Called with every published state.

    Examples:
        >>> async def load(flt):
        ...     return []
        >>> runner = AggregationRunner(load)
        >>> asyncio.run(runner.request(AggregationFilter("all"))).result.transaction_count
        0
    """

    def __init__(
        self,
        loader: SalesLoader,
        config: Optional[SettlementConfig] = None,
        clock: Optional[Callable[[], Any]] = None,
        on_update: Optional[Callable[[AggregationState], None]] = None,
    ) -> None:
        self.loader = loader
        self.config = config or SettlementConfig()
        self.clock = clock
        self.on_update = on_update
        self.state = AggregationState()
        self._latest = 0

    def _publish(self, state: AggregationState) -> None:
        self.state = state
        if self.on_update is not None:
            self.on_update(state)

    def _is_current(self, sequence: int) -> bool:
        return sequence == self._latest

    async def request(self, flt: AggregationFilter) -> AggregationState:
        """Aggregate for ``flt`` unless a newer request overtakes it.

        Loader and aggregation failures are reported through the state's
        ``error`` field and never raised; the next request retries.

        Returns:
            The runner's state once this request settles. For a superseded
            request that is whatever the newer request has published.
        """
        self._latest += 1
        sequence = self._latest
        self._publish(replace(self.state, loading=True, error=None, sequence=sequence))

        if flt.is_search and self.config.search_debounce_seconds > 0:
            await asyncio.sleep(self.config.search_debounce_seconds)
            if not self._is_current(sequence):
                logger.debug("Request %d superseded during debounce", sequence)
                return self.state

        try:
            sales = await self.loader(flt)
            if not isinstance(sales, (list, tuple)):
                raise AggregationError(
                    f"Sales loader returned {type(sales).__name__}, expected a list of records"
                )
            now = self.clock() if self.clock is not None else None
            result = aggregate(sales, flt, now=now, config=self.config)
        except Exception as e:
            if not self._is_current(sequence):
                return self.state
            logger.error(f"Aggregation request {sequence} failed: {e}", exc_info=True)
            self._publish(replace(self.state, loading=False, error=str(e), sequence=sequence))
            return self.state

        if not self._is_current(sequence):
            logger.debug("Discarding stale result of request %d", sequence)
            return self.state

        self._publish(AggregationState(loading=False, error=None, result=result, sequence=sequence))
        return self.state
