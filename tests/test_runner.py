"""Tests for the debounced, latest-wins aggregation runner.

The async API is driven with asyncio.run so no event-loop plugin is needed.
"""

import asyncio

from pos_settlement.config import SettlementConfig
from pos_settlement.reporting import AggregationFilter, AggregationRunner

NOW = "2025-03-15T12:00:00"

CASH_SALE = {"id": "a", "createdAt": "2025-03-10T10:00:00", "total": 1000,
             "paymentMethod": "efectivo", "items": []}
CARD_SALE = {"id": "b", "createdAt": "2025-03-11T10:00:00", "total": 2000,
             "paymentMethod": "tarjeta", "items": []}


def test_request_publishes_result() -> None:
    updates = []

    async def loader(flt):
        return [CASH_SALE, CARD_SALE]

    runner = AggregationRunner(loader, clock=lambda: NOW, on_update=updates.append)
    state = asyncio.run(runner.request(AggregationFilter("all")))

    assert state.loading is False
    assert state.error is None
    assert state.sequence == 1
    assert state.result.total_sales == 3000
    assert [u.loading for u in updates] == [True, False]


def test_stale_result_is_discarded() -> None:
    """A slow first request finishing after a newer one must not overwrite it."""
    published = []

    async def scenario():
        release_first = asyncio.Event()
        calls = []

        async def loader(flt):
            calls.append(flt)
            if len(calls) == 1:
                await release_first.wait()
                return [CASH_SALE]
            return [CARD_SALE]

        runner = AggregationRunner(loader, clock=lambda: NOW, on_update=published.append)
        first = asyncio.ensure_future(runner.request(AggregationFilter("all")))
        await asyncio.sleep(0)
        await runner.request(AggregationFilter("all", payment_method="tarjeta"))
        release_first.set()
        await first
        return runner

    runner = asyncio.run(scenario())

    assert runner.state.sequence == 2
    assert [s["id"] for s in runner.state.result.filtered_sales] == ["b"]
    assert not any(s.sequence == 1 and not s.loading for s in published)


def test_search_requests_are_debounced() -> None:
    calls = []

    async def loader(flt):
        calls.append(flt.search)
        return [CASH_SALE]

    async def scenario():
        runner = AggregationRunner(
            loader, config=SettlementConfig(search_debounce_seconds=0.01), clock=lambda: NOW
        )
        await asyncio.gather(
            runner.request(AggregationFilter("all", search="a")),
            runner.request(AggregationFilter("all", search="ab")),
        )
        return runner

    runner = asyncio.run(scenario())

    assert calls == ["ab"]
    assert runner.state.sequence == 2
    assert runner.state.loading is False


def test_loader_failure_becomes_error_state() -> None:
    attempts = []

    async def loader(flt):
        attempts.append(flt)
        if len(attempts) == 1:
            raise RuntimeError("store offline")
        return [CASH_SALE]

    runner = AggregationRunner(loader, clock=lambda: NOW)

    failed = asyncio.run(runner.request(AggregationFilter("all")))
    assert failed.loading is False
    assert failed.error == "store offline"

    retried = asyncio.run(runner.request(AggregationFilter("all")))
    assert retried.error is None
    assert retried.result.transaction_count == 1


def test_loader_returning_non_list_is_an_error() -> None:
    async def loader(flt):
        return {"id": "not-a-list"}

    runner = AggregationRunner(loader, clock=lambda: NOW)
    state = asyncio.run(runner.request(AggregationFilter("all")))

    assert "expected a list of records" in state.error


def test_runner_keeps_only_the_latest_state() -> None:
    """Long report sessions must not accumulate published states."""

    async def loader(flt):
        return [CASH_SALE]

    async def scenario():
        runner = AggregationRunner(loader, clock=lambda: NOW)
        for _ in range(200):
            await runner.request(AggregationFilter("all"))
        return runner

    runner = asyncio.run(scenario())

    assert runner.state.sequence == 200
    assert not hasattr(runner, "history")
    assert [k for k, v in vars(runner).items() if isinstance(v, (list, tuple))] == []
