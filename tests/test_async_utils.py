"""
Tests for async_utils module.

Covers run_sync, gather_settled and poll_until.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from schematic_sync.core.async_utils import (
    gather_settled,
    poll_until,
    run_sync,
)


def _sync_add(a: int, b: int) -> int:
    """Simple sync function for testing."""
    return a + b


async def test_run_sync_calls_function():
    """run_sync delegates to a worker thread with correct args."""
    assert await run_sync(_sync_add, 3, 4) == 7


async def test_run_sync_passes_kwargs():
    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    assert await run_sync(_kw_func, name="world") == "hello world"


# ---------------------------------------------------------------------------
# gather_settled
# ---------------------------------------------------------------------------


async def _value(x):
    await asyncio.sleep(0)
    return x


async def _boom(msg):
    await asyncio.sleep(0)
    raise OSError(msg)


async def test_gather_settled_keeps_order():
    results = await gather_settled([_value(i) for i in range(5)])
    assert results == [0, 1, 2, 3, 4]


async def test_gather_settled_returns_exceptions_in_place():
    """One failure does not hide the other results."""
    results = await gather_settled([_value(1), _boom("disk"), _value(3)])
    assert results[0] == 1
    assert isinstance(results[1], OSError)
    assert str(results[1]) == "disk"
    assert results[2] == 3


async def test_gather_settled_empty_list():
    assert await gather_settled([]) == []


async def test_gather_settled_concurrency_bound():
    """max_parallel limits how many coroutines run at once."""
    current = 0
    peak = 0

    async def _track(val):
        nonlocal current, peak
        current += 1
        peak = max(peak, current)
        await asyncio.sleep(0.01)
        current -= 1
        return val

    results = await gather_settled(
        [_track(i) for i in range(6)], max_parallel=2
    )

    assert results == [0, 1, 2, 3, 4, 5]
    assert peak <= 2


# ---------------------------------------------------------------------------
# poll_until
# ---------------------------------------------------------------------------


class TestPollUntil:
    async def test_first_result_accepted_by_default(self):
        probe = AsyncMock(return_value="ready")

        assert await poll_until(probe, interval=0) == "ready"
        probe.assert_awaited_once()

    async def test_resolves_after_finished_result(self):
        """[not finished, finished] -> two probes and one interval delay."""
        probe = AsyncMock(
            side_effect=[{"status": "Processing"}, {"status": "Done"}]
        )
        sleep = AsyncMock()

        with patch("schematic_sync.core.async_utils.asyncio.sleep", sleep):
            result = await poll_until(
                probe,
                finished=lambda r: r["status"] == "Done",
                interval=2.5,
            )

        assert result == {"status": "Done"}
        assert probe.await_count == 2
        sleep.assert_awaited_once_with(2.5)

    async def test_no_delay_before_first_attempt(self):
        probe = AsyncMock(return_value=1)
        sleep = AsyncMock()

        with patch("schematic_sync.core.async_utils.asyncio.sleep", sleep):
            await poll_until(probe, finished=lambda r: True, interval=5)

        sleep.assert_not_awaited()

    async def test_errors_are_retried_by_default(self):
        probe = AsyncMock(
            side_effect=[ConnectionError("down"), ConnectionError("down"), 7]
        )
        sleep = AsyncMock()

        with patch("schematic_sync.core.async_utils.asyncio.sleep", sleep):
            result = await poll_until(probe, interval=1.0)

        assert result == 7
        assert probe.await_count == 3
        assert sleep.await_count == 2

    async def test_error_propagates_without_retry(self):
        """retry_on_error=False fails after exactly one invocation."""
        probe = AsyncMock(side_effect=RuntimeError("export failed"))
        sleep = AsyncMock()

        with patch("schematic_sync.core.async_utils.asyncio.sleep", sleep):
            with pytest.raises(RuntimeError, match="export failed"):
                await poll_until(
                    probe, finished=lambda r: True, retry_on_error=False
                )

        probe.assert_awaited_once()
        sleep.assert_not_awaited()

    async def test_only_one_probe_in_flight(self):
        in_flight = 0
        peak = 0
        calls = 0

        async def _probe():
            nonlocal in_flight, peak, calls
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.005)
            in_flight -= 1
            calls += 1
            return calls

        result = await poll_until(
            _probe, finished=lambda n: n >= 4, interval=0
        )

        assert result == 4
        assert peak == 1

    async def test_caller_timeout_via_wait_for(self):
        probe = AsyncMock(return_value="Processing")

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(
                poll_until(probe, finished=lambda r: False, interval=0.01),
                timeout=0.05,
            )
