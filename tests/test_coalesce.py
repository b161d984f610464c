import asyncio

import pytest

from fixture_bot.sync.coalesce import RequestCoalescer


class TestRequestCoalescer:
    def test_concurrent_calls_share_one_request(self):
        calls = []

        async def fetch():
            calls.append(1)
            await asyncio.sleep(0.01)
            return "arsenal"

        async def scenario():
            coalescer = RequestCoalescer()
            results = await asyncio.gather(
                *(coalescer.run("arsenal", fetch) for _ in range(5))
            )
            return coalescer, results

        coalescer, results = asyncio.run(scenario())
        assert results == ["arsenal"] * 5
        assert len(calls) == 1
        assert coalescer.in_flight == 0

    def test_different_keys_run_separately(self):
        calls = []

        async def fetch(key):
            calls.append(key)
            await asyncio.sleep(0)
            return key.upper()

        async def scenario():
            coalescer = RequestCoalescer()
            return await asyncio.gather(
                coalescer.run("a", lambda: fetch("a")),
                coalescer.run("b", lambda: fetch("b")),
            )

        assert asyncio.run(scenario()) == ["A", "B"]
        assert sorted(calls) == ["a", "b"]

    def test_exception_is_shared(self):
        calls = []

        async def fail():
            calls.append(1)
            await asyncio.sleep(0)
            raise RuntimeError("upstream down")

        async def scenario():
            coalescer = RequestCoalescer()
            return await asyncio.gather(
                coalescer.run("k", fail), coalescer.run("k", fail), return_exceptions=True
            )

        results = asyncio.run(scenario())
        assert all(isinstance(r, RuntimeError) for r in results)
        assert len(calls) == 1

    def test_finished_keys_are_forgotten(self):
        calls = []

        async def fetch():
            calls.append(1)
            return len(calls)

        async def scenario():
            coalescer = RequestCoalescer()
            first = await coalescer.run("k", fetch)
            second = await coalescer.run("k", fetch)
            return first, second

        assert asyncio.run(scenario()) == (1, 2)

    def test_cancelled_waiter_does_not_cancel_shared_request(self):
        async def slow():
            await asyncio.sleep(0.02)
            return "done"

        async def scenario():
            coalescer = RequestCoalescer()
            first = asyncio.ensure_future(coalescer.run("k", slow))
            second = asyncio.ensure_future(coalescer.run("k", slow))
            await asyncio.sleep(0)
            first.cancel()
            with pytest.raises(asyncio.CancelledError):
                await first
            return await second

        assert asyncio.run(scenario()) == "done"
