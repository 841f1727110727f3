"""Tests for run slot admission control."""

import asyncio

from qa_dashboard.services.run_pool import RunSlots


class TestRunSlots:
    """Tests for RunSlots."""

    def test_rejects_when_full(self):
        """Should refuse runs beyond the limit."""
        async def scenario():
            slots = RunSlots(max_concurrent=2)
            results = [await slots.acquire(f"run-{i}", "unit/a.test.js") for i in range(3)]
            return results, await slots.get_status()

        results, status = asyncio.run(scenario())

        assert results == [True, True, False]
        assert status["activeRuns"] == 2
        assert status["availableSlots"] == 0

    def test_same_path_takes_separate_slots(self):
        """Should not de-duplicate runs of the same test."""
        async def scenario():
            slots = RunSlots(max_concurrent=5)
            await slots.acquire("run-1", "unit/a.test.js")
            await slots.acquire("run-2", "unit/a.test.js")
            return await slots.get_active_runs()

        runs = asyncio.run(scenario())

        assert [r["runId"] for r in runs] == ["run-1", "run-2"]

    def test_release_frees_slot(self):
        """Should accept a new run after a release."""
        async def scenario():
            slots = RunSlots(max_concurrent=1)
            await slots.acquire("run-1", "a")
            released = await slots.release("run-1")
            again = await slots.release("run-1")
            return released, again, await slots.acquire("run-2", "b")

        assert asyncio.run(scenario()) == (True, False, True)
