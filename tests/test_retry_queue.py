"""Tests for the bounded retry queue."""

import pytest

from financeflow.sync import PendingOperation, RetryQueue


def operation(name, outcomes, refresh=frozenset(), key=None):
    """An operation that fails or succeeds per call, in order."""
    calls = iter(outcomes)

    async def action():
        if next(calls) == "fail":
            raise RuntimeError(f"{name} failed")

    return PendingOperation(name=name, action=action, refresh=frozenset(refresh), key=key)


class TestRetryQueue:
    """Tests for RetryQueue."""

    def test_rejects_non_positive_bounds(self):
        with pytest.raises(ValueError):
            RetryQueue(max_size=0)
        with pytest.raises(ValueError):
            RetryQueue(max_attempts=0)

    def test_push_drops_oldest_when_full(self):
        queue = RetryQueue(max_size=2)
        assert queue.push(operation("a", [])) is None
        assert queue.push(operation("b", [])) is None
        dropped = queue.push(operation("c", []))
        assert dropped.name == "a"
        assert [op.name for op in queue] == ["b", "c"]

    def test_push_replaces_queued_operation_with_same_key(self):
        queue = RetryQueue()
        queue.push(operation("divisions-old", [], key="divisions"))
        queue.push(operation("add", []))
        queue.push(operation("divisions-new", [], key="divisions"))
        assert [op.name for op in queue] == ["add", "divisions-new"]

    def test_discard_key(self):
        queue = RetryQueue()
        queue.push(operation("rename", [], key="rename:s1"))
        queue.push(operation("other", [], key="rename:s2"))
        assert [op.name for op in queue.discard_key("rename:s1")] == ["rename"]
        assert [op.name for op in queue] == ["other"]
        assert queue.discard_key("rename:s1") == []

    def test_clear(self):
        queue = RetryQueue()
        queue.push(operation("a", []))
        queue.clear()
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_replay_runs_in_order_and_reports(self):
        queue = RetryQueue(max_attempts=3)
        queue.push(operation("ok", ["succeed"], refresh={"transactions"}))
        queue.push(operation("bad", ["fail"], refresh={"divisions"}))
        queue.push(operation("ok2", ["succeed"], refresh={"spreadsheets"}))

        report = await queue.replay()

        assert [op.name for op in report.replayed] == ["ok", "ok2"]
        assert [op.name for op in report.failed] == ["bad"]
        assert report.failed[0].last_error == "bad failed"
        assert report.refresh == frozenset({"transactions", "spreadsheets"})
        assert [op.name for op in queue] == ["bad"]

    @pytest.mark.asyncio
    async def test_operation_dropped_after_max_attempts(self):
        queue = RetryQueue(max_attempts=2)
        queue.push(operation("flaky", ["fail", "fail"]))

        first = await queue.replay()
        assert [op.replays for op in first.failed] == [1]

        second = await queue.replay()
        assert [op.name for op in second.dropped] == ["flaky"]
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_operation_succeeds_on_later_replay(self):
        queue = RetryQueue(max_attempts=3)
        queue.push(operation("flaky", ["fail", "succeed"]))
        await queue.replay()
        report = await queue.replay()
        assert [op.name for op in report.replayed] == ["flaky"]
        assert len(queue) == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
