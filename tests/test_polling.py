"""Tests for the confirmation poller."""

import asyncio

import pytest

from connector.errors import ConnectorTimeoutError, NotFoundError, ProviderInternalError
from connector.polling import ConfirmationPoller, PollState


def sequence_check(*results):
    """Check returning (or raising) each result in turn, then True."""
    remaining = list(results)
    calls = []

    async def check():
        calls.append(1)
        if not remaining:
            return True
        result = remaining.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    check.calls = calls
    return check


class TestConfirmationPoller:
    @pytest.mark.asyncio
    async def test_confirms_after_not_found_and_false(self):
        check = sequence_check(NotFoundError("pending"), False)
        poller = ConfirmationPoller(check, 0.01)
        assert await poller.run() is True
        assert poller.state is PollState.CONFIRMED
        assert len(check.calls) == 3

    @pytest.mark.asyncio
    async def test_first_check_waits_one_interval(self):
        check = sequence_check()
        poller = ConfirmationPoller(check, 0.05)
        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0.01)
        assert check.calls == []
        assert await task is True

    @pytest.mark.asyncio
    async def test_non_positive_interval_uses_default(self):
        poller = ConfirmationPoller(sequence_check(), 0, default_interval=0.02)
        assert poller.interval == 0.02
        assert ConfirmationPoller(sequence_check(), -1, default_interval=0.5).interval == 0.5

    @pytest.mark.asyncio
    async def test_other_error_fails(self):
        poller = ConfirmationPoller(sequence_check(ProviderInternalError("boom")), 0.01)
        with pytest.raises(ProviderInternalError):
            await poller.run()
        assert poller.state is PollState.FAILED

    @pytest.mark.asyncio
    async def test_timeout(self):
        async def never():
            return False

        poller = ConfirmationPoller(never, 0.01, name="tx")
        with pytest.raises(ConnectorTimeoutError):
            await poller.run(timeout=0.05)
        assert poller.state is PollState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancellation_stops_checks(self):
        calls = []

        async def never():
            calls.append(1)
            return False

        poller = ConfirmationPoller(never, 0.01)
        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert poller.state is PollState.CANCELLED
        seen = len(calls)
        await asyncio.sleep(0.05)
        assert len(calls) == seen

    @pytest.mark.asyncio
    async def test_settle_delay(self):
        poller = ConfirmationPoller(sequence_check(), 0.01, settle_delay=0.05)
        loop = asyncio.get_running_loop()
        start = loop.time()
        await poller.run()
        assert loop.time() - start >= 0.05
