"""Tests for two-phase write submission."""

import pytest

from chainirc.operations.backoff import RetryPolicy
from chainirc.operations.errors import BundlerRPCError, BundlerTimeoutError, ErrorKind
from chainirc.operations.models import OperationKind, OperationRequest, Receipt
from chainirc.operations.submitter import (
    OperationSubmitter,
    SubmitAmbiguous,
    SubmitConfirmed,
    SubmitReverted,
)
from test_helpers import CONTRACT, ScriptedBundler, SleepRecorder, make_context

REQUEST = OperationRequest(target=CONTRACT, data="0x00")


def make_submitter(sleep, submit_attempts=3, receipt_attempts=3):
    return OperationSubmitter(
        RetryPolicy(max_attempts=submit_attempts),
        RetryPolicy(max_attempts=receipt_attempts),
        5,
        sleep=sleep,
    )


class TestSubmit:
    """Phase A and Phase B outcomes."""

    @pytest.mark.asyncio
    async def test_confirmed(self):
        """A successful receipt confirms the pending operation."""
        bundler = ScriptedBundler(submit_results=["0xh1"])
        submitter = make_submitter(SleepRecorder())
        seen = []

        outcome = await submitter.submit(
            make_context(bundler), REQUEST, OperationKind.CREATE_CHANNEL, on_submitted=seen.append
        )

        assert isinstance(outcome, SubmitConfirmed)
        assert outcome.pending.handle == "0xh1"
        assert outcome.pending.status == "confirmed"
        assert [p.handle for p in seen] == ["0xh1"]
        assert bundler.receipt_calls == ["0xh1"]

    @pytest.mark.asyncio
    async def test_phase_a_retries_transient_errors(self):
        """Submission is retried while nothing has been accepted."""
        sleep = SleepRecorder()
        bundler = ScriptedBundler(
            submit_results=[Exception("bundler unavailable"), Exception("network down"), "0xh3"]
        )
        outcome = await make_submitter(sleep).submit(
            make_context(bundler), REQUEST, OperationKind.SEND_MESSAGE
        )
        assert isinstance(outcome, SubmitConfirmed)
        assert bundler.submit_calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_insufficient_funds_single_submit_no_receipt(self):
        """A prefund failure is raised after one submit and never waits for a receipt."""
        bundler = ScriptedBundler(
            submit_results=[BundlerRPCError("AA21 didn't pay prefund", code=-32500)]
        )
        submitter = make_submitter(SleepRecorder())
        seen = []

        with pytest.raises(BundlerRPCError):
            await submitter.submit(
                make_context(bundler), REQUEST, OperationKind.SEND_MESSAGE, on_submitted=seen.append
            )

        assert bundler.submit_calls == 1
        assert bundler.receipt_calls == []
        assert seen == []

    @pytest.mark.asyncio
    async def test_receipt_timeouts_become_ambiguous(self):
        """Exhausted receipt retries report an ambiguous timeout and never resubmit."""
        sleep = SleepRecorder()
        bundler = ScriptedBundler(
            submit_results=["0xh1"],
            receipt_results=[BundlerTimeoutError("0xh1", 5)] * 3,
        )
        outcome = await make_submitter(sleep).submit(
            make_context(bundler), REQUEST, OperationKind.SEND_MESSAGE
        )

        assert isinstance(outcome, SubmitAmbiguous)
        assert outcome.error_kind is ErrorKind.NETWORK_TIMEOUT
        assert outcome.pending.status == "pending"
        assert bundler.submit_calls == 1
        assert bundler.receipt_calls == ["0xh1"] * 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_timeout_for_handle_with_fund_marker_stays_ambiguous(self):
        """A handle containing "aa21" does not turn a timeout into missing funds."""
        handle = "0x12aa21" + "0" * 58
        bundler = ScriptedBundler(
            submit_results=[handle],
            receipt_results=[BundlerTimeoutError(handle, 5)] * 3,
        )
        outcome = await make_submitter(SleepRecorder()).submit(
            make_context(bundler), REQUEST, OperationKind.SEND_MESSAGE
        )

        assert isinstance(outcome, SubmitAmbiguous)
        assert outcome.error_kind is ErrorKind.NETWORK_TIMEOUT
        assert bundler.receipt_calls == [handle] * 3

    @pytest.mark.asyncio
    async def test_missing_receipt_is_a_timeout(self):
        """A collaborator returning no receipt counts as a timeout."""
        bundler = ScriptedBundler(submit_results=["0xh1"], receipt_results=[None])
        outcome = await make_submitter(SleepRecorder(), receipt_attempts=1).submit(
            make_context(bundler), REQUEST, OperationKind.SEND_MESSAGE
        )
        assert isinstance(outcome, SubmitAmbiguous)

    @pytest.mark.asyncio
    async def test_failed_receipt_is_reverted(self):
        """A receipt with success=false is a definitive revert."""
        receipt = Receipt(handle="0xh1", tx_hash="0xt", success=False, reason="channel exists")
        bundler = ScriptedBundler(submit_results=["0xh1"], receipt_results=[receipt])
        outcome = await make_submitter(SleepRecorder()).submit(
            make_context(bundler), REQUEST, OperationKind.CREATE_CHANNEL
        )
        assert isinstance(outcome, SubmitReverted)
        assert outcome.message == "channel exists"
        assert outcome.pending.status == "failed"

    @pytest.mark.asyncio
    async def test_revert_error_while_waiting(self):
        """A revert raised during the receipt wait is not retried."""
        bundler = ScriptedBundler(
            submit_results=["0xh1"],
            receipt_results=[BundlerRPCError("execution reverted")],
        )
        outcome = await make_submitter(SleepRecorder()).submit(
            make_context(bundler), REQUEST, OperationKind.CREATE_CHANNEL
        )
        assert isinstance(outcome, SubmitReverted)
        assert bundler.receipt_calls == ["0xh1"]


class TestCheckOnce:
    """Single re-check of an ambiguous operation."""

    @pytest.mark.asyncio
    async def test_still_pending(self):
        """Another timeout keeps the operation ambiguous."""
        bundler = ScriptedBundler(
            submit_results=["0xh1"],
            receipt_results=[BundlerTimeoutError("0xh1", 5), BundlerTimeoutError("0xh1", 1)],
        )
        submitter = make_submitter(SleepRecorder(), receipt_attempts=1)
        context = make_context(bundler)
        first = await submitter.submit(context, REQUEST, OperationKind.SEND_MESSAGE)
        assert isinstance(first, SubmitAmbiguous)

        again = await submitter.check_once(context, first.pending, 1)
        assert isinstance(again, SubmitAmbiguous)
        assert bundler.submit_calls == 1

    @pytest.mark.asyncio
    async def test_confirms_late(self):
        """A later check can confirm the operation."""
        bundler = ScriptedBundler(
            submit_results=["0xh1"],
            receipt_results=[BundlerTimeoutError("0xh1", 5)],
        )
        submitter = make_submitter(SleepRecorder(), receipt_attempts=1)
        context = make_context(bundler)
        first = await submitter.submit(context, REQUEST, OperationKind.SEND_MESSAGE)

        outcome = await submitter.check_once(context, first.pending, 1)
        assert isinstance(outcome, SubmitConfirmed)
        assert first.pending.status == "confirmed"
