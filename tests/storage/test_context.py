"""
Tests for OperationContext cancellation and deadlines, dood!
"""

import threading
import time
from unittest.mock import Mock

import pytest

from objclient.context import CANCELED_REASON, DEADLINE_REASON, OperationContext
from objclient.exceptions import StorageCanceledError


class TestCancellation:
    """Test explicit cancellation, dood!"""

    def testBackgroundIsAlive(self):
        """Test that a fresh context is not cancelled and has no deadline"""
        ctx = OperationContext.background()
        assert not ctx.cancelled
        assert ctx.err() is None
        assert ctx.remaining() is None
        ctx.raiseIfCancelled()

    def testCancel(self):
        """Test that cancel marks the context and err returns Canceled"""
        ctx = OperationContext.background()
        ctx.cancel()

        assert ctx.cancelled
        err = ctx.err()
        assert isinstance(err, StorageCanceledError)
        assert str(err) == CANCELED_REASON
        with pytest.raises(StorageCanceledError):
            ctx.raiseIfCancelled()

    def testCancelIsIdempotent(self):
        """Test that callbacks run only once when cancel is called twice"""
        ctx = OperationContext.background()
        callback = Mock()
        ctx.addCallback(callback)

        ctx.cancel()
        ctx.cancel()

        callback.assert_called_once()

    def testCancelPropagatesToChildren(self):
        """Test that cancelling the parent cancels derived contexts"""
        parent = OperationContext.background()
        child = parent.withCancel()
        grandChild = child.withCancel()

        parent.cancel()

        assert child.cancelled
        assert grandChild.cancelled

    def testChildCancelDoesNotAffectParent(self):
        """Test that cancelling a child leaves the parent alive"""
        parent = OperationContext.background()
        child = parent.withCancel()

        child.cancel()

        assert child.cancelled
        assert not parent.cancelled

    def testChildOfCancelledParentIsCancelled(self):
        """Test that deriving from a cancelled context gives a cancelled child"""
        parent = OperationContext.background()
        parent.cancel()

        assert parent.withCancel().cancelled

    def testContextManagerCancelsOnExit(self):
        """Test that leaving the with block cancels the context"""
        parent = OperationContext.background()
        with parent.withCancel() as child:
            assert not child.cancelled
        assert child.cancelled
        assert not parent.cancelled


class TestCallbacks:
    """Test cancellation callbacks, dood!"""

    def testCallbackRunsOnCancel(self):
        """Test that a registered callback runs on cancel"""
        ctx = OperationContext.background()
        callback = Mock()
        ctx.addCallback(callback)

        callback.assert_not_called()
        ctx.cancel()
        callback.assert_called_once()

    def testRemovedCallbackDoesNotRun(self):
        """Test that the remover unregisters the callback"""
        ctx = OperationContext.background()
        callback = Mock()
        remove = ctx.addCallback(callback)

        remove()
        ctx.cancel()

        callback.assert_not_called()

    def testCallbackOnCancelledContextRunsImmediately(self):
        """Test that adding a callback to a cancelled context runs it at once"""
        ctx = OperationContext.background()
        ctx.cancel()
        callback = Mock()

        ctx.addCallback(callback)

        callback.assert_called_once()

    def testFailingCallbackDoesNotStopOthers(self):
        """Test that an exception in one callback does not prevent the others"""
        ctx = OperationContext.background()
        failing = Mock(side_effect=RuntimeError("boom"))
        other = Mock()
        ctx.addCallback(failing)
        ctx.addCallback(other)

        ctx.cancel()

        failing.assert_called_once()
        other.assert_called_once()


class TestDeadline:
    """Test deadline handling, dood!"""

    def testTimeoutCancelsContext(self):
        """Test that the context is cancelled once its timeout passes"""
        ctx = OperationContext.background().withTimeout(0.05)

        assert ctx.wait(2.0)
        assert str(ctx.err()) == DEADLINE_REASON

    def testExpiredDeadlineCancelsImmediately(self):
        """Test that a deadline in the past cancels the context in the constructor"""
        ctx = OperationContext.background().withTimeout(-1)

        assert ctx.cancelled
        assert str(ctx.err()) == DEADLINE_REASON

    def testChildInheritsEarlierParentDeadline(self):
        """Test that a child never outlives the parent's deadline"""
        parent = OperationContext.background().withTimeout(10)
        child = parent.withTimeout(100)

        assert child.deadline == parent.deadline
        remaining = child.remaining()
        assert remaining is not None and remaining <= 10
        parent.cancel()

    def testParentDeadlinePropagatesReason(self):
        """Test that a child cancelled by the parent's deadline reports deadline exceeded"""
        parent = OperationContext.background().withTimeout(0.05)
        child = parent.withCancel()

        assert child.wait(2.0)
        assert str(child.err()) == DEADLINE_REASON

    def testCancelStopsTimer(self):
        """Test that cancelling before the deadline keeps the cancel reason"""
        ctx = OperationContext.background().withTimeout(0.1)
        ctx.cancel()
        time.sleep(0.2)

        assert str(ctx.err()) == CANCELED_REASON


class TestConcurrency:
    """Test cross-thread cancellation, dood!"""

    def testCancelFromAnotherThreadWakesWaiter(self):
        """Test that wait returns when another thread cancels"""
        ctx = OperationContext.background()
        thread = threading.Thread(target=lambda: (time.sleep(0.05), ctx.cancel()))
        thread.start()

        assert ctx.wait(2.0)
        thread.join()
