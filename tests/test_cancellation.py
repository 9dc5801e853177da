import time

import pytest

from synaptic.application.pipeline import CancellationToken
from synaptic.domain.errors import CallCancelledError


def test_cancel_records_reason_and_raises() -> None:
    token = CancellationToken()

    token.cancel("user aborted")
    token.cancel("second reason is ignored")

    assert token.cancelled
    assert token.reason == "user aborted"
    with pytest.raises(CallCancelledError, match="user aborted") as excinfo:
        token.raise_if_cancelled(request_id="r1")
    assert excinfo.value.request_id == "r1"
    assert excinfo.value.retryable is False


def test_deadline_cancels_token() -> None:
    token = CancellationToken(timeout=0.01)

    time.sleep(0.02)

    assert token.cancelled
    assert token.reason == "deadline exceeded"
    assert token.remaining() == 0.0


def test_parent_cancellation_reaches_children() -> None:
    parent = CancellationToken()
    child = parent.child()

    parent.cancel("shutdown")

    assert child.cancelled
    assert child.reason == "shutdown"


def test_child_of_cancelled_parent_starts_cancelled() -> None:
    parent = CancellationToken()
    parent.cancel("shutdown")

    assert parent.child().cancelled


def test_child_cancellation_does_not_reach_parent() -> None:
    parent = CancellationToken()

    parent.child().cancel()

    assert not parent.cancelled


def test_wait_returns_early_on_cancel() -> None:
    token = CancellationToken()
    token.cancel()

    started = time.monotonic()
    assert token.wait(5) is True
    assert time.monotonic() - started < 1
