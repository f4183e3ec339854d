import threading

import pytest

from collectify.core.collections.poller import BulkStatusPoller, PollState


def _scripted(*statuses: str):
    remaining = list(statuses)

    def fetch():
        status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return {"id": "gid://shopify/BulkOperation/1", "status": status}

    return fetch


def test_completes_when_remote_operation_completes() -> None:
    seen = []
    poller = BulkStatusPoller(
        _scripted("CREATED", "RUNNING", "COMPLETED"),
        initial_interval=0,
        on_update=lambda op: seen.append(op["status"]),
    )

    outcome = poller.run()

    assert outcome.state is PollState.COMPLETED
    assert outcome.attempts == 3
    assert outcome.operation["status"] == "COMPLETED"
    assert seen == ["CREATED", "RUNNING", "COMPLETED"]
    assert poller.state is PollState.COMPLETED


@pytest.mark.parametrize(
    ("remote", "expected"),
    [("FAILED", PollState.FAILED), ("EXPIRED", PollState.FAILED), ("CANCELED", PollState.CANCELLED)],
)
def test_remote_terminal_statuses_map_to_states(remote: str, expected: PollState) -> None:
    outcome = BulkStatusPoller(_scripted(remote), initial_interval=0).run()

    assert outcome.state is expected
    assert outcome.attempts == 1


def test_times_out_after_max_attempts() -> None:
    outcome = BulkStatusPoller(_scripted("RUNNING"), initial_interval=0, max_attempts=4).run()

    assert outcome.state is PollState.TIMED_OUT
    assert outcome.attempts == 4


def test_backoff_grows_and_is_capped() -> None:
    poller = BulkStatusPoller(_scripted("RUNNING"), initial_interval=5, backoff=2, max_interval=60)

    assert [poller.interval_after(n) for n in range(1, 6)] == [5, 10, 20, 40, 60]


def test_cancel_from_another_thread_stops_the_wait() -> None:
    poller = BulkStatusPoller(_scripted("RUNNING"), initial_interval=30, max_attempts=10)
    timer = threading.Timer(0.05, poller.cancel)
    timer.start()
    try:
        outcome = poller.run()
    finally:
        timer.cancel()

    assert outcome.state is PollState.CANCELLED
    assert outcome.attempts == 1


def test_cancel_before_run_makes_no_fetch() -> None:
    calls = []
    poller = BulkStatusPoller(lambda: calls.append(1) or {"status": "RUNNING"}, initial_interval=0)
    poller.cancel()

    outcome = poller.run()

    assert outcome.state is PollState.CANCELLED
    assert calls == []


def test_fetch_error_fails_the_poller_and_propagates() -> None:
    def broken():
        raise RuntimeError("network down")

    poller = BulkStatusPoller(broken, initial_interval=0)

    with pytest.raises(RuntimeError, match="network down"):
        poller.run()
    assert poller.state is PollState.FAILED


def test_poller_cannot_be_reused() -> None:
    poller = BulkStatusPoller(_scripted("COMPLETED"), initial_interval=0)
    poller.run()

    with pytest.raises(RuntimeError, match="already finished"):
        poller.run()


def test_max_attempts_must_be_positive() -> None:
    with pytest.raises(ValueError):
        BulkStatusPoller(_scripted("RUNNING"), max_attempts=0)
