"""Tests for progress throttling and the heartbeat."""

import asyncio

import pytest

from instabridge.protocol.progress import HEARTBEAT_MESSAGE, ProgressReporter, ProgressUpdate
from instabridge.server.dispatcher import Server, ServerInfo


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        ProgressReporter(lambda update: None, 0)


def test_keep_alive_updates_are_throttled():
    sent = []
    clock = FakeClock()
    reporter = ProgressReporter(sent.append, 45.0, clock=clock)

    assert reporter.report(ProgressUpdate("Loading...", 1, 5, keep_alive=True)) is True
    clock.now += 10
    assert reporter.report(ProgressUpdate("Fetched 1/3", 2, 5, keep_alive=True)) is False
    clock.now += 35
    assert reporter.report(ProgressUpdate("Fetched 2/3", 3, 5, keep_alive=True)) is True

    assert [u.message for u in sent] == ["Loading...", "Fetched 2/3"]
    assert reporter.current == 3


def test_milestones_always_go_out_and_restart_window():
    sent = []
    clock = FakeClock()
    reporter = ProgressReporter(sent.append, 45.0, clock=clock)

    reporter.report(ProgressUpdate("Loading...", 1, 5, keep_alive=True))
    clock.now += 1
    assert reporter.report(ProgressUpdate("Complete", 5, 5)) is True
    clock.now += 44
    assert reporter.report(ProgressUpdate("ping", keep_alive=True)) is False
    assert reporter.last_sent_at == 101.0
    assert len(sent) == 2


def test_plain_message_reuses_last_known_counts():
    sent = []
    reporter = ProgressReporter(sent.append, 45.0, clock=FakeClock())
    reporter.report(ProgressUpdate("Fetched 2/3", 2, 4))
    reporter.report("Almost there")
    assert sent[-1] == ProgressUpdate("Almost there", 2, 4, keep_alive=False)
    assert sent[-1].to_params() == {"message": "Almost there", "progress": 2, "total": 4, "keepAlive": False}


@pytest.mark.asyncio
async def test_heartbeat_runs_only_while_active():
    sent = []
    reporter = ProgressReporter(sent.append, 0.05)
    async with reporter:
        assert reporter.active
        await asyncio.sleep(0.18)
    during = len(sent)
    assert during >= 2
    assert all(u.message == HEARTBEAT_MESSAGE and u.keep_alive for u in sent)

    await asyncio.sleep(0.15)
    assert len(sent) == during
    assert not reporter.active


@pytest.mark.asyncio
async def test_heartbeat_skipped_when_update_is_recent():
    sent = []
    clock = FakeClock()
    reporter = ProgressReporter(sent.append, 0.02, clock=clock)
    reporter.start()
    try:
        reporter.report(ProgressUpdate("Loading...", 1, 5))
        await asyncio.sleep(0.1)
    finally:
        reporter.stop()
    assert [u.message for u in sent] == ["Loading..."]


@pytest.mark.asyncio
async def test_heartbeat_send_failure_does_not_stop_loop():
    attempts = []

    def send(update):
        attempts.append(update)
        raise OSError("pipe closed")

    reporter = ProgressReporter(send, 0.03)
    reporter.start()
    await asyncio.sleep(0.2)
    reporter.stop()
    assert len(attempts) >= 2


@pytest.mark.asyncio
async def test_stop_is_idempotent():
    reporter = ProgressReporter(lambda update: None, 1.0)
    reporter.start()
    reporter.stop()
    reporter.stop()
    assert not reporter.active


@pytest.mark.asyncio
async def test_server_track_progress_registers_and_releases_reporter():
    server = Server(ServerInfo("instagram-server", "0.2.0"), progress_interval=0.05)
    async with server.track_progress() as reporter:
        assert server.active_operations == 1
        assert reporter.active
        assert reporter.interval == 0.05
    assert server.active_operations == 0
    assert not reporter.active
