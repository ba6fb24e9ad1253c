from browser_keepalive.tracking import t
import pytest

from browser_keepalive.automation.keepalive.idle import (
    ACTIVITY_EVENTS,
    ActivityClock,
    register_activity_tracking,
    wait_for_idle,
)
from tests.helpers import DummyLogger, FakeClock, FakeSession


@pytest.mark.asyncio
async def test_returns_immediately_when_already_idle():
    t('tests.unit.test_idle_detector.test_returns_immediately_when_already_idle')
    clock = FakeClock(start=100.0)
    logger = DummyLogger()

    idle = await wait_for_idle(30, lambda: 50.0, lambda: False, clock=clock, sleep=clock.sleep, logger=logger)

    assert idle is True
    assert clock.sleeps == []
    assert logger.records == []


@pytest.mark.asyncio
async def test_waits_remaining_time_in_capped_ticks():
    t('tests.unit.test_idle_detector.test_waits_remaining_time_in_capped_ticks')
    clock = FakeClock()
    logger = DummyLogger()

    idle = await wait_for_idle(
        12, lambda: 0.0, lambda: False, clock=clock, sleep=clock.sleep, poll_cap=5, logger=logger,
    )

    assert idle is True
    assert clock.sleeps == [5, 5, 2]
    assert logger.texts("info")[0] == "waiting for idle (~12s remaining)"


@pytest.mark.asyncio
async def test_activity_during_wait_restarts_the_countdown():
    t('tests.unit.test_idle_detector.test_activity_during_wait_restarts_the_countdown')
    clock = FakeClock()
    activity = ActivityClock(clock)

    async def sleep(seconds):
        t('tests.unit.test_idle_detector.test_activity_during_wait_restarts_the_countdown.sleep')
        await clock.sleep(seconds)
        if len(clock.sleeps) == 1:
            activity.mark("request")

    idle = await wait_for_idle(
        10, lambda: activity.last_activity_at, lambda: False, clock=clock, sleep=sleep, poll_cap=5,
        logger=DummyLogger(),
    )

    assert idle is True
    # Activity at t=5 pushes the idle point to t=15.
    assert clock.now == 15
    assert clock.sleeps == [5, 5, 5]


@pytest.mark.asyncio
async def test_stop_request_ends_the_wait():
    t('tests.unit.test_idle_detector.test_stop_request_ends_the_wait')
    clock = FakeClock()
    stopped = {"value": False}

    async def sleep(seconds):
        t('tests.unit.test_idle_detector.test_stop_request_ends_the_wait.sleep')
        await clock.sleep(seconds)
        stopped["value"] = True

    idle = await wait_for_idle(
        60, lambda: 0.0, lambda: stopped["value"], clock=clock, sleep=sleep, logger=DummyLogger(),
    )

    assert idle is False
    assert len(clock.sleeps) == 1


def test_activity_clock_marks_and_reports_idle_time():
    t('tests.unit.test_idle_detector.test_activity_clock_marks_and_reports_idle_time')
    clock = FakeClock(start=10.0)
    activity = ActivityClock(clock)

    clock.advance(4)
    assert activity.idle_for() == 4

    activity.mark("load")
    assert activity.last_activity_at == 14.0
    assert activity.last_event == "load"
    assert activity.idle_for() == 0


def test_register_activity_tracking_subscribes_every_event():
    t('tests.unit.test_idle_detector.test_register_activity_tracking_subscribes_every_event')
    clock = FakeClock()
    activity = ActivityClock(clock)
    session = FakeSession()

    registered = register_activity_tracking(session, activity)

    assert [event for event, _ in registered] == list(ACTIVITY_EVENTS)
    assert "response" in ACTIVITY_EVENTS
    for event in ACTIVITY_EVENTS:
        clock.advance(1)
        session.emit(event, object())
        assert activity.last_activity_at == clock.now
        assert activity.last_event == event


def test_register_activity_tracking_skips_unsupported_events():
    t('tests.unit.test_idle_detector.test_register_activity_tracking_skips_unsupported_events')

    class PickySession(FakeSession):
        def on(self, event, callback):
            if event == "requestfailed":
                raise ValueError("unsupported event")
            super().on(event, callback)

    logger = DummyLogger()
    registered = register_activity_tracking(PickySession(), ActivityClock(FakeClock()), logger=logger)

    assert "requestfailed" not in [event for event, _ in registered]
    assert len(registered) == len(ACTIVITY_EVENTS) - 1
    assert logger.last("debug") is not None
