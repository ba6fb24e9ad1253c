from browser_keepalive.tracking import t
import asyncio
from urllib.parse import parse_qsl, urlsplit

import pytest

from browser_keepalive.automation.keepalive.idle import ActivityClock
from browser_keepalive.automation.keepalive.scheduler import (
    RefreshScheduler,
    RunState,
    SchedulerState,
)
from browser_keepalive.automation.keepalive.url_policy import strip_cache_buster
from browser_keepalive.infrastructure.settings import KeepaliveConfig
from tests.helpers import DummyLogger, FakeClock, FakeSession


def make_scheduler(session, *, cycles=None, clock=None, logger=None, **config_overrides):
    """Build a scheduler whose sleep stops the run after ``cycles`` interval sleeps."""
    clock = clock or FakeClock()
    run_state = RunState()
    config_values = {"url": "https://example.com/", "interval_seconds": 60}
    config_values.update(config_overrides)
    config = KeepaliveConfig(**config_values)
    interval_sleeps = []

    async def sleep(seconds):
        await clock.sleep(seconds)
        if seconds == config.interval_seconds:
            interval_sleeps.append(seconds)
            if cycles is not None and len(interval_sleeps) > cycles:
                run_state.request_stop("test")

    scheduler = RefreshScheduler(
        session,
        config,
        activity=ActivityClock(clock),
        run_state=run_state,
        clock=clock,
        sleep=sleep,
        logger=logger or DummyLogger(),
    )
    return scheduler, clock


@pytest.mark.asyncio
async def test_start_loads_busted_target_and_marks_activity():
    t('tests.unit.test_refresh_scheduler.test_start_loads_busted_target_and_marks_activity')
    session = FakeSession()
    scheduler, clock = make_scheduler(session)
    clock.advance(42)

    first_url = await scheduler.start()

    assert session.navigations == [("goto", first_url)]
    assert strip_cache_buster(first_url) == "https://example.com/"
    assert "_cb=" in first_url
    assert scheduler.activity.last_activity_at == 42
    assert scheduler.state is SchedulerState.STARTING


@pytest.mark.asyncio
async def test_start_without_cache_bust_loads_exact_url():
    t('tests.unit.test_refresh_scheduler.test_start_without_cache_bust_loads_exact_url')
    session = FakeSession()
    scheduler, _ = make_scheduler(session, url="https://example.com/?_cb=keep", cache_bust=False)

    await scheduler.start()

    assert session.navigations == [("goto", "https://example.com/?_cb=keep")]


@pytest.mark.asyncio
async def test_blank_page_scenario_refreshes_to_base_once_per_interval():
    t('tests.unit.test_refresh_scheduler.test_blank_page_scenario_refreshes_to_base_once_per_interval')
    session = FakeSession(url="about:blank")
    scheduler, clock = make_scheduler(session, cycles=1, interval_seconds=5)

    # Simulate a page that never committed: the live URL stays blank.
    async def stay_blank(sess, kind):
        sess.url = "about:blank"

    session.on_navigate = stay_blank
    await scheduler.run()

    gotos = session.navigations
    assert len(gotos) == 1
    assert gotos[0][0] == "goto"
    assert gotos[0][1].startswith("https://example.com/?_cb=")
    assert clock.sleeps[0] == 5


@pytest.mark.asyncio
async def test_each_cycle_issues_exactly_one_reload():
    t('tests.unit.test_refresh_scheduler.test_each_cycle_issues_exactly_one_reload')
    session = FakeSession(url="https://example.com/")
    scheduler, _ = make_scheduler(session, cycles=3, cache_bust=False)

    await scheduler.run()

    assert session.navigations == [("reload", None)] * 3
    assert ("current_url", None, None) not in session.calls
    assert scheduler.get_stats()["successful_refreshes"] == 3


@pytest.mark.asyncio
async def test_cache_bust_follows_in_page_navigation():
    t('tests.unit.test_refresh_scheduler.test_cache_bust_follows_in_page_navigation')
    session = FakeSession(url="https://example.com/other?page=2&_cb=old")
    scheduler, _ = make_scheduler(session, cycles=1)

    await scheduler.run()

    (kind, url), = session.navigations
    assert kind == "goto"
    assert strip_cache_buster(url) == "https://example.com/other?page=2"


@pytest.mark.asyncio
async def test_always_reset_goes_back_to_base():
    t('tests.unit.test_refresh_scheduler.test_always_reset_goes_back_to_base')
    session = FakeSession(url="https://example.com/somewhere-else")
    scheduler, _ = make_scheduler(session, cycles=2, always_reset=True, cache_bust=False)

    await scheduler.run()

    assert session.navigations == [("goto", "https://example.com/")] * 2


@pytest.mark.asyncio
async def test_failed_refresh_is_logged_and_loop_continues():
    t('tests.unit.test_refresh_scheduler.test_failed_refresh_is_logged_and_loop_continues')
    logger = DummyLogger()
    session = FakeSession(failures=[RuntimeError("net::ERR_NAME_NOT_RESOLVED"), None])
    scheduler, _ = make_scheduler(session, cycles=2, cache_bust=False, logger=logger)

    await scheduler.run()

    assert len(session.navigations) == 2
    assert "refresh failed: net::ERR_NAME_NOT_RESOLVED" in logger.texts("error")
    assert logger.last("error")[2].get("exc_info") is True
    stats = scheduler.get_stats()
    assert stats["failed_refreshes"] == 1
    assert stats["successful_refreshes"] == 1
    assert stats["cycles"] == 2
    assert stats["success_rate"] == 0.5
    assert scheduler.state is SchedulerState.STOPPED


@pytest.mark.asyncio
async def test_stop_during_sleep_skips_the_refresh():
    t('tests.unit.test_refresh_scheduler.test_stop_during_sleep_skips_the_refresh')
    session = FakeSession()
    scheduler, _ = make_scheduler(session, cycles=0)

    await scheduler.run()

    assert session.navigations == []
    assert scheduler.get_stats()["cycles"] == 0


@pytest.mark.asyncio
async def test_only_if_idle_waits_for_quiet_page_before_refreshing():
    t('tests.unit.test_refresh_scheduler.test_only_if_idle_waits_for_quiet_page_before_refreshing')
    session = FakeSession(url="https://example.com/")
    scheduler, clock = make_scheduler(session, cycles=1, cache_bust=False, only_if_idle=True, interval_seconds=10)

    # Activity 8s into the interval leaves 8s of required quiet time.
    async def busy_sleep(seconds):
        await clock.sleep(seconds)
        if len(clock.sleeps) == 1:
            scheduler.activity.last_activity_at = clock.now - 2
        elif len(clock.sleeps) >= 4:
            scheduler.run_state.request_stop("test")

    scheduler._sleep = busy_sleep
    await scheduler.run()

    assert session.navigations == [("reload", None)]
    assert clock.sleeps == [10, 5, 3, 10]


@pytest.mark.asyncio
async def test_only_if_idle_stop_during_idle_wait_skips_refresh():
    t('tests.unit.test_refresh_scheduler.test_only_if_idle_stop_during_idle_wait_skips_refresh')
    session = FakeSession()
    scheduler, clock = make_scheduler(session, cache_bust=False, only_if_idle=True, interval_seconds=10)

    async def noisy_sleep(seconds):
        await clock.sleep(seconds)
        scheduler.activity.mark("request")
        if len(clock.sleeps) == 3:
            scheduler.stop("SIGTERM")

    scheduler._sleep = noisy_sleep
    await scheduler.run()

    assert session.navigations == []
    assert scheduler.run_state.reason == "SIGTERM"


@pytest.mark.asyncio
async def test_navigation_calls_never_overlap():
    t('tests.unit.test_refresh_scheduler.test_navigation_calls_never_overlap')

    async def slow(sess, kind):
        for _ in range(3):
            await asyncio.sleep(0)

    session = FakeSession(url="https://example.com/", on_navigate=slow)
    scheduler, clock = make_scheduler(session, cycles=5)
    in_flight_at_sleep = []

    async def sleep(seconds):
        in_flight_at_sleep.append(session.in_flight)
        await clock.sleep(seconds)
        if len(clock.sleeps) > 5:
            scheduler.run_state.request_stop("test")

    scheduler._sleep = sleep
    await scheduler.start()
    await scheduler.run()

    assert session.max_in_flight == 1
    assert len(session.navigations) == 6
    assert in_flight_at_sleep == [0] * 6


@pytest.mark.asyncio
async def test_fake_session_counts_overlapping_calls():
    t('tests.unit.test_refresh_scheduler.test_fake_session_counts_overlapping_calls')

    async def slow(sess, kind):
        for _ in range(3):
            await asyncio.sleep(0)

    session = FakeSession(on_navigate=slow)

    await asyncio.gather(
        session.goto("https://example.com/a"),
        session.goto("https://example.com/b"),
        session.reload(),
    )

    assert session.max_in_flight == 3
    assert session.in_flight == 0


@pytest.mark.asyncio
async def test_stale_marker_is_replaced_after_blank_start():
    t('tests.unit.test_refresh_scheduler.test_stale_marker_is_replaced_after_blank_start')
    session = FakeSession(url="about:blank")
    scheduler, _ = make_scheduler(session, cycles=1)

    first_url = await scheduler.start()
    # The page settles on the base address still carrying an old marker.
    session.url = "https://example.com/?_cb=stale0001"
    await scheduler.run()

    gotos = [url for kind, url in session.navigations if kind == "goto"]
    assert gotos[0] == first_url
    assert len(gotos) == 2
    for url in gotos:
        assert [key for key, _ in parse_qsl(urlsplit(url).query)] == ["_cb"]
        assert strip_cache_buster(url) == "https://example.com/"
    assert "stale0001" not in gotos[1]
    assert gotos[1] != gotos[0]


@pytest.mark.asyncio
async def test_stop_is_observed_once_and_moves_to_stopping():
    t('tests.unit.test_refresh_scheduler.test_stop_is_observed_once_and_moves_to_stopping')
    scheduler, _ = make_scheduler(FakeSession())
    scheduler.state = SchedulerState.RUNNING

    assert scheduler.stop("SIGINT") is True
    assert scheduler.stop("SIGTERM") is False
    assert scheduler.state is SchedulerState.STOPPING
    assert scheduler.run_state.reason == "SIGINT"


@pytest.mark.asyncio
async def test_run_state_sleep_wakes_on_stop():
    t('tests.unit.test_refresh_scheduler.test_run_state_sleep_wakes_on_stop')
    run_state = RunState()

    sleeper = asyncio.create_task(run_state.sleep(30))
    await asyncio.sleep(0)
    assert run_state.request_stop("SIGINT") is True

    await asyncio.wait_for(sleeper, timeout=1)
    assert run_state.stopped
    assert run_state.request_stop("again") is False


@pytest.mark.asyncio
async def test_run_state_sleep_times_out_normally():
    t('tests.unit.test_refresh_scheduler.test_run_state_sleep_times_out_normally')
    run_state = RunState()

    await run_state.sleep(0.01)

    assert not run_state.stopped
