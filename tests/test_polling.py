import asyncio

from src.app.browser_automation.polling import RunToken, pause, poll_until
from tests.fakes import FakeClock


def test_returns_first_truthy_value_without_sleeping():
    clock = FakeClock()
    result = asyncio.run(poll_until(lambda: "ready", 5.0, 0.3, clock=clock))
    assert result == "ready"
    assert clock.sleeps == []


def test_polls_until_condition_holds():
    clock = FakeClock()
    calls = []

    def condition():
        calls.append(clock.now)
        return len(calls) >= 3 and "found"

    assert asyncio.run(poll_until(condition, 5.0, 0.3, clock=clock)) == "found"
    assert len(calls) == 3


def test_timeout_is_not_exceeded_by_more_than_one_interval():
    for timeout, interval in [(1.0, 0.3), (15.0, 0.3), (0.5, 2.0), (2.0, 0.7)]:
        clock = FakeClock()
        assert asyncio.run(poll_until(lambda: None, timeout, interval, clock=clock)) is None
        assert timeout <= clock.now <= timeout + interval


def test_async_conditions_are_awaited():
    async def condition():
        return 42

    assert asyncio.run(poll_until(condition, 1.0, 0.1, clock=FakeClock())) == 42


def test_cancelled_token_ends_polling_immediately():
    clock = FakeClock()
    token = RunToken()

    def condition():
        token.cancel()
        return None

    assert asyncio.run(poll_until(condition, 10.0, 0.3, clock=clock, token=token)) is None
    assert clock.now <= 0.3


def test_pause_reports_whether_run_continues():
    clock = FakeClock()
    token = RunToken()
    assert asyncio.run(pause(1.5, clock=clock, token=token))
    token.cancel()
    assert not asyncio.run(pause(1.5, clock=clock, token=token))
    assert clock.now == 3.0
