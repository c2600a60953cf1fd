import asyncio
from datetime import timedelta

from conftest import START, make_attempt_raw

from exam_engine.models.attempt_model import Attempt
from exam_engine.services.countdown import CountdownTimer, format_remaining
from exam_engine.views.components import timer as timer_view


def _timer(clock, minutes=10, expired=None):
    fired = expired if expired is not None else []
    return CountdownTimer(
        START + timedelta(minutes=minutes),
        clock,
        on_expire=lambda: fired.append(clock()),
    )


def test_deadline_is_start_plus_duration():
    attempt = Attempt.from_backend("a", make_attempt_raw(duration_minutes=45))
    assert attempt.deadline == START + timedelta(seconds=45 * 60)


def test_naive_start_is_treated_as_utc():
    raw = make_attempt_raw(started_at="2026-03-02T09:00:00")
    assert Attempt.from_backend("a", raw).deadline == START + timedelta(minutes=30)


def test_format_remaining():
    assert format_remaining(0) == "00:00"
    assert format_remaining(65.9) == "01:05"
    assert format_remaining(3725) == "62:05"
    assert format_remaining(-5) == "00:00"


def test_reading_counts_down_from_clock(clock):
    timer = _timer(clock)
    assert timer.reading().display == "10:00"
    clock.advance(61)
    reading = timer.tick()
    assert reading.display == "08:59"
    assert reading.remaining_seconds == 539
    assert not reading.urgent


def test_urgent_under_five_minutes(clock):
    timer = _timer(clock)
    clock.advance(5 * 60)
    assert not timer.reading().urgent
    clock.advance(1)
    assert timer.reading().urgent


def test_expiry_fires_exactly_once(clock):
    fired = []
    timer = _timer(clock, minutes=1, expired=fired)
    clock.advance(60)
    assert timer.tick().expired
    clock.advance(5)
    timer.tick()
    timer.tick()
    assert len(fired) == 1


def test_clock_jump_past_deadline_expires(clock):
    fired = []
    timer = _timer(clock, minutes=1, expired=fired)
    clock.advance(3600)
    reading = timer.tick()
    assert reading.display == "00:00"
    assert fired == [clock()]


def test_background_loop_stops_after_expiry(clock):
    fired = []
    timer = CountdownTimer(START, clock, on_expire=lambda: fired.append(1), tick_seconds=0.01)

    async def scenario():
        timer.start()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert fired == [1]
    assert not timer.running


def test_timer_view_switches_to_warning_style(clock):
    timer = _timer(clock, minutes=4)
    view = timer_view.render(timer.reading())
    assert view.text == "04:00"
    assert "timer-warning" in view.css_class
