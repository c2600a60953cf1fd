import asyncio

from exam_engine.services.autosave import AutosaveScheduler
from exam_engine.services.errors import SaveError


class Saver:
    def __init__(self, failures=0):
        self.calls = 0
        self.failures = failures
        self.before_return = None

    async def __call__(self):
        self.calls += 1
        if self.before_return is not None:
            self.before_return()
        if self.failures:
            self.failures -= 1
            raise SaveError("offline")


def test_successful_flush_shows_indicator(clock):
    saver = Saver()
    autosave = AutosaveScheduler(saver, is_active=lambda: True, clock=clock, indicator_seconds=2)

    assert asyncio.run(autosave.flush()) is True
    assert autosave.last_saved_at == clock()
    assert autosave.indicator_visible()
    clock.advance(2)
    assert not autosave.indicator_visible()


def test_save_failure_is_swallowed_and_retried_next_time(clock):
    saver = Saver(failures=1)
    autosave = AutosaveScheduler(saver, is_active=lambda: True, clock=clock)

    assert asyncio.run(autosave.flush()) is False
    assert autosave.failures == 1
    assert autosave.last_saved_at is None

    assert asyncio.run(autosave.flush()) is True
    assert saver.calls == 2


def test_inactive_session_does_not_save(clock):
    saver = Saver()
    autosave = AutosaveScheduler(saver, is_active=lambda: False, clock=clock)
    assert asyncio.run(autosave.flush()) is False
    assert saver.calls == 0


def test_result_ignored_when_session_left_active_mid_request(clock):
    state = {"active": True}
    saver = Saver()
    saver.before_return = lambda: state.update(active=False)
    autosave = AutosaveScheduler(saver, is_active=lambda: state["active"], clock=clock)

    assert asyncio.run(autosave.flush()) is False
    assert saver.calls == 1
    assert autosave.last_saved_at is None
    assert not autosave.indicator_visible()


def test_periodic_loop_saves_until_stopped(clock):
    saver = Saver()
    autosave = AutosaveScheduler(saver, is_active=lambda: True, clock=clock, interval=0.01)

    async def scenario():
        autosave.start()
        await asyncio.sleep(0.1)
        autosave.stop()
        # 이미 보낸 요청은 끝까지 실행된다
        await asyncio.sleep(0.02)
        calls = saver.calls
        await asyncio.sleep(0.05)
        return calls

    calls_at_stop = asyncio.run(scenario())
    assert calls_at_stop >= 1
    assert saver.calls == calls_at_stop
    assert not autosave.running


def test_drain_waits_for_request_sent_before_stop(clock):
    finished = []

    async def slow_save():
        await asyncio.sleep(0.05)
        finished.append(True)

    autosave = AutosaveScheduler(slow_save, is_active=lambda: True, clock=clock, interval=0.01)

    async def scenario():
        autosave.start()
        await asyncio.sleep(0.03)
        autosave.stop()
        await autosave.drain()
        return len(finished), len(autosave._in_flight)

    done, pending = asyncio.run(scenario())
    assert done >= 1
    assert pending == 0


def test_unexpected_save_error_is_logged(clock, caplog):
    async def closed_client():
        raise RuntimeError("Cannot send a request, as the client has been closed.")

    autosave = AutosaveScheduler(closed_client, is_active=lambda: True, clock=clock, interval=0.01)

    async def scenario():
        autosave.start()
        await asyncio.sleep(0.03)
        autosave.stop()
        await autosave.drain()

    asyncio.run(scenario())
    assert autosave.failures >= 1
    assert "자동 저장 요청 오류" in caplog.text
    assert autosave.last_saved_at is None
