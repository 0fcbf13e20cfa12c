import asyncio

from backend.debounce import DebouncedTask


def test_reschedule_runs_action_once():
    calls = []

    async def run():
        task = DebouncedTask(0.05, lambda: calls.append("x"))
        for _ in range(5):
            task.schedule()
            await asyncio.sleep(0.01)
        assert task.pending is True
        await asyncio.sleep(0.1)
        await task.wait_idle()
        return task.pending

    pending = asyncio.run(run())

    assert calls == ["x"]
    assert pending is False


def test_cancel_and_flush_now():
    calls = []

    async def action():
        calls.append("run")

    async def run():
        task = DebouncedTask(10.0, action)
        task.schedule()
        task.cancel()
        await asyncio.sleep(0.01)
        task.schedule()
        await task.flush_now()
        return task.pending

    pending = asyncio.run(run())

    assert calls == ["run"]
    assert pending is False


def test_action_errors_are_logged_not_raised(monkeypatch):
    import backend.debounce as debounce_mod

    errors = []
    monkeypatch.setattr(debounce_mod._logger, "error", lambda msg, *a, **k: errors.append(msg))

    def boom():
        raise RuntimeError("nope")

    async def run():
        task = DebouncedTask(0.0, boom, name="test")
        task.schedule()
        await asyncio.sleep(0.02)
        await task.wait_idle()

    asyncio.run(run())

    assert len(errors) == 1
    assert "[test]" in errors[0]
