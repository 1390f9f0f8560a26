"""Instrumented replay loop."""
import asyncio
from typing import List

import pytest

from uirotator.automation.runner import BaseExtension, ReplayRunner, execute_recording
from uirotator.core.errors import BackendUnavailableError, RecordingExecutionError
from uirotator.core.models import Recording, StepStatus

from conftest import FakeBackend


def recording_of(n: int) -> Recording:
    return Recording.from_dict({
        "title": "steps",
        "steps": [{"type": "click", "selectors": [[f"#b{i}"]]} for i in range(n)],
    })


class CallLog(BaseExtension):
    def __init__(self, fail_on: int = -1):
        self.calls: List[str] = []
        self.fail_on = fail_on
        self.count = 0

    async def before_all_steps(self, recording):
        self.calls.append("before_all")

    async def before_each_step(self, step, recording):
        self.calls.append("before_each")

    async def run_step(self, step, recording):
        self.count += 1
        self.calls.append("run")
        if self.count == self.fail_on:
            raise RuntimeError("boom")

    async def after_each_step(self, step, recording):
        self.calls.append("after_each")

    async def after_all_steps(self, recording):
        self.calls.append("after_all")


@pytest.mark.asyncio
async def test_runner_lifecycle_order():
    ext = CallLog()
    await ReplayRunner(recording_of(2), ext).run()
    assert ext.calls == [
        "before_all",
        "before_each", "run", "after_each",
        "before_each", "run", "after_each",
        "after_all",
    ]


@pytest.mark.asyncio
async def test_runner_stops_at_first_failure_and_skips_after_all():
    ext = CallLog(fail_on=2)
    with pytest.raises(RuntimeError):
        await ReplayRunner(recording_of(4), ext).run()
    assert ext.calls.count("run") == 2
    assert "after_all" not in ext.calls


@pytest.mark.asyncio
async def test_all_steps_succeed():
    backend = FakeBackend()
    results = await execute_recording(recording_of(5), backend.factory)
    assert len(results) == 5
    assert all(r.status == StepStatus.SUCCESS for r in results)
    assert all(r.error is None for r in results)
    assert [r.step_type for r in results] == ["click"] * 5
    assert len(backend.sessions) == 1
    assert backend.sessions[0].stop_calls == 1


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [1, 3, 5])
async def test_failure_truncates_results(k):
    backend = FakeBackend(fail_at=k)
    with pytest.raises(RecordingExecutionError) as info:
        await execute_recording(recording_of(5), backend.factory)

    results = info.value.results
    assert len(results) == k
    assert all(r.status == StepStatus.SUCCESS for r in results[:-1])
    assert results[-1].status == StepStatus.FAILURE
    assert "No element found" in results[-1].error
    assert len(backend.sessions[0].steps) == k
    assert backend.sessions[0].stop_calls == 1


@pytest.mark.asyncio
async def test_launch_failure_is_reported_and_session_released():
    backend = FakeBackend(launch_error=RuntimeError("chromium missing"))
    with pytest.raises(BackendUnavailableError, match="chromium missing"):
        await execute_recording(recording_of(2), backend.factory)
    assert backend.sessions[0].stop_calls == 1
    assert backend.sessions[0].steps == []


@pytest.mark.asyncio
async def test_step_timeout_from_step_recording_or_default():
    backend = FakeBackend()
    recording = Recording.from_dict({
        "timeout": 4000,
        "steps": [
            {"type": "click", "selectors": [["#a"]], "timeout": 1500},
            {"type": "click", "selectors": [["#b"]]},
        ],
    })
    await execute_recording(recording, backend.factory, step_timeout_ms=9000)
    assert backend.timeouts == [1500, 4000]

    backend = FakeBackend()
    await execute_recording(recording_of(1), backend.factory, step_timeout_ms=9000)
    assert backend.timeouts == [9000]


class HangingEngine:
    def __init__(self):
        self.stop_calls = 0

    async def start(self):
        pass

    async def stop(self):
        self.stop_calls += 1

    async def run_step(self, step, timeout_ms):
        if step.selectors == [["#b1"]]:
            await asyncio.sleep(3600)


@pytest.mark.asyncio
async def test_recording_timeout_keeps_partial_results():
    engine = HangingEngine()
    with pytest.raises(RecordingExecutionError, match="timed out") as info:
        await execute_recording(recording_of(3), lambda: engine, recording_timeout_s=0.2)
    results = info.value.results
    assert [r.status for r in results] == [StepStatus.SUCCESS, StepStatus.FAILURE]
    assert results[1].error == "Recording execution timed out"
    assert engine.stop_calls == 1


def test_result_wire_format():
    from uirotator.core.models import StepResult

    ok = StepResult("click", StepStatus.SUCCESS, 12)
    bad = StepResult("change", StepStatus.FAILURE, 30, error="timeout")
    assert ok.to_dict() == {"step": "click", "status": "Success", "duration": 12}
    assert bad.to_dict() == {"step": "change", "status": "Failure", "duration": 30, "error": "timeout"}
