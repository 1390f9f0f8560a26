"""Step-by-step replay of a recording with per-step instrumentation.

``ReplayRunner`` owns the control flow. A ``RunnerExtension`` is handed to it
and only observes or wraps the individual lifecycle points.
"""
import asyncio
import logging
import time
from typing import List, Optional, Protocol

from ..core.errors import RecordingExecutionError, StepError
from ..core.models import Recording, Step, StepResult, StepStatus
from .engine import AutomationEngine, EngineFactory, browser_session

logger = logging.getLogger("uirotator.runner")

DEFAULT_STEP_TIMEOUT_MS = 30000


class RunnerExtension(Protocol):
    async def before_all_steps(self, recording: Recording) -> None:
        ...

    async def before_each_step(self, step: Step, recording: Recording) -> None:
        ...

    async def run_step(self, step: Step, recording: Recording) -> None:
        ...

    async def after_each_step(self, step: Step, recording: Recording) -> None:
        ...

    async def after_all_steps(self, recording: Recording) -> None:
        ...


class BaseExtension:
    """No-op extension; subclasses override the hooks they need."""

    async def before_all_steps(self, recording: Recording) -> None:
        pass

    async def before_each_step(self, step: Step, recording: Recording) -> None:
        pass

    async def run_step(self, step: Step, recording: Recording) -> None:
        pass

    async def after_each_step(self, step: Step, recording: Recording) -> None:
        pass

    async def after_all_steps(self, recording: Recording) -> None:
        pass


class ReplayRunner:
    def __init__(self, recording: Recording, extension: RunnerExtension):
        self.recording = recording
        self.extension = extension

    async def run(self) -> None:
        """Run every step in order; the first failure propagates and ends the run."""
        await self.extension.before_all_steps(self.recording)
        for step in self.recording.steps:
            await self.extension.before_each_step(step, self.recording)
            await self.extension.run_step(step, self.recording)
            await self.extension.after_each_step(step, self.recording)
        await self.extension.after_all_steps(self.recording)


def _step_timeout_ms(step: Step, recording: Recording, default_ms: int) -> int:
    for source in (step.get("timeout"), recording.metadata.get("timeout")):
        if isinstance(source, (int, float)) and not isinstance(source, bool) and source > 0:
            return int(source)
    return default_ms


class InstrumentedExtension(BaseExtension):
    """Times each step against an engine and records a ``StepResult`` for it."""

    def __init__(self, engine: AutomationEngine, default_timeout_ms: int = DEFAULT_STEP_TIMEOUT_MS):
        self.engine = engine
        self.default_timeout_ms = default_timeout_ms
        self.results: List[StepResult] = []

    async def before_all_steps(self, recording: Recording) -> None:
        logger.debug("Starting recording playback: %s (%d steps)", recording.title or "untitled", len(recording))

    async def before_each_step(self, step: Step, recording: Recording) -> None:
        logger.debug("Executing step: %s", step.type)

    async def run_step(self, step: Step, recording: Recording) -> None:
        timeout_ms = _step_timeout_ms(step, recording, self.default_timeout_ms)
        started = time.monotonic()
        try:
            # Grace period lets the backend report its own timeout first.
            await asyncio.wait_for(self.engine.run_step(step, timeout_ms), timeout=timeout_ms / 1000.0 + 5)
        except asyncio.TimeoutError:
            message = f"Step {step.type} timed out after {timeout_ms}ms"
            self._record(step, started, StepStatus.FAILURE, message)
            logger.error("Step %s failed: %s", step.type, message)
            raise StepError(step.type, message)
        except asyncio.CancelledError:
            # Recording deadline hit while this step was running.
            self._record(step, started, StepStatus.FAILURE, "Recording execution timed out")
            logger.error("Step %s cancelled: recording execution timed out", step.type)
            raise
        except Exception as e:
            self._record(step, started, StepStatus.FAILURE, str(e))
            logger.error("Step %s failed: %s", step.type, e)
            raise
        self._record(step, started, StepStatus.SUCCESS)
        logger.debug("Step %s completed successfully", step.type)

    async def after_all_steps(self, recording: Recording) -> None:
        logger.debug("Finished recording playback")
        logger.info("Playback results: %s", [r.to_dict() for r in self.results])

    def _record(self, step: Step, started: float, status: StepStatus, error: Optional[str] = None) -> None:
        duration_ms = int((time.monotonic() - started) * 1000)
        self.results.append(StepResult(step_type=step.type, status=status, duration_ms=duration_ms, error=error))


async def execute_recording(
    recording: Recording,
    engine_factory: EngineFactory,
    step_timeout_ms: int = DEFAULT_STEP_TIMEOUT_MS,
    recording_timeout_s: Optional[float] = None,
) -> List[StepResult]:
    """Replay ``recording`` in a fresh browser session.

    Returns:
        One result per step, all successful

    Raises:
        BackendUnavailableError: If the browser cannot be launched
        RecordingExecutionError: If a step fails or the recording times out;
            ``results`` holds the entries up to and including the failing step
    """
    logger.debug("Launching browser for recording execution")
    async with browser_session(engine_factory) as engine:
        extension = InstrumentedExtension(engine, default_timeout_ms=step_timeout_ms)
        runner = ReplayRunner(recording, extension)
        try:
            logger.info("Starting recording execution")
            await asyncio.wait_for(runner.run(), timeout=recording_timeout_s)
        except asyncio.TimeoutError:
            message = f"Recording execution timed out after {recording_timeout_s}s"
            logger.error(message)
            raise RecordingExecutionError(message, extension.results)
        except Exception as e:
            logger.error("Error during recording execution: %s", e, exc_info=logger.isEnabledFor(logging.DEBUG))
            raise RecordingExecutionError(str(e), extension.results) from e
        logger.info("Recording execution completed successfully")
        return list(extension.results)
