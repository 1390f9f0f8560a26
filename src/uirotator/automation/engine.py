import contextlib
import logging
from typing import AsyncIterator, Callable, Protocol

from ..core.errors import BackendUnavailableError
from ..core.models import Step

logger = logging.getLogger("uirotator.engine")


class AutomationEngine(Protocol):
    """One controllable browser session."""

    async def start(self) -> None:
        ...

    async def stop(self) -> None:
        ...

    async def run_step(self, step: Step, timeout_ms: int) -> None:
        ...


EngineFactory = Callable[[], AutomationEngine]


@contextlib.asynccontextmanager
async def browser_session(factory: EngineFactory) -> AsyncIterator[AutomationEngine]:
    """Start a session from ``factory`` and always stop it on exit.

    Raises:
        BackendUnavailableError: If the session cannot be started
    """
    engine = factory()
    try:
        await engine.start()
    except Exception as e:
        # A half-started engine may still hold a driver process.
        await _stop_quietly(engine)
        raise BackendUnavailableError(f"Failed to launch browser: {e}") from e

    try:
        yield engine
    finally:
        await _stop_quietly(engine)
        logger.debug("Browser session closed")


async def _stop_quietly(engine: AutomationEngine) -> None:
    try:
        await engine.stop()
    except Exception as e:
        logger.warning("Error while closing browser session: %s", e)
