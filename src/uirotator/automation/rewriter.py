import logging
from typing import Dict

from ..core.models import Recording
from .mapping import Role, SelectorMappings, classify

logger = logging.getLogger("uirotator.rewriter")


def rewrite_recording(
    recording: Recording,
    username: str,
    current_password: str,
    new_password: str,
    mappings: SelectorMappings,
) -> Recording:
    """Inject credentials into the ``change`` steps matched by ``mappings``.

    Returns a new recording with the same steps in the same order; unmatched
    steps and all metadata are carried over unchanged. The input is not mutated.
    """
    values: Dict[Role, str] = {
        Role.USERNAME: username,
        Role.CURRENT_PASSWORD: current_password,
        Role.NEW_PASSWORD: new_password,
    }

    steps = []
    for index, step in enumerate(recording.steps):
        role = classify(step, mappings)
        if role is None:
            steps.append(step)
            continue
        logger.debug("Injecting %s into step %d", role.value, index)
        steps.append(step.with_value(values[role]))

    return Recording(steps=steps, metadata=dict(recording.metadata))
