"""Automation layer for credential rotation via recorded browser flows.

This package maps recorded input fields to credential roles, rewrites the
recording with the right values, and replays it step by step through a
browser engine (Playwright) while timing each step.
"""

from .engine import AutomationEngine, browser_session
from .mapping import Role, SelectorMappings, classify
from .monitor import AvailabilityMonitor, ReadinessFlag
from .rewriter import rewrite_recording
from .runner import InstrumentedExtension, ReplayRunner, execute_recording

__all__ = [
    'AutomationEngine',
    'AvailabilityMonitor',
    'InstrumentedExtension',
    'ReadinessFlag',
    'ReplayRunner',
    'Role',
    'SelectorMappings',
    'browser_session',
    'classify',
    'execute_recording',
    'rewrite_recording',
]
