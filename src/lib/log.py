"""
Centralized logging using Loguru with context-aware verbosity.

This module provides a LOG() function that respects the verbosity of the
state currently driving the pipeline without requiring explicit state passing.

Usage:
    from stencil.lib.log import LOG, state_connectToLogger

    # At start of a compilation:
    state_connectToLogger(state)

    # Anywhere in that context:
    LOG("Resolved configuration", level=1)
    LOG("Search path: ...", level=2)
    LOG("Found b.html next to a.html", level=3)

The state lives in a ContextVar, so concurrent compilations in separate
threads or tasks each see their own verbosity.
"""

from loguru import logger
from typing import Any, Optional
from contextvars import ContextVar
import sys

# Context variable to hold the current pipeline state
_program_state: ContextVar[Optional[Any]] = ContextVar('program_state', default=None)

logger_format = (
    "<green>{time:HH:mm:ss}</green> │ "
    "<level>{level: <5}</level> │ "
    "<cyan>{function: <20}</cyan> @ "
    "<cyan>{line: <4}</cyan> ║ "
    "<level>{message}</level>"
)

logger.remove()  # Remove default handler
logger.add(sys.stderr, format=logger_format, level="DEBUG")


def state_connectToLogger(state: Any) -> None:
    """
    Connect a pipeline state to the logging context.

    Args:
        state: Any object with a verbosity attribute (ProgramState, CompileState)
    """
    _program_state.set(state)


def LOG(message: str, level: int = 1) -> None:
    """
    Log message if current state's verbosity allows.

    Args:
        message: Log message to display
        level: Minimum verbosity level required (1=normal, 2=verbose, 3=debug)

    Verbosity levels:
        1 = Normal output (default)
        2 = Verbose (-v)
        3 = Debug (-vv or higher)
    """
    state = _program_state.get()

    if state and hasattr(state, 'verbosity') and state.verbosity >= level:
        logger.opt(depth=1).debug(message)
