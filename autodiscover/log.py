"""
Logging helpers.

The stdlib has no level below DEBUG; self-echo announcements are expected on
every run and are logged at TRACE so they stay out of normal debug output.
"""

import logging

TRACE = 5

logging.addLevelName(TRACE, 'TRACE')


def trace(logger: logging.Logger, msg: str, *args):
    """Log a message at TRACE level."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, msg, *args)
