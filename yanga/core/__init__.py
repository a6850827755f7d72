"""
YANGA Core Runtime

Countdown orchestration and its periodic display driver.
"""

from .scheduler import ReminderScheduler, SchedulerState
from .ticker import CountdownTicker, format_remaining

__all__ = [
    'ReminderScheduler',
    'SchedulerState',
    'CountdownTicker',
    'format_remaining',
]
