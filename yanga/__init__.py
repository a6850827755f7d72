"""
YANGA - Drink Tracker with Cooldown Reminders

Records each Yanga, remembers the history across restarts and reminds
you when the next one is due.
"""

__version__ = "1.0.0"
