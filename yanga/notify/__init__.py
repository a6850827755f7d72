"""
YANGA Notify - Reminder Delivery

One-shot notification capability and its spoken implementation.
"""

from .base import NotificationGateway, NotificationRequest, NotificationSchedulingFailure
from .voice_notifier import VoiceNotifier

__all__ = [
    'NotificationGateway',
    'NotificationRequest',
    'NotificationSchedulingFailure',
    'VoiceNotifier',
]
