"""
YANGA Notification Gateway

Capability interface for delivering the one future reminder.

The tracker only ever uses one notification id, so "replace on
re-schedule" here is what keeps at most one reminder outstanding.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List

from yanga.config import NOTIFICATION_BODY, NOTIFICATION_TITLE


class NotificationSchedulingFailure(Exception):
    """Raised when the notification capability refuses a schedule"""
    pass


@dataclass(frozen=True)
class NotificationRequest:
    """What to show when the reminder fires"""
    title: str
    body: str
    flavor: str

    @property
    def text(self) -> str:
        return f"{self.title} {self.body}"

    @classmethod
    def for_flavor(
        cls,
        flavor: str,
        title: str = NOTIFICATION_TITLE,
        body: str = NOTIFICATION_BODY
    ) -> 'NotificationRequest':
        return cls(title=title, body=body.format(flavor=flavor), flavor=flavor)


class NotificationGateway(ABC):
    """One-shot notification scheduling keyed by id"""

    @abstractmethod
    def schedule_one_shot(
        self,
        notification_id: int,
        fire_at: datetime,
        payload: NotificationRequest
    ):
        """
        Schedule a single notification at fire_at.

        Scheduling an id that is already pending replaces it.

        Raises:
            NotificationSchedulingFailure: If the schedule was refused
        """
        pass

    @abstractmethod
    def cancel(self, notification_id: int):
        """Cancel a pending notification. No-op if nothing is pending."""
        pass

    def pending_ids(self) -> List[int]:
        return []

    def shutdown(self):
        pass
