"""Notification queue contract."""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Set

from pydantic import ValidationError

from rytetime.models.job import DeliveryJob

logger = logging.getLogger(__name__)


class INotificationQueue(ABC):
    """FIFO queue of delivery jobs.

    Reads are non-destructive: a job leaves the queue only through
    ``remove``, after the worker has dealt with it. Backends raise
    QueueUnavailable on infrastructure errors.
    """

    @abstractmethod
    def push(self, job: DeliveryJob) -> None:
        pass

    @abstractmethod
    def peek_batch(self, max_n: int, offset: int = 0) -> List[DeliveryJob]:
        """Up to ``max_n`` jobs in FIFO order, starting ``offset`` from the head."""

    @abstractmethod
    def remove(self, job: DeliveryJob) -> int:
        """Remove every copy of ``job``; removing an absent job is a no-op."""

    @abstractmethod
    def pending_reminder_ids(self) -> Set[str]:
        pass

    @abstractmethod
    def size(self) -> int:
        pass


def parse_job(raw: str) -> Optional[DeliveryJob]:
    """Decode a queue payload, or None when it is not a valid job."""
    try:
        return DeliveryJob.from_json(raw)
    except ValidationError as e:
        logger.warning(f"Dropping malformed queue payload: {e.error_count()} validation error(s)")
        return None


def reminder_id_of(raw: str) -> Optional[str]:
    try:
        return json.loads(raw).get("reminder_id")
    except (ValueError, AttributeError):
        return None
