"""
Cleanup tracker module for dns-reconciler.

This module is responsible for tracking DNS records that are pending deletion
and determining when they are eligible for deletion.
"""

import logging
import time
from typing import Callable, Dict, List


class CleanupTracker:
    """
    Tracks DNS records that are pending deletion and determines when they are eligible for deletion.
    """

    def __init__(self, delay: int = 0, clock: Callable[[], float] = time.monotonic):
        """
        Initialize a CleanupTracker.

        Args:
            delay: Seconds a record must stay undesired before it may be deleted
            clock: Time source returning seconds
        """
        self.delay = delay
        self.clock = clock
        self.pending_deletions: Dict[str, float] = {}  # Map of record ID to timestamp
        self.logger = logging.getLogger("dns-reconciler.cleanup-tracker")

    def mark_for_deletion(self, record_id: str) -> None:
        """
        Mark a record for deletion with the current timestamp.

        Args:
            record_id: Record ID to mark for deletion
        """
        if record_id not in self.pending_deletions:
            self.pending_deletions[record_id] = self.clock()
            self.logger.info(
                f"Marked record {record_id} for deletion (eligible in {self.delay}s)"
            )

    def unmark_for_deletion(self, record_id: str) -> None:
        """
        Remove deletion mark if record is desired again.

        Args:
            record_id: Record ID to unmark for deletion
        """
        if record_id in self.pending_deletions:
            del self.pending_deletions[record_id]
            self.logger.info(f"Unmarked record {record_id} for deletion")

    def forget(self, record_id: str) -> None:
        """
        Stop tracking a record once its deletion has been applied.

        Args:
            record_id: Record ID that was deleted
        """
        if self.pending_deletions.pop(record_id, None) is not None:
            self.logger.debug(f"Record {record_id} deleted, no longer tracked")

    def retain_only(self, record_ids: List[str]) -> None:
        """
        Unmark every pending record not in the given list.

        Args:
            record_ids: Record IDs still pending deletion
        """
        for record_id in list(self.pending_deletions):
            if record_id not in record_ids:
                self.unmark_for_deletion(record_id)

    def get_eligible_for_deletion(self) -> List[str]:
        """
        Get records that have been pending deletion for at least the delay.

        Eligible records stay tracked until `forget` is called, so a deletion
        that fails to apply keeps its original timestamp.

        Returns:
            List[str]: List of record IDs eligible for deletion
        """
        eligible = []
        now = self.clock()

        for record_id, timestamp in list(self.pending_deletions.items()):
            elapsed = now - timestamp
            if elapsed >= self.delay:
                eligible.append(record_id)
                self.logger.debug(f"Record {record_id} is eligible for deletion")
            else:
                self.logger.debug(
                    f"Record {record_id} still pending deletion (elapsed: {elapsed:.2f}s < delay: {self.delay}s)"
                )

        return eligible

    def get_pending_status(self) -> Dict[str, float]:
        """Returns a dictionary mapping pending record IDs to remaining seconds."""
        now = self.clock()
        return {
            record_id: (timestamp + self.delay) - now
            for record_id, timestamp in list(self.pending_deletions.items())
        }
