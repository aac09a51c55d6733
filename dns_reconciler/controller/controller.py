"""
Controller module for dns-reconciler.

This module is responsible for coordinating between the source, registry, and provider
components to ensure that the desired state is maintained.
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from dns_reconciler.controller.plan import Plan
from dns_reconciler.controller.policy import Policy
from dns_reconciler.models.models import Changes
from dns_reconciler.utils.cleanup_tracker import CleanupTracker


class Controller:
    """
    Controller that coordinates between the source and registry components.
    """

    def __init__(
        self,
        source,
        registry,
        policies: Optional[Sequence[Policy]] = None,
        interval: int = 60,
        cleanup_delay: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize a Controller.

        Args:
            source: Source of desired endpoints
            registry: Registry holding the current endpoints
            policies: Policies applied to every plan, in order
            interval: Seconds between reconciliation runs
            cleanup_delay: Seconds a record must stay undesired before it is deleted
            clock: Time source for the cleanup delay
        """
        self.source = source
        self.registry = registry
        self.policies = list(policies) if policies is not None else None
        self.interval = interval
        self.cleanup_tracker = CleanupTracker(cleanup_delay, clock=clock)
        self.logger = logging.getLogger("dns-reconciler.controller")

        self.last_error: Optional[str] = None
        self.last_success: Optional[float] = None
        self.counters: Dict[str, int] = {
            "runs": 0,
            "failures": 0,
            "creates": 0,
            "updates": 0,
            "deletes": 0,
            "unresolved_aliases": 0,
        }

    @property
    def healthy(self) -> bool:
        return self.last_error is None

    async def run_reconciliation_loop(self) -> None:
        """
        Runs the controller's reconciliation loop at the specified interval.
        """
        self.logger.debug(
            f"Reconciliation loop starting with interval {self.interval} seconds"
        )

        while True:
            try:
                await self.run_once()
            except Exception as e:
                self.logger.error(f"Error in reconciliation loop: {e}", exc_info=True)

            await asyncio.sleep(self.interval)

    async def run_once(self) -> Changes:
        """
        Performs a single reconciliation run.

        Returns:
            Changes: Changes handed to the registry

        Raises:
            Exception: Whatever the source or registry raised
        """
        self.counters["runs"] += 1
        try:
            changes = await self._reconcile()
        except Exception as e:
            self.counters["failures"] += 1
            self.last_error = str(e)
            raise

        self.last_error = None
        self.last_success = time.time()
        return changes

    async def _reconcile(self) -> Changes:
        desired_endpoints = await self.source.endpoints()
        current_endpoints = await self.registry.records()

        plan = Plan(current_endpoints, desired_endpoints, self.policies).calculate()
        self.counters["unresolved_aliases"] += len(plan.unresolved_aliases)
        changes = self._hold_deletions(plan.changes)

        log_level = logging.INFO if changes.has_changes() else logging.DEBUG
        self.logger.log(
            log_level,
            f"Running reconciliation: Found {len(desired_endpoints)} desired and "
            f"{len(current_endpoints)} current endpoints.",
        )

        if not changes.has_changes():
            self.logger.debug("No changes to apply")
            return changes

        self.logger.info(
            f"Applying changes: {len(changes.create)} creates, "
            f"{len(changes.update_old)} updates, {len(changes.delete)} deletes"
        )
        applied = await self.registry.apply_changes(changes)
        for endpoint_set in changes.delete:
            self.cleanup_tracker.forget(endpoint_set.id)

        # The registry may have dropped records owned by other instances
        self.counters["creates"] += len(applied.create)
        self.counters["updates"] += len(applied.update_old)
        self.counters["deletes"] += len(applied.delete)
        return changes

    def _hold_deletions(self, changes: Changes) -> Changes:
        """
        Keep deletions back until their record has been undesired for the cleanup delay.

        Args:
            changes: Changes calculated by the plan

        Returns:
            Changes: Changes whose delete list holds only eligible records
        """
        pending: List[str] = [endpoint_set.id for endpoint_set in changes.delete]
        self.cleanup_tracker.retain_only(pending)
        for record_id in pending:
            self.cleanup_tracker.mark_for_deletion(record_id)

        eligible = set(self.cleanup_tracker.get_eligible_for_deletion())
        held = len(pending) - len(eligible)
        if held:
            self.logger.debug(f"Holding back {held} deletions until the cleanup delay passes")

        return replace(
            changes,
            delete=[
                endpoint_set
                for endpoint_set in changes.delete
                if endpoint_set.id in eligible
            ],
        )
