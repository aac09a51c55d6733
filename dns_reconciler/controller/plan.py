"""
Plan module for dns-reconciler.

This module is responsible for calculating the changes needed to bring the current state
in line with the desired state.
"""

import copy
import logging
from typing import Dict, List, Optional, Sequence

from dns_reconciler.controller.policy import Policy, apply_policies, sync_policy
from dns_reconciler.models.models import (
    RECORD_TYPE_INTERNAL_ALIAS,
    Changes,
    Endpoint,
    EndpointSet,
    RecordKey,
    targets_equal,
)


class Plan:
    """
    Plan calculates the changes needed to bring the current state in line with the desired state.

    Construction aggregates both snapshots into per-RecordKey target lists and
    resolves InternalAlias endpoints against the alias-target endpoints of the
    desired snapshot. A plan is built for one reconciliation pass and is not
    meant to be reused.
    """

    def __init__(
        self,
        current: List[Endpoint],
        desired: List[Endpoint],
        policies: Optional[Sequence[Policy]] = None,
    ):
        """
        Initialize a Plan.

        Args:
            current: Current endpoints, as reported by the registry
            desired: Desired endpoints, as reported by the sources
            policies: Policies applied to the calculated changes, in order
        """
        self.logger = logging.getLogger("dns-reconciler.plan")
        self.policies: List[Policy] = (
            list(policies) if policies is not None else [sync_policy]
        )
        self.aliases: Dict[str, List[Endpoint]] = {}
        self.labels: Dict[RecordKey, Dict[str, str]] = {}
        self.current_targets: Dict[RecordKey, List[str]] = {}
        self.desired_targets: Dict[RecordKey, List[str]] = {}
        self.unresolved_aliases: List[Endpoint] = []
        self.changes: Optional[Changes] = None

        records = []
        for endpoint in desired:
            if endpoint.alias_target:
                self.aliases.setdefault(endpoint.dnsname, []).append(endpoint)
            else:
                records.append(endpoint)

        for endpoint in records:
            if endpoint.record_type == RECORD_TYPE_INTERNAL_ALIAS:
                self._expand_alias(endpoint)
            else:
                self.desired_targets.setdefault(endpoint.key, []).append(
                    endpoint.target
                )

        for endpoint in current:
            # Last endpoint wins; owner labels are expected to be uniform per record
            self.labels[endpoint.key] = endpoint.labels
            self.current_targets.setdefault(endpoint.key, []).append(endpoint.target)

    def _expand_alias(self, endpoint: Endpoint) -> None:
        aliases = self.aliases.get(endpoint.target)
        if not aliases:
            self.unresolved_aliases.append(endpoint)
            self.logger.debug(
                f"Dropping {endpoint.dnsname}: no alias registered for {endpoint.target}"
            )
            return

        for alias in aliases:
            key = RecordKey(alias.record_type, endpoint.dnsname)
            self.desired_targets.setdefault(key, []).append(alias.target)

    def calculate(self) -> "Plan":
        """
        Calculate the changes needed to bring the current state in line with the desired state.

        The changes are passed through the plan's policies. This plan is left
        untouched; the result is returned on a copy.

        Returns:
            Plan: Copy of this plan with `changes` populated
        """
        changes = Changes()

        for key, desired in self.desired_targets.items():
            current = self.current_targets.get(key)
            if current is None:
                self.logger.info(f"Record {key.dnsname} ({key.record_type}) will be created")
                changes.create.append(
                    EndpointSet(
                        dnsname=key.dnsname, record_type=key.record_type, targets=desired
                    )
                )
            elif targets_equal(current, desired):
                self.logger.debug(
                    f"Skipping {key.dnsname} ({key.record_type}) -> {desired} because targets have not changed"
                )
            else:
                self.logger.info(f"Record {key.dnsname} ({key.record_type}) needs update")
                labels = self.labels.get(key, {})
                changes.update_old.append(
                    EndpointSet(
                        dnsname=key.dnsname,
                        record_type=key.record_type,
                        targets=current,
                        labels=labels,
                    )
                )
                changes.update_new.append(
                    EndpointSet(
                        dnsname=key.dnsname,
                        record_type=key.record_type,
                        targets=desired,
                        labels=labels,
                    )
                )

        for key, current in self.current_targets.items():
            if key not in self.desired_targets:
                self.logger.debug(
                    f"Record {key.dnsname} ({key.record_type}) identified as no longer desired."
                )
                changes.delete.append(
                    EndpointSet(
                        dnsname=key.dnsname,
                        record_type=key.record_type,
                        targets=current,
                        labels=self.labels.get(key, {}),
                    )
                )

        calculated = copy.copy(self)
        calculated.changes = apply_policies(changes, self.policies)
        return calculated

