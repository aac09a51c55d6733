"""
Registry module for dns-reconciler.

A registry sits between the controller and a provider and adds the ownership
concept: records carry an owner label and an instance only ever updates or
deletes records labelled with its own owner ID.
"""

import logging
from dataclasses import replace
from typing import List, Tuple

from dns_reconciler.models.models import OWNER_LABEL_KEY, Changes, Endpoint, EndpointSet

logger = logging.getLogger("dns-reconciler.registry")


def _is_owned(owner_id: str, endpoint_set: EndpointSet) -> bool:
    return endpoint_set.labels.get(OWNER_LABEL_KEY, "") == owner_id


def filter_owned(owner_id: str, endpoint_sets: List[EndpointSet]) -> List[EndpointSet]:
    """
    Keep only the endpoint sets labelled with the given owner ID.

    Sets owned by someone else are skipped, not treated as errors. Only sets
    carrying current-state labels (deletes and update pre-images) are
    meaningful input; created records have no owner yet.

    Args:
        owner_id: Owner ID of this instance
        endpoint_sets: Endpoint sets to filter

    Returns:
        List[EndpointSet]: Endpoint sets owned by owner_id
    """
    filtered = []
    skipped = set()
    for endpoint_set in endpoint_sets:
        if _is_owned(owner_id, endpoint_set):
            filtered.append(endpoint_set)
            continue
        if endpoint_set.dnsname not in skipped:
            skipped.add(endpoint_set.dnsname)
            logger.debug(
                f'Skipping {endpoint_set.dnsname} because owner id does not match, '
                f'found: "{endpoint_set.labels.get(OWNER_LABEL_KEY, "")}", required: "{owner_id}"'
            )
    return filtered


def filter_owned_updates(
    owner_id: str, update_old: List[EndpointSet], update_new: List[EndpointSet]
) -> Tuple[List[EndpointSet], List[EndpointSet]]:
    """
    Filter update pairs by the ownership of their pre-image.

    Args:
        owner_id: Owner ID of this instance
        update_old: Current state of the updated records
        update_new: Desired state, paired with update_old by position

    Returns:
        Tuple[List[EndpointSet], List[EndpointSet]]: Filtered pairs, still aligned
    """
    owned = {endpoint_set.key for endpoint_set in filter_owned(owner_id, update_old)}
    kept_old = []
    kept_new = []
    for old, new in zip(update_old, update_new):
        if old.key in owned:
            kept_old.append(old)
            kept_new.append(new)
    return kept_old, kept_new


def filter_owned_changes(owner_id: str, changes: Changes) -> Changes:
    """
    Restrict updates and deletes to records owned by this instance.

    Creates pass through untouched: a record that does not exist yet belongs
    to whichever instance creates it first.

    Args:
        owner_id: Owner ID of this instance
        changes: Changes calculated by a plan

    Returns:
        Changes: Filtered changes
    """
    update_old, update_new = filter_owned_updates(
        owner_id, changes.update_old, changes.update_new
    )
    return replace(
        changes,
        update_old=update_old,
        update_new=update_new,
        delete=filter_owned(owner_id, changes.delete),
    )


class NoopRegistry:
    """
    Registry without ownership tracking; every record is treated as managed.
    """

    def __init__(self, provider):
        """
        Initialize a NoopRegistry.

        Args:
            provider: DNS provider
        """
        self.provider = provider

    async def records(self) -> List[Endpoint]:
        return await self.provider.records()

    async def apply_changes(self, changes: Changes) -> Changes:
        await self.provider.apply_changes(changes)
        return changes
