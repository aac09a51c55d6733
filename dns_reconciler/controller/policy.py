"""
Policy module for dns-reconciler.

A policy is a plain function taking a Changes value and returning a (possibly
reduced) Changes value. Policies run in order, each one seeing the output of
the previous one. A policy may drop entries but never adds a record that was
not in its input, and it drops update pairs together.
"""

import logging
from dataclasses import replace
from typing import Callable, Dict, Iterable

from dns_reconciler.models.models import Changes

Policy = Callable[[Changes], Changes]

logger = logging.getLogger("dns-reconciler.policy")


def sync_policy(changes: Changes) -> Changes:
    """
    Allow every change, including deletions.
    """
    return changes


def upsert_only_policy(changes: Changes) -> Changes:
    """
    Allow creates and updates but never delete records.

    Args:
        changes: Changes calculated by a plan

    Returns:
        Changes: Same changes with an empty delete list
    """
    if changes.delete:
        logger.debug(
            f"upsert-only policy dropping {len(changes.delete)} deletions"
        )
    return replace(changes, delete=[])


def create_only_policy(changes: Changes) -> Changes:
    """
    Allow only records that do not exist yet to be created.

    Args:
        changes: Changes calculated by a plan

    Returns:
        Changes: Changes holding only the create list
    """
    dropped = len(changes.update_old) + len(changes.delete)
    if dropped:
        logger.debug(f"create-only policy dropping {dropped} updates and deletions")
    return Changes(create=list(changes.create))


POLICIES: Dict[str, Policy] = {
    "sync": sync_policy,
    "upsert-only": upsert_only_policy,
    "create-only": create_only_policy,
}


def policy_from_name(name: str) -> Policy:
    """
    Look up a built-in policy by its configuration name.

    Args:
        name: Policy name (sync, upsert-only, create-only)

    Returns:
        Policy: The policy function

    Raises:
        ValueError: If the name is not a known policy
    """
    try:
        return POLICIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown policy '{name}', expected one of: {', '.join(POLICIES)}"
        ) from None


def apply_policies(changes: Changes, policies: Iterable[Policy]) -> Changes:
    """
    Run changes through a chain of policies, left to right.

    Args:
        changes: Changes to filter
        policies: Policies in the order they apply

    Returns:
        Changes: Output of the last policy
    """
    for policy in policies:
        changes = policy(changes)
    return changes
