"""
tests/test_policy.py

Unit tests for the built-in policies and policy lookup.
"""

import pytest

from dns_reconciler.controller.policy import (
    POLICIES,
    apply_policies,
    create_only_policy,
    policy_from_name,
    sync_policy,
    upsert_only_policy,
)
from dns_reconciler.models.models import Changes, EndpointSet


@pytest.fixture
def changes():
    return Changes(
        create=[EndpointSet("new.com", "A", ["1"])],
        update_old=[EndpointSet("upd.com", "A", ["2"], {"owner": "me"})],
        update_new=[EndpointSet("upd.com", "A", ["3"], {"owner": "me"})],
        delete=[EndpointSet("old.com", "A", ["4"], {"owner": "me"})],
    )


def test_sync_policy_is_identity(changes):
    assert sync_policy(changes) is changes


def test_upsert_only_empties_deletes_and_keeps_the_rest(changes):
    result = upsert_only_policy(changes)

    assert result.delete == []
    assert result.create is changes.create
    assert result.update_old is changes.update_old
    assert result.update_new is changes.update_new
    assert len(changes.delete) == 1


def test_create_only_keeps_creates(changes):
    result = create_only_policy(changes)

    assert result == Changes(create=changes.create)


def test_apply_policies_chains_left_to_right(changes):
    def drop_creates(c):
        return Changes(update_old=c.update_old, update_new=c.update_new, delete=c.delete)

    result = apply_policies(changes, [drop_creates, upsert_only_policy])

    assert result.create == []
    assert result.delete == []
    assert len(result.update_old) == len(result.update_new) == 1


def test_apply_policies_without_policies_returns_input(changes):
    assert apply_policies(changes, []) is changes


@pytest.mark.parametrize("name", sorted(POLICIES))
def test_policy_from_name(name):
    assert policy_from_name(name) is POLICIES[name]


def test_policy_from_name_rejects_unknown():
    with pytest.raises(ValueError, match="Unknown policy 'delete-all'"):
        policy_from_name("delete-all")
