"""
tests/test_controller.py

Tests for the reconciliation controller wired to the in-memory provider.
"""

from unittest.mock import AsyncMock

import pytest

from dns_reconciler.controller.controller import Controller
from dns_reconciler.controller.policy import upsert_only_policy
from dns_reconciler.models.models import Endpoint
from dns_reconciler.provider.inmemory import InMemoryProvider
from dns_reconciler.provider.provider import ProviderError
from dns_reconciler.registry.txt_registry import TXTRegistry
from dns_reconciler.source.source import StaticSource


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def _controller(desired, provider, owner="me", **kwargs):
    registry = TXTRegistry(provider, txt_owner_id=owner)
    return Controller(StaticSource(desired), registry, **kwargs)


class RejectingOnceRegistry(TXTRegistry):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rejections = 1

    async def apply_changes(self, changes):
        if self.rejections:
            self.rejections -= 1
            raise ProviderError("write rejected")
        return await super().apply_changes(changes)


async def _targets(provider):
    return {
        (e.dnsname, e.record_type): e.target
        for e in await provider.records()
        if e.record_type != "TXT"
    }


@pytest.mark.asyncio
async def test_run_once_converges_and_is_idempotent():
    provider = InMemoryProvider(["example.com"])
    desired = [
        Endpoint.alias("node/role=worker/external", "1.2.3.4", "A"),
        Endpoint("app.example.com", "node/role=worker/external", "InternalAlias"),
        Endpoint("www.example.com", "5.6.7.8", "A"),
    ]
    controller = _controller(desired, provider)

    first = await controller.run_once()
    second = await controller.run_once()

    assert len(first.create) == 2
    assert not second.has_changes()
    assert await _targets(provider) == {
        ("app.example.com", "A"): "1.2.3.4",
        ("www.example.com", "A"): "5.6.7.8",
    }
    assert controller.counters["creates"] == 2
    assert controller.counters["runs"] == 2
    assert controller.healthy


@pytest.mark.asyncio
async def test_run_once_never_touches_foreign_records():
    provider = InMemoryProvider(["example.com"])
    await _controller([Endpoint("shared.example.com", "1.1.1.1", "A")], provider, owner="you").run_once()

    controller = _controller([], provider, owner="me")
    await controller.run_once()

    assert await _targets(provider) == {("shared.example.com", "A"): "1.1.1.1"}
    assert controller.counters["deletes"] == 0


@pytest.mark.asyncio
async def test_upsert_only_policy_keeps_records():
    provider = InMemoryProvider(["example.com"])
    await _controller([Endpoint("www.example.com", "1.1.1.1", "A")], provider).run_once()

    controller = _controller([], provider, policies=[upsert_only_policy])
    changes = await controller.run_once()

    assert changes.delete == []
    assert ("www.example.com", "A") in await _targets(provider)


@pytest.mark.asyncio
async def test_deletions_wait_for_cleanup_delay():
    provider = InMemoryProvider(["example.com"])
    await _controller([Endpoint("www.example.com", "1.1.1.1", "A")], provider).run_once()
    clock = FakeClock()
    controller = _controller([], provider, cleanup_delay=60, clock=clock)

    held = await controller.run_once()
    clock.now = 59
    still_held = await controller.run_once()
    clock.now = 60
    applied = await controller.run_once()

    assert held.delete == [] and still_held.delete == []
    assert [s.dnsname for s in applied.delete] == ["www.example.com"]
    assert await _targets(provider) == {}
    assert controller.counters["deletes"] == 1
    assert controller.cleanup_tracker.pending_deletions == {}


@pytest.mark.asyncio
async def test_failed_deletion_is_retried_without_new_delay():
    provider = InMemoryProvider(["example.com"])
    await _controller([Endpoint("www.example.com", "1.1.1.1", "A")], provider).run_once()
    clock = FakeClock()
    registry = RejectingOnceRegistry(provider, txt_owner_id="me")
    controller = Controller(StaticSource([]), registry, cleanup_delay=60, clock=clock)

    held = await controller.run_once()
    clock.now = 61
    with pytest.raises(ProviderError, match="write rejected"):
        await controller.run_once()
    clock.now = 62
    retried = await controller.run_once()

    assert held.delete == []
    assert [s.dnsname for s in retried.delete] == ["www.example.com"]
    assert await _targets(provider) == {}
    assert controller.counters["deletes"] == 1


@pytest.mark.asyncio
async def test_desired_again_cancels_pending_deletion():
    provider = InMemoryProvider(["example.com"])
    endpoint = Endpoint("www.example.com", "1.1.1.1", "A")
    await _controller([endpoint], provider).run_once()
    clock = FakeClock()
    source = StaticSource([])
    controller = Controller(
        source, TXTRegistry(provider, txt_owner_id="me"), cleanup_delay=60, clock=clock
    )

    await controller.run_once()
    assert "www.example.com:A" in controller.cleanup_tracker.pending_deletions

    controller.source = StaticSource([endpoint])
    await controller.run_once()

    assert controller.cleanup_tracker.pending_deletions == {}


@pytest.mark.asyncio
async def test_run_once_propagates_errors_and_marks_unhealthy():
    registry = AsyncMock()
    registry.records.side_effect = RuntimeError("backend down")
    controller = Controller(StaticSource([]), registry)

    with pytest.raises(RuntimeError, match="backend down"):
        await controller.run_once()

    assert not controller.healthy
    assert controller.last_error == "backend down"
    assert controller.counters["failures"] == 1


@pytest.mark.asyncio
async def test_no_changes_skip_registry():
    registry = AsyncMock()
    registry.records.return_value = [Endpoint("www.example.com", "1.1.1.1", "A")]
    controller = Controller(
        StaticSource([Endpoint("www.example.com", "1.1.1.1", "A")]), registry
    )

    await controller.run_once()

    registry.apply_changes.assert_not_called()


@pytest.mark.asyncio
async def test_unresolved_aliases_are_counted():
    provider = InMemoryProvider(["example.com"])
    controller = _controller(
        [Endpoint("app.example.com", "node/missing/external", "InternalAlias")], provider
    )

    changes = await controller.run_once()

    assert not changes.has_changes()
    assert controller.counters["unresolved_aliases"] == 1
