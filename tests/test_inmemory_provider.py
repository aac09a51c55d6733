"""
tests/test_inmemory_provider.py

Unit tests for the in-memory provider.
"""

import pytest

from dns_reconciler.models.models import Changes, Endpoint, EndpointSet
from dns_reconciler.provider.inmemory import InMemoryProvider
from dns_reconciler.provider.provider import (
    ProviderError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    ZoneNotFoundError,
)


@pytest.fixture
def provider():
    provider = InMemoryProvider(["example.com", "dev.example.com"])
    provider.seed(
        [
            Endpoint("www.example.com", "1.1.1.1", "A"),
            Endpoint("www.example.com", "2.2.2.2", "A"),
        ]
    )
    return provider


def test_find_zone_prefers_most_specific(provider):
    assert provider.find_zone("api.dev.example.com") == "dev.example.com"
    assert provider.find_zone("www.example.com") == "example.com"
    assert provider.find_zone("example.com") == "example.com"
    assert provider.find_zone("notexample.com") is None


def test_seed_outside_zones_raises(provider):
    with pytest.raises(ZoneNotFoundError):
        provider.seed([Endpoint("www.other.org", "1.1.1.1", "A")])


@pytest.mark.asyncio
async def test_records_expand_targets(provider):
    records = await provider.records()

    assert sorted(e.target for e in records) == ["1.1.1.1", "2.2.2.2"]


@pytest.mark.asyncio
async def test_apply_changes(provider):
    await provider.apply_changes(
        Changes(
            create=[EndpointSet("api.dev.example.com", "CNAME", ["www.example.com"])],
            update_old=[EndpointSet("www.example.com", "A", ["1.1.1.1", "2.2.2.2"])],
            update_new=[EndpointSet("www.example.com", "A", ["3.3.3.3"], {"owner": "me"})],
        )
    )

    records = {(e.dnsname, e.record_type): e for e in await provider.records()}
    assert records[("www.example.com", "A")].target == "3.3.3.3"
    assert records[("www.example.com", "A")].labels == {}
    assert records[("api.dev.example.com", "CNAME")].target == "www.example.com"


@pytest.mark.asyncio
async def test_failed_validation_applies_nothing(provider):
    changes = Changes(
        create=[EndpointSet("new.example.com", "A", ["4.4.4.4"])],
        delete=[EndpointSet("missing.example.com", "A", ["5.5.5.5"])],
    )

    with pytest.raises(RecordNotFoundError):
        await provider.apply_changes(changes)

    assert {e.dnsname for e in await provider.records()} == {"www.example.com"}


@pytest.mark.asyncio
async def test_create_existing_record_raises(provider):
    with pytest.raises(RecordAlreadyExistsError) as exc_info:
        await provider.apply_changes(
            Changes(create=[EndpointSet("www.example.com", "A", ["9.9.9.9"])])
        )

    assert isinstance(exc_info.value, ProviderError)


@pytest.mark.asyncio
async def test_changes_outside_zones_are_ignored(provider):
    await provider.apply_changes(
        Changes(create=[EndpointSet("www.other.org", "A", ["9.9.9.9"])])
    )

    assert {e.dnsname for e in await provider.records()} == {"www.example.com"}


@pytest.mark.asyncio
async def test_dry_run_changes_nothing():
    provider = InMemoryProvider(["example.com"], dry_run=True)

    await provider.apply_changes(
        Changes(create=[EndpointSet("www.example.com", "A", ["1.1.1.1"])])
    )

    assert await provider.records() == []
