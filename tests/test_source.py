"""
tests/test_source.py

Unit tests for sources and node alias naming.
"""

import pytest

from dns_reconciler.controller.plan import Plan
from dns_reconciler.models.models import Endpoint, EndpointSet
from dns_reconciler.source.source import (
    MultiSource,
    StaticSource,
    alias_for_node_name,
    alias_for_nodes_in_role,
    node_alias_endpoints,
    node_role,
)


def test_alias_names():
    assert alias_for_node_name("n1", "internal") == "node/n1/internal"
    assert alias_for_nodes_in_role("worker", "external") == "node/role=worker/external"


@pytest.mark.parametrize(
    "labels, expected",
    [
        ({"node-role.kubernetes.io/master": ""}, "master"),
        ({"kubernetes.io/role": "node"}, "node"),
        (
            {"node-role.kubernetes.io/worker": "", "kubernetes.io/role": "node"},
            "worker",
        ),
        ({}, ""),
    ],
)
def test_node_role(labels, expected):
    assert node_role(labels) == expected


def test_node_alias_endpoints():
    endpoints = node_alias_endpoints(
        "n1",
        {"kubernetes.io/role": "worker"},
        [
            {"type": "InternalIP", "address": "10.0.0.1"},
            {"type": "ExternalIP", "address": "1.2.3.4"},
            {"type": "Hostname", "address": "n1.local"},
        ],
    )

    assert endpoints == [
        Endpoint.alias("node/n1/internal", "10.0.0.1", "A"),
        Endpoint.alias("node/n1/external", "1.2.3.4", "A"),
        Endpoint.alias("node/role=worker/internal", "10.0.0.1", "A"),
        Endpoint.alias("node/role=worker/external", "1.2.3.4", "A"),
    ]


@pytest.mark.asyncio
async def test_static_source_returns_copy():
    endpoints = [Endpoint("x.com", "1", "A")]
    source = StaticSource(endpoints)

    result = await source.endpoints()
    result.append(Endpoint("y.com", "2", "A"))

    assert await source.endpoints() == endpoints


@pytest.mark.asyncio
async def test_multi_source_lists_aliases_first():
    regular = Endpoint("app.example.com", "node/role=worker/external", "InternalAlias")
    alias = Endpoint.alias("node/role=worker/external", "1.2.3.4", "A")
    source = MultiSource([StaticSource([regular]), StaticSource([alias])])

    desired = await source.endpoints()

    assert desired == [alias, regular]
    assert Plan([], desired).calculate().changes.create == [
        EndpointSet("app.example.com", "A", ["1.2.3.4"])
    ]
