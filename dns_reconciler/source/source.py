"""
Source module for dns-reconciler.

Sources produce the desired endpoints. This module defines the source
interface, simple static and composite sources, and the naming scheme for
node aliases that InternalAlias endpoints resolve against.
"""

import logging
from typing import Dict, Iterable, List, Protocol

from dns_reconciler.models.models import RECORD_TYPE_A, Endpoint

ROLE_TYPE_EXTERNAL = "external"
ROLE_TYPE_INTERNAL = "internal"

NODE_INTERNAL_IP = "InternalIP"
NODE_EXTERNAL_IP = "ExternalIP"

_ROLE_TYPES = {
    NODE_INTERNAL_IP: ROLE_TYPE_INTERNAL,
    NODE_EXTERNAL_IP: ROLE_TYPE_EXTERNAL,
}

ROLE_LABEL_PREFIX = "node-role.kubernetes.io/"
LEGACY_ROLE_LABEL = "kubernetes.io/role"


class Source(Protocol):
    async def endpoints(self) -> List[Endpoint]:
        ...


def alias_for_nodes_in_role(role: str, role_type: str) -> str:
    return f"node/role={role}/{role_type}"


def alias_for_node_name(node_name: str, role_type: str) -> str:
    return f"node/{node_name}/{role_type}"


def node_role(labels: Dict[str, str]) -> str:
    """
    Determine a node's role from its labels.

    The `node-role.kubernetes.io/<role>` label is preferred over the older
    `kubernetes.io/role` label.

    Args:
        labels: Node labels

    Returns:
        str: Role name, empty if the node has none
    """
    role = ""
    for key in labels:
        if key.startswith(ROLE_LABEL_PREFIX):
            role = key[len(ROLE_LABEL_PREFIX):]
    if not role:
        role = labels.get(LEGACY_ROLE_LABEL, "")
    return role


def node_alias_endpoints(
    name: str, labels: Dict[str, str], addresses: Iterable[Dict[str, str]]
) -> List[Endpoint]:
    """
    Build the alias-target endpoints describing one node.

    Each internal or external address is registered twice: under the node's
    own alias and under the alias of its role. Other address types are
    ignored.

    Args:
        name: Node name
        labels: Node labels
        addresses: Addresses as {"type": ..., "address": ...} mappings

    Returns:
        List[Endpoint]: Alias-target A endpoints
    """
    addresses = [
        address for address in addresses if address.get("type") in _ROLE_TYPES
    ]
    role = node_role(labels)

    endpoints = [
        Endpoint.alias(
            alias_for_node_name(name, _ROLE_TYPES[address["type"]]),
            address["address"],
            RECORD_TYPE_A,
        )
        for address in addresses
    ]
    endpoints.extend(
        Endpoint.alias(
            alias_for_nodes_in_role(role, _ROLE_TYPES[address["type"]]),
            address["address"],
            RECORD_TYPE_A,
        )
        for address in addresses
    )
    return endpoints


class StaticSource:
    """
    Source returning a fixed list of endpoints.
    """

    def __init__(self, endpoints: List[Endpoint]):
        self._endpoints = list(endpoints)

    async def endpoints(self) -> List[Endpoint]:
        return list(self._endpoints)


class MultiSource:
    """
    Source combining the endpoints of several sources.

    Alias-target endpoints are listed before regular endpoints.
    """

    def __init__(self, sources: List[Source]):
        self.sources = list(sources)
        self.logger = logging.getLogger("dns-reconciler.source.multi")

    async def endpoints(self) -> List[Endpoint]:
        aliases = []
        records = []
        for source in self.sources:
            for endpoint in await source.endpoints():
                (aliases if endpoint.alias_target else records).append(endpoint)
        self.logger.debug(
            f"Collected {len(aliases)} alias and {len(records)} regular endpoints from {len(self.sources)} sources"
        )
        return aliases + records
