"""
Data models for dns-reconciler.

Endpoints are the single name-to-target mappings produced by sources and
providers; endpoint sets are the aggregated per-(type, name) records that a
plan emits as units of change.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple

RECORD_TYPE_A = "A"
RECORD_TYPE_CNAME = "CNAME"
RECORD_TYPE_TXT = "TXT"
# Resolved through the alias index of a plan instead of being emitted directly
RECORD_TYPE_INTERNAL_ALIAS = "InternalAlias"

OWNER_LABEL_KEY = "owner"


class RecordKey(NamedTuple):
    """
    Identity of an aggregated record. DNS names are compared case-sensitively.
    """

    record_type: str
    dnsname: str


@dataclass(frozen=True)
class Endpoint:
    """
    Represents a single desired or observed DNS mapping.
    """

    dnsname: str
    target: str
    record_type: str
    alias_target: bool = False
    labels: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def alias(cls, dnsname: str, target: str, record_type: str) -> "Endpoint":
        """
        Create an alias-target endpoint.

        Alias-target endpoints are never emitted as records. They register
        `dnsname` as something InternalAlias endpoints can point at, resolving
        to `target` with the concrete `record_type`.

        Args:
            dnsname: Alias name other endpoints refer to
            target: Concrete target the alias resolves to
            record_type: Concrete record type of the target

        Returns:
            Endpoint: Alias-target endpoint
        """
        return cls(
            dnsname=dnsname, target=target, record_type=record_type, alias_target=True
        )

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.record_type, self.dnsname)


@dataclass(frozen=True)
class EndpointSet:
    """
    Represents an aggregated record: every target for one (type, name) pair.
    """

    dnsname: str
    record_type: str
    targets: List[str] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> RecordKey:
        return RecordKey(self.record_type, self.dnsname)

    @property
    def id(self) -> str:
        """
        Generate a unique identifier for this endpoint set.

        Returns:
            str: Unique identifier
        """
        return f"{self.dnsname}:{self.record_type}"

    def endpoints(self) -> List[Endpoint]:
        """
        Expand the set back into one endpoint per target.

        Returns:
            List[Endpoint]: Endpoints carrying this set's labels
        """
        return [
            Endpoint(
                dnsname=self.dnsname,
                target=target,
                record_type=self.record_type,
                labels=dict(self.labels),
            )
            for target in self.targets
        ]


def targets_equal(a: List[str], b: List[str]) -> bool:
    """
    Compare two target lists as multisets.

    Order is ignored but multiplicity is not, so ["x", "x"] differs from ["x"].

    Args:
        a: First target list
        b: Second target list

    Returns:
        bool: True if both lists hold the same targets the same number of times
    """
    return Counter(a) == Counter(b)


@dataclass
class Changes:
    """
    Represents changes to be applied to DNS records.

    update_old and update_new are paired by position and always have the same
    length.
    """

    create: List[EndpointSet] = field(default_factory=list)
    update_old: List[EndpointSet] = field(default_factory=list)
    update_new: List[EndpointSet] = field(default_factory=list)
    delete: List[EndpointSet] = field(default_factory=list)

    def has_changes(self) -> bool:
        """
        Check if there are any changes to be applied.

        Returns:
            bool: True if there are changes, False otherwise
        """
        return bool(self.create or self.update_old or self.update_new or self.delete)
