"""
In-memory provider module for dns-reconciler.

This module keeps DNS records in process memory, organised by zone. It backs
tests and dry runs, and serves as the reference for how a provider applies
changes.
"""

import logging
from typing import Dict, List, Optional

from dns_reconciler.models.models import Changes, Endpoint, EndpointSet, RecordKey
from dns_reconciler.provider.provider import (
    RecordAlreadyExistsError,
    RecordNotFoundError,
    ZoneNotFoundError,
)


class InMemoryProvider:
    """
    Provider that stores records in memory.
    """

    def __init__(self, zones: Optional[List[str]] = None, dry_run: bool = False):
        """
        Initialize an InMemoryProvider.

        Args:
            zones: Names of the zones to manage
            dry_run: Whether to run in dry-run mode
        """
        self.dry_run = dry_run
        self.logger = logging.getLogger("dns-reconciler.provider.inmemory")
        self._zones: Dict[str, Dict[RecordKey, EndpointSet]] = {}
        for zone in zones or []:
            self.add_zone(zone)

    def add_zone(self, zone: str) -> None:
        if zone in self._zones:
            self.logger.debug(f"Zone '{zone}' is already managed")
            return
        self._zones[zone] = {}

    def seed(self, endpoints: List[Endpoint]) -> None:
        """
        Load records directly, bypassing change validation.

        Endpoints sharing a type and name are merged into one record.

        Args:
            endpoints: Records to load

        Raises:
            ZoneNotFoundError: If an endpoint is outside every managed zone
        """
        for endpoint in endpoints:
            zone = self.find_zone(endpoint.dnsname)
            if zone is None:
                raise ZoneNotFoundError(f"No managed zone for '{endpoint.dnsname}'")
            existing = self._zones[zone].get(endpoint.key)
            targets = list(existing.targets) if existing else []
            targets.append(endpoint.target)
            self._zones[zone][endpoint.key] = EndpointSet(
                dnsname=endpoint.dnsname,
                record_type=endpoint.record_type,
                targets=targets,
            )

    def find_zone(self, dnsname: str) -> Optional[str]:
        """
        Find the most specific managed zone containing a DNS name.

        Args:
            dnsname: DNS name to look up

        Returns:
            Optional[str]: Zone name, or None if no zone matches
        """
        result = None
        for zone in self._zones:
            if dnsname == zone or dnsname.endswith(f".{zone}"):
                if result is None or len(zone) > len(result):
                    result = zone
        return result

    async def records(self) -> List[Endpoint]:
        """
        Returns every record held in the managed zones.

        Returns:
            List[Endpoint]: One endpoint per record target
        """
        endpoints = []
        for zone, records in self._zones.items():
            for endpoint_set in records.values():
                endpoints.extend(endpoint_set.endpoints())
            self.logger.debug(f"Found {len(records)} records in zone '{zone}'")
        return endpoints

    async def apply_changes(self, changes: Changes) -> None:
        """
        Apply changes to the stored records.

        The whole change set is validated first, so a failing change leaves
        every record untouched. Deletions run before creations.

        Args:
            changes: Changes to apply

        Raises:
            RecordAlreadyExistsError: If a created record already exists
            RecordNotFoundError: If an updated or deleted record does not exist
        """
        ignored = set()

        def zone_for(endpoint_set: EndpointSet) -> Optional[str]:
            zone = self.find_zone(endpoint_set.dnsname)
            if zone is None and endpoint_set.dnsname not in ignored:
                ignored.add(endpoint_set.dnsname)
                self.logger.info(
                    f"Ignoring changes to '{endpoint_set.dnsname}' because a suitable zone was not found."
                )
            return zone

        removals = []
        additions = []
        for endpoint_set in changes.delete + changes.update_old:
            zone = zone_for(endpoint_set)
            if zone is None:
                continue
            if endpoint_set.key not in self._zones[zone]:
                raise RecordNotFoundError(
                    f"Cannot remove {endpoint_set.record_type} record '{endpoint_set.dnsname}': not found"
                )
            removals.append((zone, endpoint_set))

        updated_keys = {endpoint_set.key for endpoint_set in changes.update_old}
        for endpoint_set in changes.create:
            zone = zone_for(endpoint_set)
            if zone is None:
                continue
            if endpoint_set.key in self._zones[zone]:
                raise RecordAlreadyExistsError(
                    f"Cannot create {endpoint_set.record_type} record '{endpoint_set.dnsname}': already exists"
                )
            additions.append((zone, endpoint_set))
        for endpoint_set in changes.update_new:
            zone = zone_for(endpoint_set)
            if zone is None:
                continue
            if endpoint_set.key not in updated_keys:
                raise RecordNotFoundError(
                    f"Cannot update {endpoint_set.record_type} record '{endpoint_set.dnsname}': no matching current record"
                )
            additions.append((zone, endpoint_set))

        verb = "Would" if self.dry_run else "Will"
        for zone, endpoint_set in removals:
            self.logger.info(
                f"{verb} remove {endpoint_set.record_type} record '{endpoint_set.dnsname}' from zone '{zone}'"
            )
            if not self.dry_run:
                del self._zones[zone][endpoint_set.key]

        for zone, endpoint_set in additions:
            self.logger.info(
                f"{verb} write {endpoint_set.record_type} record '{endpoint_set.dnsname}' -> {endpoint_set.targets} in zone '{zone}'"
            )
            if not self.dry_run:
                self._zones[zone][endpoint_set.key] = EndpointSet(
                    dnsname=endpoint_set.dnsname,
                    record_type=endpoint_set.record_type,
                    targets=list(endpoint_set.targets),
                )
