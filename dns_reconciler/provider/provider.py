"""
Provider interface for dns-reconciler.

Providers read the current records from a DNS backend and apply the changes
calculated by a plan. They report failures by raising ProviderError.
"""

from typing import List, Protocol

from dns_reconciler.models.models import Changes, Endpoint


class ProviderError(Exception):
    """Base class for errors raised by DNS providers."""


class ZoneNotFoundError(ProviderError):
    """Raised when no managed zone contains a DNS name."""


class RecordAlreadyExistsError(ProviderError):
    """Raised when creating a record that already exists."""


class RecordNotFoundError(ProviderError):
    """Raised when updating or deleting a record that does not exist."""


class Provider(Protocol):
    async def records(self) -> List[Endpoint]:
        ...

    async def apply_changes(self, changes: Changes) -> None:
        ...
