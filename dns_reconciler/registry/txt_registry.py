"""
TXT registry module for dns-reconciler.

This module is responsible for tracking which DNS records are owned by which
dns-reconciler instance using companion TXT records.
"""

import base64
import logging
from typing import Dict, List, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from dns_reconciler.models.models import (
    OWNER_LABEL_KEY,
    RECORD_TYPE_TXT,
    Changes,
    Endpoint,
    EndpointSet,
    RecordKey,
)
from dns_reconciler.registry.registry import filter_owned_changes

HERITAGE = "dns-reconciler"
ENCRYPTED_PREFIX = "v1:AES256:"


class TXTRegistry:
    """
    Registry that tracks record ownership using TXT records.

    Every managed record gets a TXT record named
    `<prefix><type>.<name>` holding `heritage=dns-reconciler,owner=<id>`.
    """

    def __init__(
        self,
        provider,
        txt_owner_id: str = "default",
        txt_prefix: str = "dns-reconciler-",
        txt_wildcard_replacement: str = "star",
        encrypt_txt: bool = False,
        encryption_key: Optional[str] = None,
    ):
        """
        Initialize a TXTRegistry.

        Args:
            provider: DNS provider
            txt_owner_id: Owner ID of this instance
            txt_prefix: Prefix for TXT record names
            txt_wildcard_replacement: Replacement for wildcards in TXT record names
            encrypt_txt: Whether to encrypt TXT record content
            encryption_key: Encryption key for TXT record content
        """
        self.provider = provider
        self.txt_owner_id = txt_owner_id
        self.txt_prefix = txt_prefix
        self.txt_wildcard_replacement = txt_wildcard_replacement
        self.encrypt_txt = encrypt_txt
        self.logger = logging.getLogger("dns-reconciler.registry.txt")

        self.fernet = None
        if self.encrypt_txt:
            if not encryption_key:
                raise ValueError("encryption_key is required when encrypt_txt is set")
            self.fernet = self._create_fernet(encryption_key)

    async def records(self) -> List[Endpoint]:
        """
        Returns every record in the provider, labelled with its owner.

        Ownership TXT records are left out of the result. Records without an
        ownership TXT record carry no owner label.

        Returns:
            List[Endpoint]: List of endpoints
        """
        all_records = await self.provider.records()
        owners = self._owners(all_records)

        records = []
        for record in all_records:
            if self._is_ownership_record(record):
                continue
            owner = owners.get(self._get_txt_record_name(record.key))
            if owner is not None:
                record = Endpoint(
                    dnsname=record.dnsname,
                    target=record.target,
                    record_type=record.record_type,
                    alias_target=record.alias_target,
                    labels={**record.labels, OWNER_LABEL_KEY: owner},
                )
            records.append(record)
        return records

    async def apply_changes(self, changes: Changes) -> Changes:
        """
        Applies the owned subset of changes together with their ownership records.

        Args:
            changes: Changes calculated by a plan

        Returns:
            Changes: The owned subset that was applied, without ownership records
        """
        filtered = filter_owned_changes(self.txt_owner_id, changes)

        txt_creates = []
        if filtered.create:
            owners = self._owners(await self.provider.records())
            for endpoint_set in filtered.create:
                txt_name = self._get_txt_record_name(endpoint_set.key)
                if txt_name in owners:
                    if owners[txt_name] != self.txt_owner_id:
                        self.logger.warning(
                            f"Ownership record {txt_name} belongs to '{owners[txt_name]}', leaving it in place"
                        )
                    continue
                txt_creates.append(self._ownership_record(endpoint_set, txt_name))

        txt_deletes = [
            EndpointSet(
                dnsname=self._get_txt_record_name(endpoint_set.key),
                record_type=RECORD_TYPE_TXT,
            )
            for endpoint_set in filtered.delete
            if OWNER_LABEL_KEY in endpoint_set.labels
        ]

        await self.provider.apply_changes(
            Changes(
                create=filtered.create + txt_creates,
                update_old=filtered.update_old,
                update_new=filtered.update_new,
                delete=filtered.delete + txt_deletes,
            )
        )
        return filtered

    def _owners(self, endpoints: List[Endpoint]) -> Dict[str, str]:
        """
        Map ownership TXT record names to the owner they name.
        """
        owners = {}
        for endpoint in endpoints:
            if not self._is_ownership_record(endpoint):
                continue
            content = self._decode_txt_content(endpoint.target)
            if content is None:
                continue
            parsed = self._parse_txt_content(content)
            if parsed.get("heritage") == HERITAGE and "owner" in parsed:
                owners[endpoint.dnsname] = parsed["owner"]
        return owners

    def _is_ownership_record(self, endpoint: Endpoint) -> bool:
        """
        Ownership records are prefixed TXT records holding a heritage payload.

        Encrypted payloads count even when this instance cannot decrypt them.
        """
        if endpoint.record_type != RECORD_TYPE_TXT:
            return False
        if not endpoint.dnsname.startswith(self.txt_prefix):
            return False
        content = self._strip_quotes(endpoint.target)
        if content.startswith(ENCRYPTED_PREFIX):
            return True
        return self._parse_txt_content(content).get("heritage") == HERITAGE

    def _get_txt_record_name(self, key: RecordKey) -> str:
        """
        Gets the ownership TXT record name for a record.

        Args:
            key: Record key

        Returns:
            str: TXT record name
        """
        # The prefix stays in its own label so apex records keep their TXT in the zone
        txt_name = f"{self.txt_prefix}{key.record_type.lower()}.{key.dnsname}"

        if "*" in txt_name:
            txt_name = txt_name.replace("*", self.txt_wildcard_replacement)

        return txt_name

    def _ownership_record(self, endpoint_set: EndpointSet, txt_name: str) -> EndpointSet:
        content = f"heritage={HERITAGE},{OWNER_LABEL_KEY}={self.txt_owner_id}"
        if self.fernet:
            content = self._encrypt_txt_content(content)
        self.logger.debug(f"Claiming {endpoint_set.id} with ownership record {txt_name}")
        return EndpointSet(
            dnsname=txt_name,
            record_type=RECORD_TYPE_TXT,
            targets=[f'"{content}"'],
        )

    def _decode_txt_content(self, raw_content: str) -> Optional[str]:
        """
        Strips quotes and decrypts ownership content.

        Args:
            raw_content: TXT record content as stored by the provider

        Returns:
            Optional[str]: Plain content, or None if it could not be decrypted
        """
        content = self._strip_quotes(raw_content)

        if not content.startswith(ENCRYPTED_PREFIX):
            return content
        if not self.fernet:
            self.logger.warning("Found encrypted ownership record but encryption is disabled")
            return None

        try:
            return self.fernet.decrypt(content[len(ENCRYPTED_PREFIX):].encode()).decode()
        except InvalidToken:
            self.logger.warning("Failed to decrypt ownership record, ignoring it")
            return None

    def _encrypt_txt_content(self, content: str) -> str:
        encrypted = self.fernet.encrypt(content.encode())
        return f"{ENCRYPTED_PREFIX}{encrypted.decode()}"

    @staticmethod
    def _create_fernet(key: str) -> Fernet:
        """
        Creates a Fernet instance for encryption/decryption.

        Args:
            key: Encryption key

        Returns:
            Fernet: Fernet instance
        """
        # Fixed salt so every instance sharing the key derives the same Fernet key
        salt = HERITAGE.encode()
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(), length=32, salt=salt, iterations=100000
        )
        key_bytes = kdf.derive(key.encode())
        return Fernet(base64.urlsafe_b64encode(key_bytes))

    @staticmethod
    def _strip_quotes(content: str) -> str:
        if content.startswith('"') and content.endswith('"'):
            return content[1:-1]
        return content

    @staticmethod
    def _parse_txt_content(txt_content: str) -> Dict[str, str]:
        """
        Parses TXT record content into a dictionary.
        Format: "heritage=dns-reconciler,owner=default"

        Args:
            txt_content: TXT record content

        Returns:
            Dict[str, str]: Parsed TXT record content
        """
        return {
            key.strip(): value.strip()
            for part in txt_content.split(",")
            if "=" in part
            for key, value in [part.split("=", 1)]
        }
