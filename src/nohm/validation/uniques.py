"""Unique value claims.

Each unique property value is owned through one key
``P:uniques:M:K:<value>`` holding the owner's id (lower-cased for string
properties, so uniqueness is case-insensitive). Claims are taken with
SETNX, which makes two instances racing for the same value resolve to one
winner.
"""

import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from nohm.properties.casting import serialize_value

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)


class UniqueIndexManager:
    """
    Checks, claims and releases unique keys for one instance.

    Claims made while saving are remembered as temporary until the save
    either completes (`assign()`) or fails (`rollback()`).
    """

    def __init__(self, model: "NohmModel"):
        self._model = model
        self._temporary_claims: list[str] = []
        self._claim_token = f"tmp-{uuid4().hex}"

    @property
    def temporary_claims(self) -> list[str]:
        return list(self._temporary_claims)

    @property
    def claim_owner(self) -> str:
        """Value written to claimed keys: the id, or a placeholder before create."""
        return self._model.id if self._model.id is not None else self._claim_token

    def key_for(self, key: str, value: Any) -> str:
        """Unique key of a property value."""
        text = serialize_value(value)
        if self._model.properties.definition(key).is_string:
            text = text.lower()
        return self._model.keys.unique(self._model.model_name, key, text)

    def needs_check(self, key: str) -> bool:
        """
        Check if a property's unique key has to be checked/claimed.

        Only unique properties with a non-empty value that changed (or whose
        instance was never saved) qualify.
        """
        properties = self._model.properties
        if not properties.definition(key).unique:
            return False
        if properties.get_raw(key) == "":
            return False
        return properties.is_updated(key) or not self._model.in_db

    async def check(self, key: str, set_directly: bool = False) -> bool:
        """
        Check whether the property's value is free.

        Args:
            key: Property name
            set_directly: Claim the key with SETNX instead of only checking it

        Returns:
            True if the value is free (or already owned by this instance)
        """
        if not self.needs_check(key):
            return True

        client = self._model.client
        unique_key = self.key_for(key, self._model.properties.get_raw(key))

        if not set_directly:
            return not await client.exists(unique_key)

        owner_id = self.claim_owner
        if await client.setnx(unique_key, owner_id):
            self._temporary_claims.append(unique_key)
            logger.debug(f"Claimed {unique_key} for {owner_id}")
            return True

        owner = await client.get(unique_key)
        return owner == owner_id

    def clear_claims(self) -> None:
        """Forget claims of an earlier save; the keys stay with this instance."""
        self._temporary_claims = []

    async def rollback(self) -> None:
        """Delete every temporary claim."""
        if not self._temporary_claims:
            return
        claims, self._temporary_claims = self._temporary_claims, []
        logger.debug(f"Releasing {len(claims)} temporary unique claim(s): {claims}")
        await self._model.client.delete(*claims)

    async def assign(self, record_id: str) -> None:
        """
        Point the unique keys of a new instance at its generated id.

        Called after create; replaces the temporary id written by SETNX.
        """
        mapping = {
            self.key_for(key, self._model.properties.get_raw(key)): record_id
            for key in self._model.properties
            if self.needs_check(key)
        }
        self._temporary_claims = []
        if mapping:
            logger.debug(f"Assigning unique keys {list(mapping)} to {record_id}")
            await self._model.client.mset(mapping)
