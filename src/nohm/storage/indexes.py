"""Secondary index maintenance.

Index operations are only ever queued on the MULTI pipeline that also
writes (or deletes) the instance hash, so readers never see a hash and its
indexes disagree.
"""

import logging
from typing import TYPE_CHECKING, Any

from redis.asyncio.client import Pipeline

from nohm.properties.casting import parse_float, serialize_value
from nohm.validation.uniques import UniqueIndexManager

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)


def index_score(value: Any) -> float:
    """Score of a numeric property value in a range index."""
    return parse_float(value)


class SecondaryIndexManager:
    """Queues exact-match, range and stale unique key updates for one instance."""

    def __init__(self, model: "NohmModel", uniques: UniqueIndexManager):
        self._model = model
        self._uniques = uniques

    def queue_updates(self, pipe: Pipeline) -> int:
        """
        Queue index changes for every new or updated property.

        Args:
            pipe: The MULTI pipeline carrying the hash write

        Returns:
            Number of queued commands
        """
        model = self._model
        properties = model.properties
        keys = model.keys
        record_id = model.id
        in_db = model.in_db
        queued = 0

        for key in properties:
            definition = properties.definition(key)
            updated = properties.is_updated(key)
            value = properties.get_raw(key)
            old_value = properties.get_old(key)

            if definition.unique and updated and in_db:
                stale_key = self._uniques.key_for(key, old_value)
                if stale_key != self._uniques.key_for(key, value):
                    pipe.delete(stale_key)
                    queued += 1

            if not definition.index or not (updated or not in_db):
                continue

            if definition.numeric_index:
                scored_key = keys.scored_index(model.model_name, key)
                if in_db:
                    pipe.zrem(scored_key, record_id)
                    queued += 1
                pipe.zadd(scored_key, {record_id: index_score(value)})
            else:
                if in_db:
                    pipe.srem(keys.index(model.model_name, key, serialize_value(old_value)), record_id)
                    queued += 1
                pipe.sadd(keys.index(model.model_name, key, serialize_value(value)), record_id)
            queued += 1

        logger.debug(f"Queued {queued} index command(s) for {model.model_name}:{record_id}")
        return queued

    def queue_removal(self, pipe: Pipeline) -> None:
        """Queue deletion of every unique key and index entry of the persisted values."""
        model = self._model
        properties = model.properties
        keys = model.keys
        record_id = model.id

        for key in properties:
            definition = properties.definition(key)
            old_value = properties.get_old(key)
            if definition.unique:
                pipe.delete(self._uniques.key_for(key, old_value))
            if definition.numeric_index:
                pipe.zrem(keys.scored_index(model.model_name, key), record_id)
            elif definition.index:
                pipe.srem(keys.index(model.model_name, key, serialize_value(old_value)), record_id)
