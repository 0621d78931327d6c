"""Create, update, load and remove of model instances.

Save lifecycle:

```
validate (claims unique keys) -> create (id, idset, unique keys)
  -> MULTI: hash fields + index changes -> settle properties
  -> commit relation changes -> create/update + save events
```
"""

import logging
from typing import TYPE_CHECKING, Any

from nohm.events.protocols import ModelEvent
from nohm.exceptions import ConfigurationError, LinkError, NotFoundError, ValidationError
from nohm.models.options import SaveOptions
from nohm.properties.casting import serialize_value
from nohm.storage.ids import generate_id
from nohm.storage.indexes import SecondaryIndexManager
from nohm.storage.meta import META_VERSION_FIELD
from nohm.storage.relations import RelationManager
from nohm.validation.uniques import UniqueIndexManager
from nohm.validation.validator import Validator

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)


class PersistenceCoordinator:
    """
    Drives the store round trips of one instance.

    Holds no state of its own; the instance's property store, flags and
    pending relation changes are read and settled through ``model``.
    """

    def __init__(
        self,
        model: "NohmModel",
        validator: Validator,
        uniques: UniqueIndexManager,
        indexes: SecondaryIndexManager,
        relations: RelationManager,
    ):
        self._model = model
        self._validator = validator
        self._uniques = uniques
        self._indexes = indexes
        self._relations = relations

    # =================================================================
    # Save
    # =================================================================

    async def save(self, options: SaveOptions | None = None) -> None:
        """
        Create or update the instance.

        Args:
            options: Save options (default: SaveOptions())

        Raises:
            ValidationError: If validation failed (nothing was written)
            LinkError: If relation changes failed (the instance was written)
            ConfigurationError: If the id generator produced an invalid id
        """
        options = options or SaveOptions()
        model = self._model
        model_cls = type(model)
        creating = model.id is None

        await model.registry.ensure_meta(model_cls)

        if not options.skip_validation_and_unique_indexes:
            if not await self._validator.validate(set_directly=True):
                raise ValidationError(model.errors, model.model_name)

        if creating:
            await self._create(options)

        await self._write(all_fields=creating)
        self._uniques.clear_claims()

        diff = model.properties.diff()
        model.properties.mark_persisted()
        model.settle_id()
        model.in_db = True
        model.is_loaded = True

        try:
            await self._relations.commit(options)
        except LinkError as e:
            logger.debug(f"Saved {model.model_name}:{model.id} with {len(e.errors)} link failure(s)")
            raise

        if creating:
            logger.info(f"Created {model.model_name}:{model.id}")
        else:
            logger.debug(f"Updated {model.model_name}:{model.id} ({len(diff)} change(s))")

        if not options.silent:
            await model.fire_event(ModelEvent.CREATE if creating else ModelEvent.UPDATE, diff=diff)
            await model.fire_event(ModelEvent.SAVE, diff=diff)

    async def _create(self, options: SaveOptions) -> None:
        model = self._model
        try:
            record_id = await generate_id(model)
        except ConfigurationError:
            await self._uniques.rollback()
            raise

        await model.client.sadd(model.keys.idset(model.model_name), record_id)
        if not options.skip_validation_and_unique_indexes:
            await self._uniques.assign(record_id)
        model.assign_id(record_id)

    async def _write(self, all_fields: bool) -> None:
        model = self._model
        properties = model.properties
        fields = {
            key: serialize_value(properties.get_raw(key))
            for key in properties
            if all_fields or properties.is_updated(key)
        }
        fields[META_VERSION_FIELD] = model.registry.meta_version(type(model))

        async with model.client.pipeline(transaction=True) as pipe:
            pipe.hset(model.keys.hash(model.model_name, model.id), mapping=fields)
            queued = self._indexes.queue_updates(pipe)
            await pipe.execute()
        logger.debug(
            f"Wrote {len(fields)} field(s) and {queued} index command(s) for {model.model_name}:{model.id}"
        )

    # =================================================================
    # Load / remove
    # =================================================================

    async def load(self, record_id: Any) -> dict[str, Any]:
        """
        Load an instance by id.

        Args:
            record_id: Id to load

        Returns:
            all_properties() of the loaded instance

        Raises:
            NotFoundError: If no hash exists for the id
        """
        model = self._model
        record_id = str(record_id)
        data = await model.client.hgetall(model.keys.hash(model.model_name, record_id))
        if not data:
            raise NotFoundError(model.model_name, record_id)

        properties = model.properties
        for key, raw in data.items():
            if key == META_VERSION_FIELD:
                continue
            if key not in properties:
                logger.warning(
                    f"Hash of {model.model_name}:{record_id} has field '{key}' "
                    f"which is not a defined property; skipping"
                )
                continue
            if properties.definition(key).load_pure:
                properties.set_raw(key, raw)
            else:
                properties.set(key, raw)

        properties.mark_persisted()
        model.assign_id(record_id)
        model.in_db = True
        model.is_loaded = True
        logger.debug(f"Loaded {model.model_name}:{record_id}")
        return model.all_properties()

    async def remove(self, silent: bool = False) -> None:
        """
        Remove the instance with its indexes and relations.

        Raises:
            NotFoundError: If the instance has no id (or its hash is gone)
        """
        model = self._model
        if model.id is None:
            raise NotFoundError(model.model_name, None)
        if not model.in_db:
            await self.load(model.id)

        old_id = model.id
        keys = model.keys
        async with model.client.pipeline(transaction=True) as pipe:
            pipe.delete(keys.hash(model.model_name, old_id))
            pipe.srem(keys.idset(model.model_name), old_id)
            self._indexes.queue_removal(pipe)
            await self._relations.unlink_all(pipe)
            await pipe.execute()

        model.assign_id(None)
        model.in_db = False
        model.is_loaded = False
        logger.info(f"Removed {model.model_name}:{old_id}")

        if not silent:
            await model.fire_event(ModelEvent.REMOVE, old_id=old_id)
