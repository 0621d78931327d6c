"""Relations between model instances.

A relation named ``R`` from a User to a Role is stored twice:

```
P:relations:User:R:Role:<user id>           -> {role ids}
P:relations:Role:RForeign:User:<role id>    -> {user ids}
```

and both relation keys are listed in the relationKeys registry of the
instance they belong to, so that removing an instance can find every
relation it takes part in without scanning the keyspace.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redis.asyncio.client import Pipeline

from nohm.events.protocols import ModelEvent
from nohm.exceptions import LinkError, LinkFailure, NohmError
from nohm.models.options import LinkOptions, SaveOptions
from nohm.storage.keys import foreign_relation_name, parse_relation_key

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)

# (action, model_name, relation_name, other)
LinkCallback = Callable[[str, str, str, "NohmModel"], None]


@dataclass
class RelationChange:
    """A pending link or unlink."""

    action: ModelEvent
    other: "NohmModel"
    options: LinkOptions
    callback: LinkCallback | None = None


def build_link_options(name_or_options: str | LinkOptions | dict[str, Any] | None) -> LinkOptions:
    if name_or_options is None:
        return LinkOptions()
    if isinstance(name_or_options, LinkOptions):
        return name_or_options
    if isinstance(name_or_options, str):
        return LinkOptions(name=name_or_options)
    return LinkOptions.model_validate(name_or_options)


class RelationManager:
    """
    Records pending relation changes of one instance and commits them.

    Commits run one change at a time: an unsaved related instance is saved
    first (with its own full save lifecycle) so the relation can reference
    its id.
    """

    def __init__(self, model: "NohmModel"):
        self._model = model
        self.changes: list[RelationChange] = []

    # =================================================================
    # Recording
    # =================================================================

    def record(
        self,
        action: ModelEvent,
        other: "NohmModel",
        name_or_options: str | LinkOptions | dict[str, Any] | LinkCallback | None = None,
        callback: LinkCallback | None = None,
    ) -> RelationChange:
        """
        Record a pending link/unlink.

        Args:
            action: ModelEvent.LINK or ModelEvent.UNLINK
            other: The related instance
            name_or_options: Relation name, LinkOptions (or dict), or the callback
            callback: Called as (action, model_name, relation_name, other) after the write

        Returns:
            The recorded change
        """
        if callable(name_or_options) and not isinstance(name_or_options, (str, LinkOptions, dict)):
            callback, name_or_options = name_or_options, None
        options = build_link_options(name_or_options)

        opposite = ModelEvent.UNLINK if action is ModelEvent.LINK else ModelEvent.LINK
        self.changes = [
            change for change in self.changes
            if not (change.action is opposite and change.other is other
                    and change.options.name == options.name)
        ]

        change = RelationChange(action=action, other=other, options=options, callback=callback)
        self.changes.append(change)
        logger.debug(
            f"Recorded {action.value} {self._model.model_name} -> {other.model_name} ({options.name})"
        )
        return change

    def clear(self) -> None:
        self.changes = []

    # =================================================================
    # Commit
    # =================================================================

    async def commit(self, save_options: SaveOptions) -> None:
        """
        Write every pending change, sequentially.

        Siblings are always attempted. Failures of changes without
        ``continue_on_link_error`` are raised together afterwards.

        Raises:
            LinkError: If any change failed
        """
        changes, self.changes = self.changes, []
        failures: list[LinkFailure] = []
        for change in changes:
            failures.extend(await self._commit_change(change, save_options))
        if failures:
            raise LinkError(failures)

    async def _commit_change(self, change: RelationChange, save_options: SaveOptions) -> list[LinkFailure]:
        other = change.other
        nested: list[LinkFailure] = []
        try:
            if other.id is None:
                try:
                    await other.save(save_options)
                except LinkError as e:
                    # the other instance itself was written, only its own links failed
                    nested.extend(e.errors)
            await self._write(change)
        except Exception as e:
            failure = LinkFailure(child=other, parent=self._model, error=e)
            if isinstance(e, NohmError):
                logger.debug(f"Relation commit failed: {failure}")
            else:
                logger.error(f"Relation commit failed: {failure}", exc_info=True)
            self._call_error_handler(change, e)
            if change.options.continue_on_link_error or save_options.continue_on_link_error:
                return nested
            return [*nested, failure]

        self._call_callback(change)
        if not (save_options.silent or change.options.silent):
            await self._model.fire_event(change.action, other=other, relation=change.options.name)
        return nested

    async def _write(self, change: RelationChange) -> None:
        model = self._model
        other = change.other
        keys = model.keys
        name = change.options.name
        own_key = keys.relation(model.model_name, name, other.model_name, model.id)
        reverse_key = keys.relation(other.model_name, foreign_relation_name(name),
                                    model.model_name, other.id)
        own_registry = keys.relation_keys(model.model_name, model.id)
        other_registry = keys.relation_keys(other.model_name, other.id)

        async with model.client.pipeline(transaction=True) as pipe:
            if change.action is ModelEvent.LINK:
                pipe.sadd(own_registry, own_key)
                pipe.sadd(own_key, other.id)
                pipe.sadd(other_registry, reverse_key)
                pipe.sadd(reverse_key, model.id)
            else:
                pipe.srem(own_key, other.id)
                pipe.srem(reverse_key, model.id)
            await pipe.execute()

        if change.action is ModelEvent.UNLINK:
            await self._prune_registries((own_registry, own_key), (other_registry, reverse_key))

        logger.debug(f"{change.action.value}: {own_key} <-> {reverse_key}")

    async def _prune_registries(self, *entries: tuple[str, str]) -> None:
        # a relation key stays registered while it still holds members
        client = self._model.client
        for registry_key, relation_key in entries:
            if not await client.exists(relation_key):
                await client.srem(registry_key, relation_key)

    def _call_callback(self, change: RelationChange) -> None:
        if change.callback is None:
            return
        try:
            change.callback(change.action.value, self._model.model_name, change.options.name, change.other)
        except Exception as e:
            logger.error(f"{change.action.value} callback of {self._model.model_name} raised: {e}",
                         exc_info=True)

    def _call_error_handler(self, change: RelationChange, error: Exception) -> None:
        if change.options.error is None:
            return
        try:
            change.options.error(error, change.other)
        except Exception as e:
            logger.error(f"Link error handler of {self._model.model_name} raised: {e}", exc_info=True)

    # =================================================================
    # Teardown and queries
    # =================================================================

    async def unlink_all(self, pipe: Pipeline | None = None) -> None:
        """
        Sever every relation of the instance.

        Args:
            pipe: Queue the deletes on this MULTI pipeline instead of
                executing them immediately
        """
        model = self._model
        client = model.client
        keys = model.keys
        registry_key = keys.relation_keys(model.model_name, model.id)
        relation_keys = await client.smembers(registry_key)
        self.changes = []

        own_pipe = pipe if pipe is not None else client.pipeline(transaction=True)
        for relation_key in sorted(relation_keys):
            _, relation_name, other_model, _ = parse_relation_key(relation_key, keys)
            foreign_name = foreign_relation_name(relation_name)
            for other_id in await client.smembers(relation_key):
                own_pipe.srem(keys.relation(other_model, foreign_name, model.model_name, other_id),
                              model.id)
            own_pipe.delete(relation_key)
        own_pipe.delete(registry_key)

        logger.debug(f"Unlinking {len(relation_keys)} relation key(s) of {model.model_name}:{model.id}")
        if pipe is None:
            await own_pipe.execute()

    async def belongs_to(self, other: "NohmModel", name: str = "default") -> bool:
        """Check if a committed relation to ``other`` exists."""
        model = self._model
        if model.id is None or other.id is None:
            return False
        key = model.keys.relation(model.model_name, name, other.model_name, model.id)
        return bool(await model.client.sismember(key, other.id))

    async def get_all(self, other_model_name: str, name: str = "default") -> list[str]:
        """Ids of ``other_model_name`` instances related under ``name``."""
        model = self._model
        if model.id is None:
            return []
        key = model.keys.relation(model.model_name, name, other_model_name, model.id)
        return sorted(await model.client.smembers(key))

    async def num_links(self, other_model_name: str, name: str = "default") -> int:
        """Number of ``other_model_name`` instances related under ``name``."""
        model = self._model
        if model.id is None:
            return 0
        key = model.keys.relation(model.model_name, name, other_model_name, model.id)
        return await model.client.scard(key)
