"""Base class of every model.

Subclasses declare ``definitions`` (and optionally ``model_name``,
``id_generator`` and ``publish``) and are bound to a Registry with
``Registry.register``:

```python
@registry.register
class User(NohmModel):
    model_name = "User"
    definitions = {
        "name": {"type": "string", "unique": True, "validations": ["notEmpty"]},
        "visits": {"type": "integer", "index": True},
    }

user = User()
user.property("name", "Alice")
await user.save()
```
"""

import inspect
import logging
from typing import TYPE_CHECKING, Any, ClassVar

from redis.asyncio import Redis

from nohm.events.protocols import ModelEvent
from nohm.exceptions import ConfigurationError
from nohm.models.definitions import PropertyDefinition
from nohm.models.options import LinkOptions, SaveOptions, SortOptions
from nohm.properties.store import PropertyDiff, PropertyStore
from nohm.storage.ids import IdGenerator
from nohm.storage.indexes import SecondaryIndexManager
from nohm.storage.keys import KeySpace
from nohm.storage.persistence import PersistenceCoordinator
from nohm.storage.relations import LinkCallback, RelationChange, RelationManager
from nohm.storage.retrieval import Finder, Sorter, find_and_load, load_many
from nohm.validation.uniques import UniqueIndexManager
from nohm.validation.validator import Validator

if TYPE_CHECKING:
    from nohm.registry import Registry

logger = logging.getLogger(__name__)

# Public API of NohmModel; subclasses overriding one of these get a warning
RESERVED_NAMES = frozenset({
    "all_properties",
    "belongs_to",
    "client",
    "errors",
    "exists",
    "find",
    "find_and_load",
    "fire_event",
    "get_all",
    "get_definitions",
    "get_id_generator",
    "id",
    "is_dirty",
    "keys",
    "link",
    "load",
    "load_by_id",
    "load_many",
    "num_links",
    "properties",
    "property",
    "property_diff",
    "property_reset",
    "relation_changes",
    "remove",
    "remove_by_id",
    "save",
    "sort",
    "unlink",
    "unlink_all",
    "validate",
})

_MISSING = object()


class NohmModel:
    """
    A record stored as one Redis hash, with its indexes and relations.

    Class Attributes:
        model_name: Name used in every key of the model (defaults to the class name)
        definitions: Property name to PropertyDefinition (or dict)
        id_generator: "default", "increment" or a callable; None uses the
            registry's setting
        publish: Publish events of this model; None uses the registry's setting
        registry: The Registry the class is bound to (set by register())

    Instance Attributes:
        properties: PropertyStore holding values, persisted values and dirty flags
        errors: Property name to failed rule names of the last validation
        in_db: The instance has been written to (or loaded from) the store
        is_loaded: The instance reflects a stored record
    """

    model_name: ClassVar[str] = ""
    definitions: ClassVar[dict[str, PropertyDefinition]] = {}
    id_generator: ClassVar[str | IdGenerator | None] = None
    publish: ClassVar[bool | None] = None
    registry: ClassVar["Registry | None"] = None

    def __init__(self):
        if type(self).registry is None:
            raise ConfigurationError(
                user_message=f"Model class {type(self).__name__} is not registered",
                recovery_hint="Decorate the class with @registry.register or use registry.model()",
            )
        self.properties = PropertyStore(self.model_name, self.definitions)
        self.errors: dict[str, list[str]] = {key: [] for key in self.definitions}
        self.in_db = False
        self.is_loaded = False
        self._id: str | None = None
        self._id_changed = False

        self._uniques = UniqueIndexManager(self)
        self._validator = Validator(self, self._uniques)
        self._indexes = SecondaryIndexManager(self, self._uniques)
        self._relations = RelationManager(self)
        self._persistence = PersistenceCoordinator(
            self, self._validator, self._uniques, self._indexes, self._relations
        )

    def __repr__(self) -> str:
        return f"<{self.model_name} id={self._id!r}>"

    # =================================================================
    # Identity and state
    # =================================================================

    @property
    def id(self) -> str | None:
        return self._id

    @id.setter
    def id(self, value: Any) -> None:
        self._id = None if value is None else str(value)
        self._id_changed = True

    def assign_id(self, value: str | None) -> None:
        """Set the id as read from (or written to) the store."""
        self._id = value
        self._id_changed = False

    def settle_id(self) -> None:
        self._id_changed = False

    @property
    def client(self) -> Redis:
        return self.registry.client

    @property
    def keys(self) -> KeySpace:
        return self.registry.keys

    @property
    def relation_changes(self) -> list[RelationChange]:
        """Pending link/unlink changes, committed on the next save()."""
        return list(self._relations.changes)

    @property
    def is_dirty(self) -> bool:
        """True after an explicit id change, with pending relation changes or updated properties."""
        return bool(self._id_changed or self._relations.changes or self.properties.updated_keys())

    @classmethod
    def get_id_generator(cls) -> str | IdGenerator:
        """The id generator of the class, falling back to the registry setting."""
        generator = inspect.getattr_static(cls, "id_generator", None)
        if isinstance(generator, staticmethod):
            generator = generator.__func__
        if generator is None:
            if cls.registry is None:
                return "default"
            return cls.registry.settings.id_generator
        return generator

    @classmethod
    def get_definitions(cls) -> dict[str, PropertyDefinition]:
        """Copy of the property definitions."""
        return dict(cls.definitions)

    # =================================================================
    # Properties
    # =================================================================

    def all_properties(self) -> dict[str, Any]:
        """Every property value plus ``id``."""
        return {**self.properties.snapshot(), "id": self._id}

    def property_diff(self, key: str | None = None) -> list[PropertyDiff]:
        return self.properties.diff(key)

    def property_reset(self, key: str | None = None) -> None:
        self.properties.revert(key)

    # =================================================================
    # Persistence
    # =================================================================

    async def validate(self, key: str | None = None) -> bool:
        """
        Validate one or all properties without claiming unique values.

        Failures are available in ``errors`` afterwards.
        """
        return await self._validator.validate(key)

    async def save(self, options: SaveOptions | None = None, **kwargs: Any) -> None:
        """
        Create or update the instance and commit pending relation changes.

        Args:
            options: SaveOptions; alternatively pass its fields as keywords

        Raises:
            ValidationError: If validation failed
            LinkError: If relation changes failed
        """
        if options is None:
            options = SaveOptions(**kwargs)
        await self._persistence.save(options)

    async def load(self, record_id: Any) -> dict[str, Any]:
        """
        Load a stored record into this instance.

        Returns:
            all_properties() of the loaded record

        Raises:
            NotFoundError: If no record has that id
        """
        return await self._persistence.load(record_id)

    async def remove(self, silent: bool = False) -> None:
        """
        Remove the instance, its index entries and relations.

        Raises:
            NotFoundError: If the instance has no id
        """
        await self._persistence.remove(silent)

    async def fire_event(self, event: ModelEvent, **details: Any) -> None:
        """Deliver an event of this instance to observers (and the channel if publishing)."""
        publish = self.publish if self.publish is not None else self.registry.settings.publish
        await self.registry.events.fire(event, self, publish, **details)

    # =================================================================
    # Relations
    # =================================================================

    def link(
        self,
        other: "NohmModel",
        name_or_options: str | LinkOptions | dict[str, Any] | LinkCallback | None = None,
        callback: LinkCallback | None = None,
    ) -> None:
        """
        Record a relation to ``other``; written on the next save().

        Args:
            other: Instance to link
            name_or_options: Relation name (default "default"), LinkOptions or the callback
            callback: Called as (action, model_name, relation_name, other) after the write
        """
        self._relations.record(ModelEvent.LINK, other, name_or_options, callback)

    def unlink(
        self,
        other: "NohmModel",
        name_or_options: str | LinkOptions | dict[str, Any] | LinkCallback | None = None,
        callback: LinkCallback | None = None,
    ) -> None:
        """Record the removal of a relation to ``other``; written on the next save()."""
        self._relations.record(ModelEvent.UNLINK, other, name_or_options, callback)

    async def unlink_all(self) -> None:
        """Remove every relation of the instance right away."""
        await self._relations.unlink_all()

    async def belongs_to(self, other: "NohmModel", name: str = "default") -> bool:
        return await self._relations.belongs_to(other, name)

    async def get_all(self, other_model_name: str, name: str = "default") -> list[str]:
        return await self._relations.get_all(other_model_name, name)

    async def num_links(self, other_model_name: str, name: str = "default") -> int:
        return await self._relations.num_links(other_model_name, name)

    # =================================================================
    # Class-level helpers
    # =================================================================

    @classmethod
    async def load_by_id(cls, record_id: Any) -> "NohmModel":
        """
        Create an instance and load a record into it.

        Raises:
            NotFoundError: If no record has that id
        """
        instance = cls()
        await instance.load(record_id)
        return instance

    @classmethod
    async def load_many(cls, ids: list[Any]) -> list["NohmModel"]:
        """Load the given ids, skipping those that don't exist."""
        return await load_many(cls, ids)

    @classmethod
    async def remove_by_id(cls, record_id: Any, silent: bool = False) -> None:
        instance = cls()
        instance.assign_id(str(record_id))
        await instance.remove(silent)

    @classmethod
    async def exists(cls, record_id: Any) -> bool:
        """Check if a record with the id is stored."""
        return bool(await cls.registry.client.sismember(cls.registry.keys.idset(cls.model_name),
                                                        str(record_id)))

    @classmethod
    async def find(cls, searches: dict[str, Any] | None = None) -> list[str]:
        """
        Find ids through unique keys and indexes.

        Example:
            ```python
            await User.find({"name": "alice"})
            await User.find({"visits": {"min": 10, "max": "+inf", "limit": 5}})
            ```
        """
        return await Finder(cls).find(searches)

    @classmethod
    async def find_and_load(cls, searches: dict[str, Any] | None = None) -> list["NohmModel"]:
        return await find_and_load(cls, searches)

    @classmethod
    async def sort(cls, options: SortOptions | dict[str, Any] | str,
                   ids: list[Any] | None = None) -> list[str]:
        """Sort every id (or the given ids) by a property."""
        return await Sorter(cls).sort(options, ids)

    # Defined last: the name shadows the builtin inside the class body
    def property(self, key: str | dict[str, Any], value: Any = _MISSING) -> Any:
        """
        Read or write properties.

        - ``property("name")`` returns the value
        - ``property("name", value)`` casts and stores the value, returning it
        - ``property({"name": value, ...})`` stores several values

        Raises:
            ConfigurationError: If a key is not a defined property
        """
        if isinstance(key, dict):
            for name, new_value in key.items():
                self.properties.set(name, new_value)
            return self.all_properties()
        if value is _MISSING:
            return self.properties.get(key)
        self.properties.set(key, value)
        return self.properties.get(key)
