"""Registry: the context every model class is bound to.

A Registry owns the redis client, the key layout, the validator registry,
the event dispatcher and the registered model classes. Two registries on
different prefixes can share one client without seeing each other's data.
"""

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis

from nohm.events.dispatcher import CallbackObserver, EventCallback, EventDispatcher
from nohm.events.protocols import ModelEvent, ModelObserver
from nohm.exceptions import ConfigurationError, ErrorContext, ModelDefinitionError
from nohm.model import RESERVED_NAMES, NohmModel
from nohm.models.config import NohmSettings
from nohm.models.definitions import parse_definitions
from nohm.storage.ids import IdGenerator, check_generator
from nohm.storage.keys import DELIMITER, KeySpace
from nohm.storage.meta import compute_version, write_meta
from nohm.validation.validators import ValidatorFunc, ValidatorRegistry

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=NohmModel)

PURGE_BATCH_SIZE = 500


class Registry:
    """
    Binds model classes to a store and key prefix.

    Example:
        ```python
        registry = Registry(redis.asyncio.Redis(decode_responses=True),
                            NohmSettings(prefix="myapp"))

        @registry.register
        class User(NohmModel):
            definitions = {"name": {"type": "string", "unique": True}}

        Role = registry.model("Role", {"title": {"type": "string"}})
        ```
    """

    def __init__(self, client: Redis, settings: NohmSettings | None = None):
        """
        Initialize the registry.

        Args:
            client: redis.asyncio client created with decode_responses=True
            settings: Prefix, publishing and id generator defaults
        """
        self.client = client
        self.settings = settings or NohmSettings()
        self.keys = KeySpace(self.settings.prefix)
        self.validators = ValidatorRegistry()
        self.events = EventDispatcher(client, self.keys)
        self._models: dict[str, type[NohmModel]] = {}
        self._meta_versions: dict[str, str] = {}
        self._meta_written: set[str] = set()

    @classmethod
    def from_settings(cls, settings: NohmSettings | None = None) -> "Registry":
        """Create a registry with a new client connected to ``settings.redis_url``."""
        settings = settings or NohmSettings.from_env()
        client = Redis.from_url(settings.redis_url, decode_responses=True)
        logger.debug(f"Created redis client for {settings.redis_url}")
        return cls(client, settings)

    # =================================================================
    # Model classes
    # =================================================================

    def register(self, model_cls: type[M]) -> type[M]:
        """
        Validate and bind a model class (usable as a class decorator).

        Raises:
            ModelDefinitionError: If a definition is invalid or names an
                unknown validator
            ConfigurationError: If the model name or id generator is invalid
        """
        name = model_cls.__dict__.get("model_name") or model_cls.__name__
        if DELIMITER in name:
            raise ConfigurationError(
                user_message=f"Model name '{name}' cannot contain '{DELIMITER}'",
            )

        definitions = {}
        for key, raw in model_cls.definitions.items():
            if DELIMITER in key:
                raise ModelDefinitionError(name, key, f"property names cannot contain '{DELIMITER}'")
            try:
                definitions.update(parse_definitions({key: raw}))
            except PydanticValidationError as e:
                messages = "; ".join(err.get("msg", "invalid") for err in e.errors())
                raise ModelDefinitionError(name, key, messages) from e

        for key, definition in definitions.items():
            for spec in definition.validations:
                if not spec.is_custom and spec.name not in self.validators:
                    raise ModelDefinitionError(name, key, f"unknown validator '{spec.name}'")

        for attribute in sorted(RESERVED_NAMES.intersection(model_cls.__dict__)):
            logger.warning(f"Model {name} overrides reserved attribute '{attribute}'")

        if name in self._models and self._models[name] is not model_cls:
            logger.warning(f"Model {name} is being replaced")

        model_cls.model_name = name
        model_cls.definitions = definitions
        model_cls.registry = self
        check_generator(name, model_cls.get_id_generator())

        self._models[name] = model_cls
        self._meta_versions.pop(name, None)
        self._meta_written.discard(name)
        logger.info(f"Registered model {name} with {len(definitions)} properties")
        return model_cls

    def model(
        self,
        name: str,
        properties: dict[str, Any],
        id_generator: str | IdGenerator | None = None,
        publish: bool | None = None,
    ) -> type[NohmModel]:
        """
        Build and register a model class.

        Args:
            name: Model name
            properties: Property definitions
            id_generator: "default", "increment" or a callable
            publish: Publish this model's events (default: registry setting)

        Returns:
            The registered class
        """
        namespace: dict[str, Any] = {
            "model_name": name,
            "definitions": properties,
            "publish": publish,
        }
        if id_generator is not None:
            namespace["id_generator"] = (
                staticmethod(id_generator) if callable(id_generator) else id_generator
            )
        return self.register(type(name, (NohmModel,), namespace))

    def get_model(self, name: str) -> type[NohmModel]:
        """
        Look up a registered model class.

        Raises:
            ConfigurationError: If no model of that name is registered
        """
        try:
            return self._models[name]
        except KeyError:
            raise ConfigurationError(
                user_message=f"Model '{name}' not found",
                recovery_hint=f"Registered models: {', '.join(sorted(self._models)) or 'none'}",
            ) from None

    def get_models(self) -> dict[str, type[NohmModel]]:
        return dict(self._models)

    async def factory(self, name: str, record_id: Any = None) -> NohmModel:
        """
        Create an instance of a registered model, loading it if an id is given.

        Raises:
            ConfigurationError: If the model is unknown
            NotFoundError: If the id does not exist
        """
        instance = self.get_model(name)()
        if record_id is not None:
            await instance.load(record_id)
        return instance

    def get_validators(self) -> Mapping[str, ValidatorFunc]:
        """Read-only table of every validator available to definitions."""
        return self.validators.table()

    # =================================================================
    # Meta keys
    # =================================================================

    def meta_version(self, model_cls: type[NohmModel]) -> str:
        name = model_cls.model_name
        if name not in self._meta_versions:
            self._meta_versions[name] = compute_version(model_cls)
        return self._meta_versions[name]

    async def ensure_meta(self, model_cls: type[NohmModel]) -> None:
        """Write the meta keys of a model once per registry."""
        if model_cls.model_name in self._meta_written:
            return
        await write_meta(self.client, self.keys, model_cls)
        self._meta_written.add(model_cls.model_name)

    # =================================================================
    # Prefix and database
    # =================================================================

    def set_prefix(self, prefix: str) -> None:
        """Move the registry (and every bound model) to another key prefix."""
        self.settings = self.settings.model_copy(update={"prefix": prefix.rstrip(DELIMITER)})
        self.keys = KeySpace(self.settings.prefix)
        self.events.keys = self.keys
        self._meta_written.clear()
        logger.info(f"Key prefix set to '{self.settings.prefix}'")

    async def purge_db(self) -> int:
        """
        Delete every key under the prefix.

        Returns:
            Number of deleted keys
        """
        deleted = 0
        with ErrorContext(f"purge keys under '{self.settings.prefix}'", logger):
            batch: list[str] = []
            async for key in self.client.scan_iter(match=self.keys.all_keys(), count=PURGE_BATCH_SIZE):
                batch.append(key)
                if len(batch) >= PURGE_BATCH_SIZE:
                    deleted += await self.client.delete(*batch)
                    batch = []
            if batch:
                deleted += await self.client.delete(*batch)
        self._meta_written.clear()
        logger.info(f"Purged {deleted} key(s) under '{self.settings.prefix}'")
        return deleted

    # =================================================================
    # Events
    # =================================================================

    def subscribe_event(self, action: ModelEvent | str, callback: EventCallback) -> CallbackObserver:
        """Call ``callback(payload)`` for every event of an action."""
        return self.events.subscribe(ModelEvent(action), callback)

    def subscribe_event_once(self, action: ModelEvent | str, callback: EventCallback) -> CallbackObserver:
        """Call ``callback(payload)`` for the next event of an action only."""
        return self.events.subscribe(ModelEvent(action), callback, once=True)

    def unsubscribe_event(self, action: ModelEvent | str, callback: EventCallback | None = None) -> int:
        """Remove one callback (or all callbacks) of an action."""
        return self.events.unsubscribe(ModelEvent(action), callback)

    def register_observer(self, observer: ModelObserver) -> None:
        self.events.observers.register(observer)

    def unregister_observer(self, observer: ModelObserver) -> None:
        self.events.observers.unregister(observer)
