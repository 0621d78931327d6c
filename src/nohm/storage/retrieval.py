"""Finding and sorting ids through the indexes.

Searches are conjunctive: every term narrows the result.

- unique property: GET on the unique key, answers on its own
- exact-match index: SINTER of the value sets
- range index: ZRANGEBYSCORE / ZREVRANGEBYSCORE per term
"""

import logging
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from nohm.exceptions import ConfigurationError, InvalidSearchError, NotFoundError, collect_errors
from nohm.models.definitions import NUMERIC_KINDS, PropertyDefinition
from nohm.models.options import SearchOptions, SortOptions
from nohm.properties.casting import serialize_value

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)

DEFAULT_SORT_COUNT = 100


def _range_options(key: str, model_name: str, value: Any) -> SearchOptions:
    if isinstance(value, SearchOptions):
        return value
    if isinstance(value, dict):
        return SearchOptions.model_validate(value)
    if isinstance(value, (bool, list, tuple, set)):
        raise InvalidSearchError(
            model_name, key, f"Invalid search parameters for '{key}': {value!r}"
        )
    # a plain value is the closed range [value, value]
    return SearchOptions(min=value, max=value)


class Finder:
    """Translates a search mapping into index lookups for one model class."""

    def __init__(self, model_cls: type["NohmModel"]):
        self._model_cls = model_cls
        self._client = model_cls.registry.client
        self._keys = model_cls.registry.keys

    @property
    def _name(self) -> str:
        return self._model_cls.model_name

    async def find(self, searches: dict[str, Any] | None = None) -> list[str]:
        """
        Find ids matching every search term.

        Args:
            searches: Property name to value (exact/unique) or range options
                (dict or SearchOptions) for numeric indexes. Empty or None
                returns every id.

        Returns:
            Matching ids

        Raises:
            InvalidSearchError: If a term targets a non-indexed property or
                has an invalid value
        """
        if not searches:
            return sorted(await self._client.smembers(self._keys.idset(self._name)))

        set_keys: list[str] = []
        range_terms: list[tuple[str, SearchOptions]] = []
        for key, value in searches.items():
            definition = self._definition(key)
            if definition.unique:
                return await self._find_unique(key, definition, value)
            if definition.numeric_index:
                range_terms.append((key, _range_options(key, self._name, value)))
            else:
                if isinstance(value, (dict, SearchOptions, list, tuple, set)):
                    raise InvalidSearchError(
                        self._name, key, f"Invalid search parameters for '{key}': {value!r}"
                    )
                set_keys.append(self._keys.index(self._name, key, serialize_value(value)))

        set_ids = sorted(await self._client.sinter(set_keys)) if set_keys else None

        range_ids: list[str] | None = None
        for key, options in range_terms:
            ids = await self._find_range(key, options)
            if range_ids is None:
                range_ids = ids
            else:
                found = set(ids)
                range_ids = [record_id for record_id in range_ids if record_id in found]

        if range_ids is None:
            result = set_ids or []
        elif set_ids is None:
            result = range_ids
        else:
            found = set(range_ids)
            result = [record_id for record_id in set_ids if record_id in found]

        logger.debug(f"find({self._name}, {list(searches)}) -> {len(result)} id(s)")
        return result

    def _definition(self, key: str) -> PropertyDefinition:
        definition = self._model_cls.definitions.get(key)
        if definition is None or not (definition.unique or definition.index):
            raise InvalidSearchError(
                self._name, key,
                f"Trying to search for non-indexed and non-unique property '{key}' is not supported.",
            )
        return definition

    async def _find_unique(self, key: str, definition: PropertyDefinition, value: Any) -> list[str]:
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise InvalidSearchError(
                self._name, key, f"Invalid search parameters for '{key}': {value!r}"
            )
        text = serialize_value(value)
        if definition.is_string:
            text = text.lower()
        owner = await self._client.get(self._keys.unique(self._name, key, text))
        return [owner] if owner else []

    async def _find_range(self, key: str, options: SearchOptions) -> list[str]:
        scored_key = self._keys.scored_index(self._name, key)
        first, second = options.bounds
        limit: dict[str, int] = {}
        if options.limit:
            limit = {"start": options.offset, "num": options.limit}
        if options.descending:
            return await self._client.zrevrangebyscore(scored_key, first, second, **limit)
        return await self._client.zrangebyscore(scored_key, first, second, **limit)


class Sorter:
    """Sorts ids of one model class by a property."""

    def __init__(self, model_cls: type["NohmModel"]):
        self._model_cls = model_cls
        self._client = model_cls.registry.client
        self._keys = model_cls.registry.keys

    async def sort(self, options: SortOptions | dict[str, Any] | str,
                   ids: list[Any] | None = None) -> list[str]:
        """
        Sort all ids, or the given ids, by a property.

        Args:
            options: SortOptions, a dict of its fields, or just the field name
            ids: Restrict the sort to these ids (default: every id)

        Returns:
            Ids in sort order, windowed by ``options.limit``

        Raises:
            ConfigurationError: If the field is not a property of the model
        """
        if isinstance(options, str):
            options = SortOptions(field=options)
        elif isinstance(options, dict):
            options = SortOptions.model_validate(options)

        name = self._model_cls.model_name
        definition = self._model_cls.definitions.get(options.field)
        if definition is None:
            raise ConfigurationError(
                user_message=f"Invalid sort field '{options.field}' for model {name}",
                recovery_hint=f"Sort by one of: {', '.join(self._model_cls.definitions)}",
            )
        if ids is not None and len(ids) == 0:
            return []

        offset = options.limit[0] if options.limit else 0
        count = options.limit[1] if len(options.limit) > 1 else DEFAULT_SORT_COUNT
        descending = options.direction == "DESC"
        temp_key = None
        if ids:
            temp_key = f"{self._keys.scored_index(name, options.field)}:tmp_sort:{uuid4()}"
            ids = [str(record_id) for record_id in ids]

        try:
            if definition.numeric_index:
                source = self._keys.scored_index(name, options.field)
                if temp_key:
                    await self._client.zadd(temp_key, {record_id: 0 for record_id in ids})
                    await self._client.zinterstore(temp_key, [temp_key, source])
                    source = temp_key
                stop = offset + count - 1
                if descending:
                    return await self._client.zrevrange(source, offset, stop)
                return await self._client.zrange(source, offset, stop)

            source = self._keys.idset(name)
            if temp_key:
                await self._client.sadd(temp_key, *ids)
                await self._client.sinterstore(temp_key, [temp_key, source])
                source = temp_key
            alpha = options.alpha if options.alpha is not None else definition.kind not in NUMERIC_KINDS
            return await self._client.sort(
                source,
                by=f"{self._keys.hash_pattern(name)}->{options.field}",
                start=offset,
                num=count,
                desc=descending,
                alpha=alpha,
            )
        finally:
            if temp_key:
                await self._client.delete(temp_key)


async def load_many(model_cls: type["NohmModel"], ids: list[Any]) -> list["NohmModel"]:
    """
    Load instances by id, skipping ids that do not exist.

    Returns:
        Loaded instances in the order of ``ids``
    """
    instances = []
    collector = collect_errors(f"load {model_cls.model_name} instances")
    for record_id in ids:
        with collector.try_operation(f"load {record_id}", NotFoundError):
            instance = model_cls()
            await instance.load(record_id)
            instances.append(instance)
    if collector.has_errors:
        logger.debug(collector.get_summary())
    return instances


async def find_and_load(model_cls: type["NohmModel"],
                        searches: dict[str, Any] | None = None) -> list["NohmModel"]:
    """
    Find and load every match.

    Raises:
        NotFoundError: If nothing matched
    """
    ids = await Finder(model_cls).find(searches)
    if not ids:
        raise NotFoundError(model_cls.model_name, None)
    return await load_many(model_cls, ids)
