"""Model metadata stored next to the data.

Three keys per model describe the schema that wrote the data:
``P:meta:version:M`` (sha1 of the definitions, model name and id generator),
``P:meta:idGenerator:M`` and ``P:meta:properties:M`` (JSON definitions).
The version is also stamped into every hash as ``__meta_version``.
"""

import hashlib
import json
import logging
from typing import TYPE_CHECKING

from redis.asyncio import Redis

from nohm.storage.ids import generator_name
from nohm.storage.keys import KeySpace

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)

META_VERSION_FIELD = "__meta_version"


def definitions_json(model_cls: type["NohmModel"]) -> str:
    """Definitions of a model as JSON (callables by name)."""
    return json.dumps(
        {key: definition.model_dump(mode="json") for key, definition in model_cls.definitions.items()}
    )


def compute_version(model_cls: type["NohmModel"]) -> str:
    """Schema version hash of a model class."""
    digest = hashlib.sha1()
    digest.update(definitions_json(model_cls).encode())
    digest.update(json.dumps(model_cls.model_name).encode())
    digest.update(generator_name(model_cls.get_id_generator()).encode())
    return digest.hexdigest()


async def write_meta(client: Redis, keys: KeySpace, model_cls: type["NohmModel"]) -> None:
    """Store the meta keys of a model."""
    name = model_cls.model_name
    await client.mset({
        keys.meta("version", name): compute_version(model_cls),
        keys.meta("idGenerator", name): generator_name(model_cls.get_id_generator()),
        keys.meta("properties", name): definitions_json(model_cls),
    })
    logger.debug(f"Wrote meta keys for {name}")
