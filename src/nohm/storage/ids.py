"""Id generators.

A model's ``id_generator`` is either the name of a built-in generator or a
callable receiving the instance being created and returning the id (or an
awaitable resolving to it).

- ``default``: a random UUID4
- ``increment``: INCR on ``P:ids:<model>``, giving 1, 2, 3, ...
"""

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from redis.asyncio import Redis

from nohm.exceptions import ConfigurationError
from nohm.storage.keys import DELIMITER

if TYPE_CHECKING:
    from nohm.model import NohmModel

logger = logging.getLogger(__name__)

IdGenerator = Callable[["NohmModel"], Any | Awaitable[Any]]


async def default_generator(client: Redis, counter_key: str) -> str:
    return str(uuid4())


async def increment_generator(client: Redis, counter_key: str) -> str:
    return str(await client.incr(counter_key))


BUILTIN_GENERATORS: dict[str, Callable[[Redis, str], Awaitable[str]]] = {
    "default": default_generator,
    "increment": increment_generator,
}


def generator_name(generator: str | IdGenerator) -> str:
    """Printable name of a generator (stored in the meta keys)."""
    if isinstance(generator, str):
        return generator
    return getattr(generator, "__name__", type(generator).__name__)


def check_generator(model_name: str, generator: str | IdGenerator) -> None:
    """
    Reject unknown generator names at registration time.

    Raises:
        ConfigurationError: If the generator is neither a known name nor callable
    """
    if callable(generator) or generator in BUILTIN_GENERATORS:
        return
    raise ConfigurationError(
        user_message=f"Unknown id generator {generator!r} for model {model_name}",
        recovery_hint=f"Use one of {sorted(BUILTIN_GENERATORS)} or a callable",
    )


async def generate_id(model: "NohmModel") -> str:
    """
    Generate the id of a new instance.

    Raises:
        ConfigurationError: If the generated id contains the key delimiter
    """
    generator = model.get_id_generator()
    if callable(generator):
        result = generator(model)
        if inspect.isawaitable(result):
            result = await result
    else:
        builtin = BUILTIN_GENERATORS[generator]
        result = await builtin(model.client, model.keys.increment(model.model_name))

    record_id = str(result)
    if not record_id or DELIMITER in record_id:
        raise ConfigurationError(
            user_message=f"Generated id {record_id!r} for {model.model_name} is invalid",
            technical_message=(
                f"Id generator {generator_name(generator)} returned {record_id!r}; "
                f"ids must be non-empty and cannot contain '{DELIMITER}'"
            ),
            recovery_hint="Change the id generator of the model",
        )
    logger.debug(f"Generated id {record_id} for {model.model_name}")
    return record_id
