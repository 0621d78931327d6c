"""Redis key layout.

Every key is ``<prefix>:<namespace>:...`` with ``:`` as the delimiter:

```
P:hash:M:I                      hash of property fields
P:idsets:M                      set of live ids
P:uniques:M:K:<value>           unique value -> owning id
P:index:M:K:<value>             set of ids with that value
P:scoredindex:M:K               sorted set of ids scored by value
P:relations:M:R:Other:I         set of related ids
P:relationKeys:M:I              set of relation keys of an instance
P:meta:{version|idGenerator|properties}:M
P:channel:M:<action>            pub/sub topic
P:ids:M                         counter of the increment id generator
```
"""

from dataclasses import dataclass

DELIMITER = ":"


@dataclass(frozen=True)
class KeySpace:
    """Builds every key for one prefix."""

    prefix: str

    def _key(self, *parts: object) -> str:
        return DELIMITER.join([self.prefix, *(str(part) for part in parts)])

    def hash(self, model_name: str, record_id: str) -> str:
        return self._key("hash", model_name, record_id)

    def hash_pattern(self, model_name: str) -> str:
        """SORT BY pattern resolving ids to hash keys."""
        return self._key("hash", model_name, "*")

    def idset(self, model_name: str) -> str:
        return self._key("idsets", model_name)

    def unique(self, model_name: str, key: str, value: str) -> str:
        return self._key("uniques", model_name, key, value)

    def index(self, model_name: str, key: str, value: str) -> str:
        return self._key("index", model_name, key, value)

    def scored_index(self, model_name: str, key: str) -> str:
        return self._key("scoredindex", model_name, key)

    def relation(self, model_name: str, relation_name: str, other_model: str,
                 record_id: str) -> str:
        return self._key("relations", model_name, relation_name, other_model, record_id)

    def relations_prefix(self) -> str:
        return self._key("relations") + DELIMITER

    def relation_keys(self, model_name: str, record_id: str) -> str:
        return self._key("relationKeys", model_name, record_id)

    def meta(self, kind: str, model_name: str) -> str:
        return self._key("meta", kind, model_name)

    def channel(self, model_name: str, action: str) -> str:
        return self._key("channel", model_name, action)

    def channel_pattern(self) -> str:
        return self._key("channel", "*")

    def increment(self, model_name: str) -> str:
        return self._key("ids", model_name)

    def all_keys(self) -> str:
        """Pattern matching every key under the prefix."""
        return self._key("*")


def parse_relation_key(key: str, keys: KeySpace) -> tuple[str, str, str, str]:
    """
    Split a relation key into its parts.

    Args:
        key: A key built by KeySpace.relation()
        keys: The KeySpace it was built with

    Returns:
        Tuple of (model_name, relation_name, other_model, record_id)

    Raises:
        ValueError: If the key does not have the relation layout
    """
    prefix = keys.relations_prefix()
    if not key.startswith(prefix):
        raise ValueError(f"Malformed relation key found in the database: {key}")
    parts = key[len(prefix):].split(DELIMITER)
    if len(parts) != 4 or not all(parts):
        raise ValueError(f"Malformed relation key found in the database: {key}")
    model_name, relation_name, other_model, record_id = parts
    return model_name, relation_name, other_model, record_id


def foreign_relation_name(name: str) -> str:
    """Name of the reverse side of a relation."""
    if name.endswith("Foreign"):
        return name[: -len("Foreign")]
    return f"{name}Foreign"
