"""Key layout, persistence, indexes, relations and retrieval."""

from .ids import BUILTIN_GENERATORS, IdGenerator, generate_id
from .indexes import SecondaryIndexManager
from .keys import DELIMITER, KeySpace, foreign_relation_name, parse_relation_key
from .meta import META_VERSION_FIELD, compute_version, write_meta
from .persistence import PersistenceCoordinator
from .relations import LinkCallback, RelationChange, RelationManager
from .retrieval import Finder, Sorter, find_and_load, load_many

__all__ = [
    "BUILTIN_GENERATORS",
    "DELIMITER",
    "META_VERSION_FIELD",
    "Finder",
    "IdGenerator",
    "KeySpace",
    "LinkCallback",
    "PersistenceCoordinator",
    "RelationChange",
    "RelationManager",
    "SecondaryIndexManager",
    "Sorter",
    "compute_version",
    "find_and_load",
    "foreign_relation_name",
    "generate_id",
    "load_many",
    "parse_relation_key",
    "write_meta",
]
