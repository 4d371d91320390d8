"""MongoDB index declarations and idempotent creation.

Each repository declares its indexes as IndexSpec values; ensure_indexes()
creates them at startup and repairs conflicts left by older deployments.
"""

from dataclasses import dataclass, field
from logging import getLogger

from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import OperationFailure

logger = getLogger(__name__)

# Server error codes for "index exists with different options/name"
_INDEX_CONFLICT_CODES = {85, 86}


@dataclass(frozen=True)
class IndexSpec:
    name: str
    keys: list[tuple[str, int]]
    options: dict = field(default_factory=dict)


def ensure_indexes(collection: Collection, specs: list[IndexSpec]) -> bool:
    """Create every declared index, replacing conflicting ones.

    A conflict is an existing index with the same name but other keys or
    options, or the same keys under another name. Returns False if any index
    could not be created.
    """
    ok = True
    for spec in specs:
        try:
            collection.create_index(spec.keys, name=spec.name, **spec.options)
        except OperationFailure as e:
            if e.code not in _INDEX_CONFLICT_CODES:
                raise
            ok = _replace_conflicting(collection, spec) and ok
    return ok


def _replace_conflicting(collection: Collection, spec: IndexSpec) -> bool:
    wanted = dict(spec.keys)
    for name, info in collection.index_information().items():
        if name == '_id_':
            continue
        if name == spec.name or dict(info.get('key', [])) == wanted:
            logger.warning("Dropping conflicting index", extra={"index": name, "collection": collection.name})
            collection.drop_index(name)
            collection.create_index(spec.keys, name=spec.name, **spec.options)
            logger.info("Recreated index", extra={"index": spec.name, "collection": collection.name})
            return True

    logger.error("Failed to resolve index conflict", extra={"index": spec.name, "collection": collection.name})
    return False


def ensure_all_indexes(db: Database) -> bool:
    """Ensure indexes for all collections. Called at app startup."""
    from adapter.mongodb.user_repository import MongoUserRepository

    return MongoUserRepository(db).ensure_indexes()
