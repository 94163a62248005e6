# induction_engine/utils/cloud_database_mock.py
import asyncio
import copy
import json
import logging
from itertools import count
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)

SEED_PATH = Path(__file__).resolve().parents[1] / "data" / "mock_fleet.json"

_missing = object()


def _lookup(doc: Dict[str, Any], dotted: str) -> Any:
    value: Any = doc
    for part in dotted.split("."):
        if not isinstance(value, dict) or part not in value:
            return _missing
        value = value[part]
    return value


def _matches(doc: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    for key, expected in (query or {}).items():
        actual = _lookup(doc, key)
        if isinstance(expected, dict) and "$in" in expected:
            if actual is _missing or actual not in expected["$in"]:
                return False
        elif actual is _missing or actual != expected:
            return False
    return True


def _sort_spec(key_or_list: Union[str, Sequence[Tuple[str, int]]], direction: int = 1):
    if isinstance(key_or_list, str):
        return [(key_or_list, direction)]
    return list(key_or_list)


class _AsyncCursor:
    """Enough of motor's cursor for find().sort().limit().to_list()"""

    def __init__(self, items: Iterable[Dict[str, Any]]):
        self._items = [copy.deepcopy(d) for d in items]
        self._limit = 0

    def sort(self, key_or_list, direction: int = 1):
        # stable sorts applied last key first give a multi-key ordering
        for key, dirn in reversed(_sort_spec(key_or_list, direction)):
            present = [d for d in self._items if _lookup(d, key) is not _missing]
            absent = [d for d in self._items if _lookup(d, key) is _missing]
            present.sort(key=lambda d: _lookup(d, key), reverse=dirn < 0)
            # missing keys sort lowest, as in MongoDB
            self._items = absent + present if dirn > 0 else present + absent
        return self

    def limit(self, n: int):
        self._limit = n
        return self

    def _results(self) -> List[Dict[str, Any]]:
        return self._items[: self._limit] if self._limit else list(self._items)

    async def to_list(self, length: Optional[int] = None):
        await asyncio.sleep(0)
        results = self._results()
        return results[:length] if length else results

    def __aiter__(self):
        self._iter = iter(self._results())
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class _Result:
    def __init__(self, **fields):
        self.__dict__.update(fields)


class _MockCollection:
    def __init__(self, name: str, items: Iterable[Dict[str, Any]] = ()):
        self.name = name
        self._items: List[Dict[str, Any]] = []
        self._unique: List[Tuple[str, ...]] = []
        self._ids = count(1)
        for item in items:
            self._store(item)

    def _store(self, record: Dict[str, Any]) -> Any:
        doc = copy.deepcopy(record)
        doc.setdefault("_id", f"{self.name}-{next(self._ids)}")
        self._items.append(doc)
        return doc["_id"]

    def _check_unique(self, record: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None):
        for keys in self._unique:
            values = tuple(_lookup(record, k) for k in keys)
            for doc in self._items:
                if doc is ignore:
                    continue
                if tuple(_lookup(doc, k) for k in keys) == values:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.name} index: {'_'.join(keys)} dup key: {values}"
                    )

    def find(self, query: Optional[Dict[str, Any]] = None, projection: Optional[Dict[str, Any]] = None):
        return _AsyncCursor(d for d in self._items if _matches(d, query))

    async def find_one(self, query: Optional[Dict[str, Any]] = None, projection: Optional[Dict[str, Any]] = None):
        await asyncio.sleep(0)
        for doc in self._items:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, record: Dict[str, Any]):
        await asyncio.sleep(0)
        self._check_unique(record)
        return _Result(inserted_id=self._store(record), acknowledged=True)

    async def insert_many(self, records: List[Dict[str, Any]]):
        ids = []
        for record in records:
            result = await self.insert_one(record)
            ids.append(result.inserted_id)
        return _Result(inserted_ids=ids, acknowledged=True)

    async def replace_one(self, query: Dict[str, Any], replacement: Dict[str, Any], upsert: bool = False):
        await asyncio.sleep(0)
        for i, doc in enumerate(self._items):
            if _matches(doc, query):
                self._check_unique(replacement, ignore=doc)
                new_doc = copy.deepcopy(replacement)
                new_doc["_id"] = doc["_id"]
                self._items[i] = new_doc
                return _Result(matched_count=1, modified_count=1, upserted_id=None)
        if upsert:
            record = {k: v for k, v in query.items() if not isinstance(v, dict)}
            record.update(replacement)
            self._check_unique(record)
            return _Result(matched_count=0, modified_count=0, upserted_id=self._store(record))
        return _Result(matched_count=0, modified_count=0, upserted_id=None)

    async def delete_many(self, query: Dict[str, Any]):
        await asyncio.sleep(0)
        keep = [d for d in self._items if not _matches(d, query)]
        deleted = len(self._items) - len(keep)
        self._items = keep
        return _Result(deleted_count=deleted)

    async def count_documents(self, query: Dict[str, Any]):
        await asyncio.sleep(0)
        return sum(1 for d in self._items if _matches(d, query))

    async def create_index(self, keys, unique: bool = False, **kwargs):
        await asyncio.sleep(0)
        spec = _sort_spec(keys)
        if unique:
            self._unique.append(tuple(k for k, _ in spec))
        return "_".join(f"{k}_{d}" for k, d in spec)


class MockCloudDatabaseManager:
    """In-memory stand-in for the MongoDB manager.

    Serves the bundled mock fleet for local runs (DATABASE_BACKEND=memory)
    and gives tests a fresh, seedable database.
    """

    def __init__(self, seed: Optional[Dict[str, List[Dict[str, Any]]]] = None, seed_path: Optional[Path] = SEED_PATH):
        self._collections: Dict[str, _MockCollection] = {}
        if seed is None and seed_path is not None and seed_path.exists():
            seed = json.loads(seed_path.read_text())
            logger.info(f"Seeded in-memory database from {seed_path.name}")
        for name, docs in (seed or {}).items():
            self._collections[name] = _MockCollection(name, docs)
        self.connections = {"mongodb": False}

    async def get_collection(self, name: str):
        # create on demand if missing
        if name not in self._collections:
            self._collections[name] = _MockCollection(name)
        return self._collections[name]

    async def connect_mongodb(self):
        await asyncio.sleep(0)
        self.connections["mongodb"] = True

    async def connect_all(self):
        await self.connect_mongodb()

    async def ensure_indexes(self):
        from induction_engine.utils.cloud_database import create_indexes
        await create_indexes(self)

    async def close_all(self):
        await asyncio.sleep(0)
        self.connections["mongodb"] = False

    async def health_check(self) -> Dict[str, Any]:
        return {
            "overall": True,
            "services": {"mongodb": {"status": "healthy", "details": "In-memory database"}},
        }
