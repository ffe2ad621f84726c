"""
Record Store
Row-oriented datastore interface with a MongoDB implementation.

Filters are plain dicts of column -> value. Use IS_NULL / NOT_NULL as the
value to match missing or present columns.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from wardrobe_service.core.errors import StoreUnavailable
from wardrobe_service.db import mongo

logger = logging.getLogger(__name__)


class _NullFilter:
    def __init__(self, present: bool):
        self.present = present

    def __repr__(self):
        return "NOT_NULL" if self.present else "IS_NULL"


IS_NULL = _NullFilter(present=False)
NOT_NULL = _NullFilter(present=True)


def matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Evaluate equality/null filters against a row."""
    for column, expected in (filters or {}).items():
        value = row.get(column)
        if isinstance(expected, _NullFilter):
            if (value is not None) != expected.present:
                return False
        elif value != expected:
            return False
    return True


class RecordStore(ABC):
    """Abstract row datastore."""

    @abstractmethod
    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row and return it as stored."""

    @abstractmethod
    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Return rows matching every filter."""

    @abstractmethod
    def update(self, table: str, filters: Dict[str, Any], values: Dict[str, Any]) -> int:
        """Set values on matching rows. Returns the number of rows changed."""

    @abstractmethod
    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        """Delete matching rows. Returns the number of rows removed."""

    def select_one(self, table: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        rows = self.select(table, filters, limit=1)
        return rows[0] if rows else None


class MongoRecordStore(RecordStore):
    """RecordStore backed by one MongoDB collection per table."""

    def _collection(self, table: str):
        collection = mongo.get_collection(table)
        if collection is None:
            raise StoreUnavailable("Datastore unavailable. Is MongoDB running?")
        return collection

    @staticmethod
    def _query(filters: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        query = {}
        for column, expected in (filters or {}).items():
            if isinstance(expected, _NullFilter):
                query[column] = {"$ne": None} if expected.present else None
            else:
                query[column] = expected
        return query

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        document = dict(row)
        self._collection(table).insert_one(document)
        logger.info(f"Inserted into {table}: {row.get('id')}")
        return dict(row)

    def select(self, table, filters=None, order_by=None, ascending=True, limit=None):
        cursor = self._collection(table).find(self._query(filters), {"_id": 0})
        if order_by:
            cursor = cursor.sort(order_by, 1 if ascending else -1)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def update(self, table, filters, values):
        result = self._collection(table).update_many(self._query(filters), {"$set": values})
        return result.modified_count

    def delete(self, table, filters):
        result = self._collection(table).delete_many(self._query(filters))
        logger.info(f"Deleted {result.deleted_count} row(s) from {table}")
        return result.deleted_count


# ==================== SINGLETON INSTANCE ====================

_record_store: Optional[RecordStore] = None


def get_record_store() -> RecordStore:
    """Get the shared record store (FastAPI dependency)."""
    global _record_store
    if _record_store is None:
        _record_store = MongoRecordStore()
    return _record_store
