import copy
import uuid
from itertools import count
from typing import Any, Optional

from .base import Document, RecordNotFound, UniqueViolation
from .models import UNIQUE_KEYS


class MemoryStore:
    """
    In-process DocumentStore.

    Enforces the same unique keys as the Supabase schema and keeps insertion
    order, so ties on an ordering field come back in insertion order
    (reversed for descending scans). Returned documents are copies.
    """

    def __init__(self, unique_keys: dict[str, list[tuple[str, ...]]] | None = None):
        self.unique_keys = UNIQUE_KEYS if unique_keys is None else unique_keys
        self.tables: dict[str, dict[str, Document]] = {}
        self._seq = count()
        self._order: dict[str, int] = {}

    def _table(self, table: str) -> dict[str, Document]:
        return self.tables.setdefault(table, {})

    def _violates(
        self, table: str, doc: Document, exclude_id: Optional[str] = None
    ) -> Optional[tuple[str, ...]]:
        rows = [row for doc_id, row in self._table(table).items() if doc_id != exclude_id]
        for fields in self.unique_keys.get(table, []):
            key = tuple(doc.get(f) for f in fields)
            # NULLs never collide, as in Postgres
            if any(v is None for v in key):
                continue
            if any(tuple(row.get(f) for f in fields) == key for row in rows):
                return fields
        return None

    async def get(self, table: str, doc_id: str) -> Optional[Document]:
        row = self._table(table).get(doc_id)
        return copy.deepcopy(row) if row is not None else None

    async def find_one(self, table: str, **equals: Any) -> Optional[Document]:
        rows = await self.find(table, equals, limit=1)
        return rows[0] if rows else None

    async def find(
        self,
        table: str,
        equals: dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]:
        rows = [
            row
            for row in self._table(table).values()
            if all(row.get(f) == v for f, v in equals.items())
        ]
        rows.sort(key=lambda row: self._order[row["id"]])
        if order_by:
            # stable sort keeps insertion order on ties
            rows.sort(key=lambda row: (row.get(order_by) is None, row.get(order_by) or 0))
        if descending:
            rows.reverse()
        if limit is not None:
            rows = rows[:limit]
        return [copy.deepcopy(row) for row in rows]

    async def insert(self, table: str, doc: Document) -> str:
        violated = self._violates(table, doc)
        if violated:
            raise UniqueViolation(table, violated)

        doc_id = uuid.uuid4().hex
        row = {**copy.deepcopy(doc), "id": doc_id}
        self._table(table)[doc_id] = row
        self._order[doc_id] = next(self._seq)
        return doc_id

    async def patch(self, table: str, doc_id: str, fields: Document) -> None:
        row = self._table(table).get(doc_id)
        if row is None:
            raise RecordNotFound(table, doc_id)

        violated = self._violates(table, {**row, **fields}, exclude_id=doc_id)
        if violated:
            raise UniqueViolation(table, violated)
        row.update(copy.deepcopy(fields))

    def count(self, table: str, **equals: Any) -> int:
        return sum(
            1
            for row in self._table(table).values()
            if all(row.get(f) == v for f, v in equals.items())
        )
