import logging
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient

from .base import Document, RecordNotFound, StorageError, UniqueViolation

logger = logging.getLogger(__name__)

PG_UNIQUE_VIOLATION = "23505"
PG_INVALID_TEXT_REPRESENTATION = "22P02"


class InvalidKey(StorageError):
    """A filter value cannot be cast to the column type, e.g. a malformed uuid."""


class SupabaseStore:
    """DocumentStore backed by Supabase tables through PostgREST."""

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _execute(self, table: str, query):
        try:
            return await query.execute()
        except APIError as e:
            if e.code == PG_UNIQUE_VIOLATION:
                raise UniqueViolation(table) from e
            if e.code == PG_INVALID_TEXT_REPRESENTATION:
                raise InvalidKey(f"{table}: {e.message}") from e
            logger.error(f"supabase_error table={table} code={e.code} message={e.message}")
            raise StorageError(f"{table}: {e.message}") from e
        except httpx.HTTPError as e:
            logger.error(f"supabase_unreachable table={table} error={e}")
            raise StorageError(f"{table}: {e}") from e

    async def get(self, table: str, doc_id: str) -> Optional[Document]:
        return await self.find_one(table, id=doc_id)

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
        query = self.client.table(table).select("*")
        for field, value in equals.items():
            query = query.eq(field, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)

        try:
            res = await self._execute(table, query)
        except InvalidKey:
            # no row can match a key of the wrong shape
            logger.debug(f"supabase_invalid_key table={table} equals={equals}")
            return []
        return list(res.data or [])

    async def insert(self, table: str, doc: Document) -> str:
        res = await self._execute(table, self.client.table(table).insert(doc))
        if not res.data:
            raise StorageError(f"{table}: insert returned no row")
        return str(res.data[0]["id"])

    async def patch(self, table: str, doc_id: str, fields: Document) -> None:
        res = await self._execute(
            table, self.client.table(table).update(fields).eq("id", doc_id)
        )
        if not res.data:
            raise RecordNotFound(table, doc_id)
