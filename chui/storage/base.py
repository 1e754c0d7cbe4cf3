"""
Storage capability interface used by the messaging engine.

The engine only ever needs four things from a store: point lookups (by id or
by a unique key), indexed equality scans with optional time ordering and a
take-limit, insert returning a generated id, and partial updates by id. Each
call is atomic on a single record; nothing here spans records.
"""

from typing import Any, Optional, Protocol

Document = dict[str, Any]


class StorageError(Exception):
    """Base class for every failure raised by a store."""


class UniqueViolation(StorageError):
    """An insert was rejected by a unique constraint."""

    def __init__(self, table: str, fields: tuple[str, ...] = ()):
        self.table = table
        self.fields = fields
        super().__init__(f"unique constraint violated on {table} {fields}")


class RecordNotFound(StorageError):
    def __init__(self, table: str, doc_id: str):
        self.table = table
        self.doc_id = doc_id
        super().__init__(f"{table} record {doc_id} not found")


class DocumentStore(Protocol):
    async def get(self, table: str, doc_id: str) -> Optional[Document]: ...

    async def find_one(self, table: str, **equals: Any) -> Optional[Document]: ...

    async def find(
        self,
        table: str,
        equals: dict[str, Any],
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> list[Document]: ...

    async def insert(self, table: str, doc: Document) -> str: ...

    async def patch(self, table: str, doc_id: str, fields: Document) -> None: ...
