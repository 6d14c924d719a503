"""EntityStorePort: create/read/update/delete/query over named collections."""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    ContextManager,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    runtime_checkable,
)

Record = Dict[str, Any]
Predicate = Callable[[Record], bool]


@runtime_checkable
class EntityWriter(Protocol):
    """Operations available both on the store and inside a transaction."""

    def create(
        self,
        collection: str,
        record: Mapping[str, Any],
        *,
        record_id: Optional[str] = None,
    ) -> str: ...

    def get(self, collection: str, record_id: str) -> Optional[Record]: ...

    def update(
        self, collection: str, record_id: str, fields: Mapping[str, Any]
    ) -> Optional[Record]: ...

    def delete(self, collection: str, record_id: str) -> bool: ...

    def query(
        self,
        collection: str,
        *,
        where: Optional[Mapping[str, Any]] = None,
        predicate: Optional[Predicate] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Record]: ...


@runtime_checkable
class EntityStorePort(EntityWriter, Protocol):
    def transaction(self) -> ContextManager[EntityWriter]:
        """Group writes so they commit together or not at all."""
        ...
