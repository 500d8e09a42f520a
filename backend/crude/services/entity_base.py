"""
Crude — Entity Interface
==========================

What:  Base class defining the storage contract every CRUD controller talks to.
Why:   The controller never touches a driver directly. Any backend (SQL,
       document store, remote API) that implements this contract can be
       mounted behind a CrudController.
How:   Concrete adapters subclass Entity and override every operation. The
       base methods raise NotImplementedError naming the adapter class, so a
       missing override fails loudly the first time it is exercised instead
       of silently returning nothing.
Who:   Called by CrudController pipelines and the pagination step.
When:  Once per storage operation; every operation is a coroutine.

Contract summary:
    create(item_data)                  → item            PersistenceError
    read_one(id_or_query)              → item | None
    read(query=None)                   → list[item]
    read_limit(query, skip, limit)     → list[item]
    count(query=None)                  → int
    update(id_or_query, item_data)     → item            NotFoundError, PersistenceError
    delete(id_or_query)                → None            NotFoundError
    schema_paths()                     → {path: type name}

    A plain identifier means an identity lookup; a mapping means an equality
    filter over fields.

Why not abc.abstractmethod:
    Adapters are allowed to be partial (a read-only entity behind a list
    page never needs update). Instantiation must succeed; only the missing
    capability fails, and only when used.
"""

from typing import Any, Mapping, Optional, Sequence


class Entity:
    """
    Storage-agnostic capability contract for one kind of record.

    Attributes:
        model:         The storage model this entity wraps
        current_user:  Optional identity of the user on whose behalf it acts
    """

    def __init__(self, model: Any, current_user: Optional[Any] = None):
        self.model = model
        self.current_user = current_user

    def _not_implemented(self, operation: str) -> NotImplementedError:
        return NotImplementedError(
            f"{type(self).__name__}.{operation}() is not implemented"
        )

    async def create(self, item_data: Mapping[str, Any]) -> Any:
        """Persist a new record built from item_data and return it."""
        raise self._not_implemented("create")

    async def read_one(self, id_or_query: Any) -> Optional[Any]:
        """Fetch one record by identifier or query mapping; None if absent."""
        raise self._not_implemented("read_one")

    async def read(self, query: Optional[Mapping[str, Any]] = None) -> Sequence[Any]:
        """Return every matching record. Unbounded, callers must be sensible."""
        raise self._not_implemented("read")

    async def read_limit(
        self,
        query: Optional[Mapping[str, Any]],
        skip: int,
        limit: int,
    ) -> Sequence[Any]:
        """Return one page of matching records."""
        raise self._not_implemented("read_limit")

    async def count(self, query: Optional[Mapping[str, Any]] = None) -> int:
        """Count matching records; no query counts everything."""
        raise self._not_implemented("count")

    async def update(self, id_or_query: Any, item_data: Mapping[str, Any]) -> Any:
        """Assign each key of item_data on the target record, save, return it."""
        raise self._not_implemented("update")

    async def delete(self, id_or_query: Any) -> None:
        """Remove the target record."""
        raise self._not_implemented("delete")

    def schema_paths(self) -> Mapping[str, str]:
        """Field paths known to the storage schema, mapped to type names."""
        raise self._not_implemented("schema_paths")
