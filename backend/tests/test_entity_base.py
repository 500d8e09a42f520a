"""
Crude — Entity Interface Tests
================================

What:  The base Entity refuses every operation until an adapter overrides it.

What we test:
    ✅ Every storage coroutine raises NotImplementedError naming the adapter
    ✅ schema_paths raises too
    ✅ Instantiation of a partial adapter succeeds; overridden operations work
"""

import pytest

from crude.services.entity_base import Entity


class ReadOnlyEntity(Entity):
    """A partial adapter that can only read one item."""

    async def read_one(self, id_or_query):
        return {"local_url": "only"}


class TestEntityBase:
    def setup_method(self):
        self.entity = Entity(model=object)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation,args",
        [
            ("create", ({"name": "x"},)),
            ("read_one", (1,)),
            ("read", ()),
            ("read_limit", (None, 0, 10)),
            ("count", ()),
            ("update", (1, {"name": "x"})),
            ("delete", (1,)),
        ],
    )
    async def test_storage_operations_raise(self, operation, args):
        with pytest.raises(NotImplementedError, match=rf"Entity\.{operation}\(\) is not implemented"):
            await getattr(self.entity, operation)(*args)

    def test_schema_paths_raises(self):
        with pytest.raises(NotImplementedError, match="schema_paths"):
            self.entity.schema_paths()

    def test_keeps_model_and_user(self):
        entity = Entity(model=dict, current_user="alice")
        assert entity.model is dict
        assert entity.current_user == "alice"


class TestPartialAdapter:
    @pytest.mark.asyncio
    async def test_overridden_operation_works(self):
        entity = ReadOnlyEntity(model=object)
        assert await entity.read_one("only") == {"local_url": "only"}

    @pytest.mark.asyncio
    async def test_missing_operation_names_adapter(self):
        entity = ReadOnlyEntity(model=object)
        with pytest.raises(NotImplementedError, match=r"ReadOnlyEntity\.update\(\)"):
            await entity.update(1, {})
