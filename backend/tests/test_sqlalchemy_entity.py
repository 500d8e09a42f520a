"""
Crude — SQLAlchemy Entity Tests
=================================

What:  SqlAlchemyEntity against a real (in-memory SQLite) database.
Why:   The adapter's translation rules (filters, coercion, dropped fields,
       error translation) are what every controller relies on.

What we test:
    ✅ create assigns known fields, drops unknown and primary-key fields
    ✅ read_one by identifier and by query mapping (string ids coerced)
    ✅ read / read_limit / count with and without filters
    ✅ update: found, not found, unique-constraint failure
    ✅ delete: found, not found
    ✅ Unknown query fields raise PersistenceError
    ✅ schema_paths lists every mapped attribute with its type name
"""

import pytest

from crude.exceptions import NotFoundError, PersistenceError


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_returns_stored_item(self, article_entity):
        item = await article_entity.create({"local_url": "hello", "name": "Hello"})

        assert item.id is not None
        assert item.local_url == "hello"
        assert item.name == "Hello"
        assert item.created_at is not None

    @pytest.mark.asyncio
    async def test_create_drops_unknown_and_identity_fields(self, article_entity):
        item = await article_entity.create(
            {"id": 999, "local_url": "x", "not_a_column": "ignored"}
        )

        assert item.id != 999
        assert not hasattr(item, "not_a_column")

    @pytest.mark.asyncio
    async def test_duplicate_url_raises_persistence_error(self, article_entity):
        await article_entity.create({"local_url": "taken"})

        with pytest.raises(PersistenceError) as exc_info:
            await article_entity.create({"local_url": "taken"})

        assert exc_info.value.context["operation"] == "create"
        assert exc_info.value.context["resource"] == "article"
        assert "UNIQUE" not in exc_info.value.message


class TestRead:
    @pytest.mark.asyncio
    async def test_read_one_by_id(self, article_entity, seeded_articles):
        item = await article_entity.read_one(seeded_articles[1].id)
        assert item.local_url == "second"

    @pytest.mark.asyncio
    async def test_read_one_coerces_string_id(self, article_entity, seeded_articles):
        item = await article_entity.read_one(str(seeded_articles[0].id))
        assert item.local_url == "first"

    @pytest.mark.asyncio
    async def test_read_one_by_query(self, article_entity, seeded_articles):
        item = await article_entity.read_one({"local_url": "third"})
        assert item.name == "Third post"

    @pytest.mark.asyncio
    async def test_read_one_missing_returns_none(self, article_entity, seeded_articles):
        assert await article_entity.read_one({"local_url": "nope"}) is None
        assert await article_entity.read_one(12345) is None

    @pytest.mark.asyncio
    async def test_read_all_in_identity_order(self, article_entity, seeded_articles):
        items = await article_entity.read()
        assert [item.local_url for item in items] == ["first", "second", "third"]

    @pytest.mark.asyncio
    async def test_read_with_filter(self, article_entity, seeded_articles):
        items = await article_entity.read({"name": "Second post"})
        assert [item.local_url for item in items] == ["second"]

    @pytest.mark.asyncio
    async def test_read_limit_pages(self, article_entity, seeded_articles):
        page = await article_entity.read_limit(None, 1, 1)
        assert [item.local_url for item in page] == ["second"]

        tail = await article_entity.read_limit(None, 2, 10)
        assert [item.local_url for item in tail] == ["third"]

    @pytest.mark.asyncio
    async def test_count(self, article_entity, seeded_articles):
        assert await article_entity.count() == 3
        assert await article_entity.count({"local_url": "first"}) == 1
        assert await article_entity.count({"local_url": "missing"}) == 0

    @pytest.mark.asyncio
    async def test_unknown_query_field_raises(self, article_entity):
        with pytest.raises(PersistenceError, match="Invalid query for article"):
            await article_entity.read({"owner": 1})


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_by_id(self, article_entity, seeded_articles):
        target = seeded_articles[0]
        item = await article_entity.update(target.id, {"name": "Renamed", "id": 50})

        assert item.id == target.id
        assert item.name == "Renamed"
        stored = await article_entity.read_one(target.id)
        assert stored.name == "Renamed"

    @pytest.mark.asyncio
    async def test_update_by_query(self, article_entity, seeded_articles):
        item = await article_entity.update({"local_url": "second"}, {"local_url": "second-v2"})
        assert item.local_url == "second-v2"

    @pytest.mark.asyncio
    async def test_update_missing_raises_not_found(self, article_entity):
        with pytest.raises(NotFoundError):
            await article_entity.update(404, {"name": "ghost"})

    @pytest.mark.asyncio
    async def test_update_conflict_raises_persistence_error(self, article_entity, seeded_articles):
        with pytest.raises(PersistenceError):
            await article_entity.update(seeded_articles[0].id, {"local_url": "second"})


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_item(self, article_entity, seeded_articles):
        await article_entity.delete(seeded_articles[2].id)
        assert await article_entity.count() == 2

    @pytest.mark.asyncio
    async def test_delete_missing_raises_not_found(self, article_entity):
        with pytest.raises(NotFoundError):
            await article_entity.delete(404)


class TestSchemaPaths:
    def test_lists_mapped_attributes(self, article_entity):
        paths = article_entity.schema_paths()

        assert paths == {
            "id": "Integer",
            "local_url": "String",
            "name": "String",
            "body": "Text",
            "_notes": "Text",
            "created_at": "DateTime",
        }
