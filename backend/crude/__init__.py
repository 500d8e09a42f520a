"""
Crude — Package Initializer
=============================

What: Generic create/read/update web views for any storage-backed entity.

Architecture Note:

    ┌─────────────────────────────────────┐
    │      Routes (crud_router, health)   │  ← HTTP method/path table
    ├─────────────────────────────────────┤
    │   Controllers (CrudController)      │  ← pipelines, views, errors
    ├─────────────────────────────────────┤
    │   Services (Entity, flash, schema)  │  ← storage contract, state
    ├─────────────────────────────────────┤
    │   Models & Schemas                  │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

Typical wiring:

    from crude.controllers.crud import CrudController
    from crude.services.sqlalchemy_entity import SqlAlchemyEntity

    entity = SqlAlchemyEntity(Article, async_session_factory)
    controller = CrudController(entity, "/articles", {"edit_view": "crude/edit.html"})
    app.include_router(controller.router())
"""

__version__ = "1.0.0"
