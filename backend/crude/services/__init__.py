# Services package init
"""
Crude — Services Layer
========================

What:  Storage access and request-independent state used by the controllers.

Service Inventory:
    - Entity (abstract): the storage contract every CRUD controller talks to
    - SqlAlchemyEntity: Entity over an async SQLAlchemy model
    - SchemaViewCache: memoized presentation metadata for an entity's fields
    - FlashStore: one-shot messages that survive a redirect
"""
