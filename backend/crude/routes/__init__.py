# Routes package init
"""
Crude — Routes Package
========================

What:  HTTP route tables.

Route Inventory:
    - crud.py:    crud_router(controller), the seven CRUD routes for one entity
    - health.py:  GET /health (service health check)

Routes stay thin: they hand the Request to a controller pipeline and return
whatever Response it produces.
"""
