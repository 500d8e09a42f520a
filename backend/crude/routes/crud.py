"""
Crude — CRUD Routes
=====================

What:  Exposes a CrudController's pipelines as HTTP routes.
Why:   The controller is transport-agnostic (it only needs a Request); the
       route table is the one place that decides methods and paths.

Route Table (relative to the controller's base URL):
    POST       ""              → create
    GET        "/add"          → create_view
    GET        ""              → read_list
    GET        "/{id}"         → read_one
    PUT, POST  "/{id}"         → update
    GET        "/{id}/edit"    → update_view
    DELETE     "/{id}"         → delete

    "/add" is registered before "/{id}" so it is never captured as an id.
"""

from typing import Any, List, Optional

from fastapi import APIRouter
from starlette.requests import Request
from starlette.responses import Response

from crude.controllers.pipeline import Pipeline

ROUTE_TABLE = (
    # (path, methods, pipeline attribute)
    ("", ["POST"], "create"),
    ("/add", ["GET"], "create_view"),
    ("", ["GET"], "read_list"),
    ("/{id}", ["GET"], "read_one"),
    ("/{id}", ["PUT", "POST"], "update"),
    ("/{id}/edit", ["GET"], "update_view"),
    ("/{id}", ["DELETE"], "delete"),
)


def _endpoint(pipeline: Pipeline):
    async def endpoint(request: Request) -> Response:
        return await pipeline(request)

    endpoint.__name__ = pipeline.name
    return endpoint


def crud_router(controller: Any, tags: Optional[List[str]] = None) -> APIRouter:
    """
    Build an APIRouter for `controller`, mounted at its base URL.

    Pipelines are looked up at registration time; steps pushed or unshifted
    later are still picked up because the Pipeline objects are shared.
    """
    prefix = controller.base_url.rstrip("/")
    router = APIRouter(prefix=prefix, tags=tags or [controller.resource])
    for path, methods, name in ROUTE_TABLE:
        pipeline = getattr(controller, name)
        router.add_api_route(
            path,
            _endpoint(pipeline),
            methods=methods,
            name=f"{controller.resource}_{name}",
            include_in_schema=controller.opts.no_views,
        )
    return router
