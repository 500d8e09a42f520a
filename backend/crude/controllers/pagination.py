"""
Crude — Pagination Step
=========================

What:  The pipeline step that fetches one page of a list.
Why:   read_list must never load an unbounded table; the page bounds and
       totals also drive the pager in the list template.
How:   Reads `page` (1-indexed) and `limit` from the query string, clamps
       them, counts the matching rows, reads the page, and passes the
       context on with `items` and `pagination` set.

Query parameters:
    page:   default 1, minimum 1; garbage → 1; past the last page → last page
    limit:  default options.page_size (else settings.page_size), clamped to
            1..options.max_page_size (else settings.max_page_size)

The storage query is the context's base query (owner filter) passed through
the `paginate_query(request, query)` option when one is configured.

Errors from count/read_limit propagate to the caller (the controller routes
them to its error handler).
"""

import logging
from typing import Any, Dict

from starlette.requests import Request
from starlette.responses import Response

from crude.config import settings
from crude.controllers.pipeline import CallNext, RequestContext, Step
from crude.schemas.options import CrudOptions
from crude.schemas.view import Paging
from crude.services.entity_base import Entity

logger = logging.getLogger(__name__)


def _int_param(request: Request, name: str, default: int) -> int:
    try:
        return int(request.query_params.get(name, default))
    except (TypeError, ValueError):
        return default


def page_bounds(request: Request, options: CrudOptions) -> tuple[int, int]:
    """(page, limit) from the query string, clamped to the configured range."""
    default_limit = options.page_size or settings.page_size
    max_limit = options.max_page_size or settings.max_page_size
    page = max(1, _int_param(request, "page", 1))
    limit = min(max(1, _int_param(request, "limit", default_limit)), max_limit)
    return page, limit


def list_query(request: Request, ctx: RequestContext, options: CrudOptions) -> Dict[str, Any]:
    """The storage query for a list request."""
    query = dict(ctx.query)
    if options.paginate_query is not None:
        query = options.paginate_query(request, query)
    return query


def paginate(entity: Entity, options: CrudOptions) -> Step:
    """Build the pagination step for `entity`."""

    async def paginate_step(
        request: Request, ctx: RequestContext, call_next: CallNext
    ) -> Response:
        page, limit = page_bounds(request, options)
        query = list_query(request, ctx, options)

        total = await entity.count(query or None)
        paging = Paging.build(page=page, limit=limit, total=total)
        items = await entity.read_limit(query or None, paging.skip, paging.limit)

        logger.debug(
            "Paginated %s: page %d/%d, %d of %d items",
            type(entity).__name__,
            paging.page,
            paging.pages,
            len(items),
            total,
        )
        return await call_next(ctx.evolve(items=items, pagination=paging))

    return paginate_step
