"""
Crude — Request Context & Pipelines
=====================================

What:  The per-request context value and the ordered step chain that
       carries it through one CRUD operation.
Why:   Each operation (create, read_list, ...) is a sequence of small steps:
       context preparation, optional pagination, the handler. Keeping the
       steps as data lets callers prepend or append their own steps.
How:   A step is `async def step(request, ctx, call_next) -> Response`.
       It either returns a Response (short-circuit) or awaits
       `call_next(new_ctx)` to run the rest of the chain with an updated
       context. Contexts are frozen; steps derive new ones with evolve().

Ordering:
    Step N+1 starts only when step N calls call_next. Requests interleave
    freely with each other, but never inside one pipeline.

    A chain that runs past its last step answers 404 (nothing handled it).
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from crude.schemas.view import FieldView, Paging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """
    Everything a view or handler knows about the current request.

    Attributes:
        opts:          Options snapshot, including `rendered_base_url`
        schema:        The controller's schema view
        current_user:  Identity set upstream on request.state.user, if any
        fn:            Helper functions exposed to templates
        query:         Base storage query (owner filter under own_user)
        item / items:  Fetched record(s)
        pagination:    Paging metadata from the pagination step
        error / success: Messages shown by the rendered view
    """

    opts: Mapping[str, Any] = field(default_factory=dict)
    schema: Mapping[str, FieldView] = field(default_factory=dict)
    current_user: Any = None
    fn: Mapping[str, Callable[..., Any]] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)
    item: Any = None
    items: Optional[Sequence[Any]] = None
    pagination: Optional[Paging] = None
    error: Optional[str] = None
    success: Optional[str] = None

    def evolve(self, **changes: Any) -> "RequestContext":
        return replace(self, **changes)

    def template_vars(self) -> Dict[str, Any]:
        """The variables handed to Jinja2 templates."""
        return {
            "opts": self.opts,
            "schema": self.schema,
            "current_user": self.current_user,
            "fn": self.fn,
            "item": self.item,
            "items": self.items,
            "pagination": self.pagination,
            "error": self.error,
            "success": self.success,
        }


CallNext = Callable[[RequestContext], Awaitable[Response]]
Step = Callable[[Request, RequestContext, CallNext], Awaitable[Response]]


class Pipeline:
    """An ordered, named chain of steps for one CRUD operation."""

    def __init__(self, name: str, steps: Iterable[Step]):
        self.name = name
        self.steps: List[Step] = list(steps)

    def unshift(self, step: Step) -> None:
        """Insert a step at the beginning of the chain."""
        self.steps.insert(0, step)

    def push(self, step: Step) -> None:
        """Append a step at the end of the chain."""
        self.steps.append(step)

    async def __call__(self, request: Request) -> Response:
        steps = tuple(self.steps)

        async def dispatch(index: int, ctx: RequestContext) -> Response:
            if index >= len(steps):
                logger.warning("Pipeline '%s' ran past its last step", self.name)
                return PlainTextResponse("Not Found", status_code=404)

            async def call_next(next_ctx: RequestContext) -> Response:
                return await dispatch(index + 1, next_ctx)

            return await steps[index](request, ctx, call_next)

        return await dispatch(0, RequestContext())

    def __len__(self) -> int:
        return len(self.steps)

    def __repr__(self) -> str:
        return f"<Pipeline {self.name!r} steps={len(self.steps)}>"
