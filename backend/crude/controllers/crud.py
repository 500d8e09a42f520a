"""
Crude — CRUD Controller
=========================

What:  Wires an Entity and a base URL into seven request pipelines:
       create, create_view, read_list, read_one, update, update_view, delete.
Why:   Listing, viewing, creating and editing records follows the same shape
       for every entity; only the storage model, the URL and a handful of
       options differ.
How:   Each pipeline starts with the context preparer, list pipelines add
       the pagination step, and an operation handler finishes the request by
       rendering a template, redirecting, or answering JSON.
Who:   Instantiated once per mounted entity; routes are registered with
       crude.routes.crud.crud_router(controller).

Pipelines:
    create       [prep] → handler      POST   /{base}
    create_view  [prep] → handler      GET    /{base}/add
    read_list    [prep] → [paginate] → handler
                                       GET    /{base}
    read_one     [prep] → handler      GET    /{base}/{id}
    update       [prep] → handler      PUT|POST /{base}/{id}
    update_view  [prep] → handler      GET    /{base}/{id}/edit
    delete       [prep] → stub (501)   DELETE /{base}/{id}

Failure Policy:
    Storage failures in create/update/list go through handle_error():
    JSON clients get a 400 envelope, browsers get an error flash and a
    redirect. Read failures on single items render the item (or edit)
    template with the error in context instead. The delete stub and missing
    configuration answer a plain-text 501. Nothing escapes a pipeline.

Templates:
    Resolved and compiled once, at construction, into `self.compiled`. A
    missing template raises TemplateConfigError right there. With a layout
    configured, operation output is rendered first and handed to the layout
    as `crud_view`; without one it is sent as the response body.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import jinja2
from markupsafe import Markup
from starlette.formparsers import MultiPartException
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, Response
from starlette.templating import Jinja2Templates

from crude.config import settings
from crude.controllers.helpers import (
    TEMPLATE_HELPERS,
    get_value,
    resolve_attr,
    serialize_item,
    url_value,
)
from crude.controllers.pagination import list_query, paginate
from crude.controllers.pipeline import CallNext, Pipeline, RequestContext, Step
from crude.controllers.responses import (
    error_message,
    json_error,
    redirect,
    unimplemented,
    wants_json,
)
from crude.exceptions import (
    ConsistencyError,
    CrudeError,
    NotFoundError,
    TemplateConfigError,
    ValidationError,
)
from crude.middleware.request_id import request_id_var
from crude.schemas.options import CrudOptions
from crude.schemas.view import FieldView
from crude.services.entity_base import Entity
from crude.services.flash_service import FLASH_ERROR, FLASH_SUCCESS, FlashStore, flash_store
from crude.services.schema_view import SchemaViewCache

logger = logging.getLogger(__name__)

# The context key under which operation output is handed to the layout
VIEW_OUTPUT_KEY = "crud_view"

DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

DEFAULT_VIEWS = {
    "add": "crude/add.html",
    "view": "crude/view.html",
    "list": "crude/list.html",
    "edit": "crude/edit.html",
}

NO_ID_MESSAGE = 'Not implemented. No "id" field passed'
NO_EDIT_VIEW_MESSAGE = 'Not implemented. Define "edit_view" option.'
NO_VIEWS_MESSAGE = "Not implemented. Views are disabled."
DELETE_MESSAGE = "NOT IMPLEMENTED"


async def read_body(request: Request) -> Dict[str, Any]:
    """
    The request body as a flat dict (JSON object or form fields).

    Raises:
        ValidationError: malformed JSON, non-object JSON, unreadable form
    """
    content_type = request.headers.get("content-type", "")
    if "json" in content_type:
        raw = await request.body()
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            raise ValidationError(message="Request body is not valid JSON")
        if not isinstance(data, dict):
            raise ValidationError(message="Request body must be a JSON object")
        return data
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        try:
            form = await request.form()
        except MultiPartException as e:
            raise ValidationError(message="Request body could not be read", context={"error": str(e)})
        return dict(form.items())
    return {}


class CrudController:
    """
    CRUD request pipelines for one entity.

    Args:
        entity:    The storage adapter (an Entity implementation)
        base_url:  Mount point, e.g. "/articles"
        options:   CrudOptions, or a dict of CrudOptions fields
        flash:     Flash store (defaults to the process-wide store)

    Raises:
        TemplateConfigError: a configured template can't be loaded
    """

    VIEW_OUTPUT_KEY = VIEW_OUTPUT_KEY

    def __init__(
        self,
        entity: Entity,
        base_url: str,
        options: Union[CrudOptions, Mapping[str, Any], None] = None,
        flash: Optional[FlashStore] = None,
    ):
        self.entity = entity
        self.base_url = base_url
        if isinstance(options, CrudOptions):
            self.opts = options.model_copy(update={"base_url": base_url})
        else:
            self.opts = CrudOptions(base_url=base_url, **dict(options or {}))
        self.flash = flash or flash_store
        self.resource = getattr(entity.model, "__name__", "item").lower()

        self._schema_cache = SchemaViewCache(entity, self.opts)

        # ── Template table (captured now, never re-resolved) ──────────────
        self.views = self._resolve_views()
        self.templates = Jinja2Templates(
            directory=[*self.opts.template_dirs, str(DEFAULT_TEMPLATE_DIR)]
        )
        self.compiled: Dict[str, jinja2.Template] = self._compile_templates()
        self.has_edit_view = self.opts.edit_view is not None

        self._build_pipelines()

    # ══════════════════════════════════════════════════════════════════════
    # Construction
    # ══════════════════════════════════════════════════════════════════════

    def _resolve_views(self) -> Dict[str, str]:
        views = dict(DEFAULT_VIEWS)
        overrides = {
            "add": self.opts.add_view,
            "view": self.opts.item_view,
            "list": self.opts.list_view,
            "edit": self.opts.edit_view,
            "layout": self.opts.layout_view,
        }
        views.update({key: name for key, name in overrides.items() if name})
        return views

    def _compile_templates(self) -> Dict[str, jinja2.Template]:
        compiled = {}
        for key, name in self.views.items():
            try:
                compiled[key] = self.templates.get_template(name)
            except jinja2.TemplateError as e:
                logger.error("Error loading template '%s' for %s: %s", name, self.base_url, e)
                raise TemplateConfigError(template=name, context={"view": key}) from e
        logger.info("Compiled %d templates for %s", len(compiled), self.base_url)
        return compiled

    def _build_pipelines(self) -> None:
        prep = self._prep_response(has_id=False)
        prep_add = self._prep_response(has_id=False, operation="add")
        prep_item = self._prep_response(has_id=True)
        prep_edit = self._prep_response(has_id=True, operation="edit")

        list_steps = [prep]
        if not self.opts.no_pagination:
            list_steps.append(
                self._guarded(paginate(self.entity, self.opts), settings.error_redirect_url)
            )
        list_steps.append(self._read_list)

        self.create = Pipeline("create", [prep, self._create])
        self.create_view = Pipeline("create_view", [prep_add, self._create_view])
        self.read_list = Pipeline("read_list", list_steps)
        self.read_one = Pipeline("read_one", [prep_item, self._read_one])
        self.update = Pipeline("update", [prep_item, self._update])
        self.update_view = Pipeline("update_view", [prep_edit, self._update_view])
        self.delete = Pipeline("delete", [prep_item, self._delete])

    @property
    def pipelines(self) -> Dict[str, Pipeline]:
        return {
            "create": self.create,
            "create_view": self.create_view,
            "read_list": self.read_list,
            "read_one": self.read_one,
            "update": self.update,
            "update_view": self.update_view,
            "delete": self.delete,
        }

    def unshift_all_routes(self, step: Step) -> None:
        """Insert `step` at the beginning of every pipeline."""
        for pipeline in self.pipelines.values():
            pipeline.unshift(step)

    def push_all_routes(self, step: Step) -> None:
        """Append `step` at the end of every pipeline."""
        for pipeline in self.pipelines.values():
            pipeline.push(step)

    def router(self, **kwargs: Any):
        """An APIRouter exposing the pipelines (see crude.routes.crud)."""
        from crude.routes.crud import crud_router
        return crud_router(self, **kwargs)

    # ══════════════════════════════════════════════════════════════════════
    # Request context
    # ══════════════════════════════════════════════════════════════════════

    def get_base_url(
        self, request: Request, has_id: bool = False, operation: Optional[str] = None
    ) -> str:
        """
        The entity's base URL as seen by this request.

        Drops the trailing slash, then the `operation` segment ("add" for
        create_view, "edit" for update_view) when given, then with has_id the
        item identifier segment. Identifiers named "add" or "edit" stay
        intact because only the route's own operation segment is removed.
        Override when the routing doesn't follow the default layout.
        """
        url = request.url.path.rstrip("/")
        if operation and url.endswith(f"/{operation}"):
            url = url[: -len(operation) - 1]
        if has_id:
            url = url.rsplit("/", 1)[0]
        return url

    def get_schema(self) -> Mapping[str, FieldView]:
        """The memoized schema view (see SchemaViewCache)."""
        return self._schema_cache.get()

    def _owner_query(self, request: Request) -> Dict[str, Any]:
        if not self.opts.own_user:
            return {}
        owner = resolve_attr(request.state, self.opts.own_user_request_property)
        return {self.opts.own_user_schema_property: owner}

    def _prep_response(self, has_id: bool, operation: Optional[str] = None) -> Step:
        async def prep_response(
            request: Request, ctx: RequestContext, call_next: CallNext
        ) -> Response:
            ctx = ctx.evolve(
                opts=self.opts.snapshot(self.get_base_url(request, has_id, operation)),
                schema=self.get_schema(),
                current_user=getattr(request.state, "user", None),
                fn=TEMPLATE_HELPERS,
                query=self._owner_query(request),
            )
            return await call_next(ctx)

        return prep_response

    def _guarded(self, step: Step, redirect_url: str) -> Step:
        """Route anything `step` raises through the error handler."""

        async def guarded_step(
            request: Request, ctx: RequestContext, call_next: CallNext
        ) -> Response:
            try:
                return await step(request, ctx, call_next)
            except Exception as exc:
                return self.handle_error(request, exc, redirect_url)

        return guarded_step

    # ══════════════════════════════════════════════════════════════════════
    # Helpers
    # ══════════════════════════════════════════════════════════════════════

    @staticmethod
    def process(params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Drop every key starting with an underscore.

        Not validation: it only keeps client-supplied "private" keys away
        from storage-level field assignment.
        """
        return {key: value for key, value in params.items() if not str(key).startswith("_")}

    def _serialize(self, item: Any) -> Any:
        if self.opts.sanitize_result is not None:
            return self.opts.sanitize_result(item)
        return serialize_item(item, self.get_schema(), self.opts.url_field)

    def _saved_message(self, item: Any) -> str:
        title = get_value(item, self.opts.name_field) or url_value(item, self.opts.url_field)
        return f'"{title}" was saved.' if title else "The item was saved."

    def add_flash_success(self, request: Request, item: Any) -> None:
        self.flash.add(request, FLASH_SUCCESS, self._saved_message(item))

    def _referer(self, request: Request) -> str:
        return request.headers.get("referer") or request.url.path

    def _log_error(self, request: Request, exc: BaseException) -> None:
        rid = request_id_var.get("")
        if isinstance(exc, CrudeError):
            logger.warning(
                "[%s] %s %s failed: %s | Context: %s",
                rid, request.method, request.url.path, exc.message, exc.context,
            )
        else:
            logger.error(
                "[%s] %s %s failed unexpectedly: %s",
                rid, request.method, request.url.path, str(exc),
                exc_info=exc,
            )

    def _render(self, key: str, ctx: RequestContext, status_code: int = 200) -> HTMLResponse:
        """Render template `key`; wrap it in the layout when one is configured."""
        variables = ctx.template_vars()
        output = self.compiled[key].render(variables)
        layout = self.compiled.get("layout")
        if layout is None:
            return HTMLResponse(output, status_code=status_code)
        variables[VIEW_OUTPUT_KEY] = Markup(output)
        return HTMLResponse(layout.render(variables), status_code=status_code)

    def _checked_url_value(self, item: Any) -> str:
        if item is None:
            raise ConsistencyError(reason=200)
        value = url_value(item, self.opts.url_field)
        if value is None:
            raise ConsistencyError(reason=201, context={"url_field": self.opts.url_field})
        return value

    def _item_error(
        self, request: Request, ctx: RequestContext, exc: Exception, view: str
    ) -> Response:
        """A failed single-item read: render `view` with the error in context."""
        if self.opts.no_views:
            return self.handle_error(request, exc, self.get_base_url(request, has_id=True))
        self._log_error(request, exc)
        status_code = 404 if isinstance(exc, NotFoundError) else 400
        return self._render(view, ctx.evolve(error=error_message(exc)), status_code=status_code)

    # ══════════════════════════════════════════════════════════════════════
    # Error handler
    # ══════════════════════════════════════════════════════════════════════

    def handle_error(self, request: Request, error: BaseException, redirect_url: str) -> Response:
        """
        Finish a failed request according to the negotiated format.

        JSON clients (Accept resolves to json, or no_views) get a 400 error
        envelope; everyone else gets an error flash and a redirect to
        `redirect_url`.
        """
        self._log_error(request, error)
        if self.opts.no_views or wants_json(request):
            return json_error(error, status_code=400)
        self.flash.add(request, FLASH_ERROR, error_message(error))
        return redirect(redirect_url)

    # ══════════════════════════════════════════════════════════════════════
    # Operation handlers
    # ══════════════════════════════════════════════════════════════════════

    async def _create(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        base_url = self.get_base_url(request)
        try:
            data = self.process(await read_body(request))
            data.update(ctx.query)
            item = await self.entity.create(data)
            value = self._checked_url_value(item)
        except Exception as exc:
            return self.handle_error(request, exc, f"{base_url}/add")

        if self.opts.no_views:
            return JSONResponse(self._serialize(item), status_code=201)

        self.add_flash_success(request, item)
        return redirect(f"{base_url}/{value}")

    async def _create_view(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        if self.opts.no_views:
            return unimplemented(NO_VIEWS_MESSAGE)
        ctx = ctx.evolve(
            error=self.flash.consume(request, FLASH_ERROR),
            success=self.flash.consume(request, FLASH_SUCCESS),
        )
        return self._render("add", ctx)

    async def _read_list(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        if ctx.items is None:
            # Pagination disabled: read every match
            try:
                items = await self.entity.read(list_query(request, ctx, self.opts) or None)
            except Exception as exc:
                return self.handle_error(request, exc, settings.error_redirect_url)
            ctx = ctx.evolve(items=items)

        if self.opts.no_views:
            return JSONResponse({
                "items": [self._serialize(item) for item in ctx.items],
                "pagination": ctx.pagination.model_dump() if ctx.pagination else None,
            })

        return self._render("list", ctx)

    async def _read_one(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        item_id = request.path_params.get("id")
        query = {self.opts.url_field: item_id, **ctx.query}
        try:
            item = await self.entity.read_one(query)
            if item is None:
                raise NotFoundError(resource=self.resource, resource_id=item_id)
        except Exception as exc:
            return self._item_error(request, ctx, exc, "view")

        if self.opts.no_views:
            return JSONResponse(self._serialize(item))

        ctx = ctx.evolve(item=item, success=self.flash.consume(request, FLASH_SUCCESS))
        return self._render("view", ctx)

    async def _update(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        try:
            body = await read_body(request)
        except ValidationError as exc:
            return self.handle_error(request, exc, self._referer(request))

        ident = body.get(self.opts.id_field)
        if ident is None or ident == "":
            return unimplemented(NO_ID_MESSAGE)
        if not self.opts.no_views and not self.has_edit_view:
            return unimplemented(NO_EDIT_VIEW_MESSAGE)

        target = {self.opts.id_field: ident, **ctx.query} if ctx.query else ident
        data = self.process(body)
        data.update(ctx.query)
        try:
            item = await self.entity.update(target, data)
            new_value = self._checked_url_value(item)
        except Exception as exc:
            return self.handle_error(request, exc, self._referer(request))

        if self.opts.no_views:
            return JSONResponse(self._serialize(item))

        current_value = request.path_params.get("id")
        if new_value != current_value:
            logger.info("Canonical URL changed: %s → %s", current_value, new_value)
            self.add_flash_success(request, item)
            return redirect(f"{self.get_base_url(request, has_id=True)}/{new_value}")

        ctx = ctx.evolve(item=item, success=self._saved_message(item))
        return self._render("view", ctx)

    async def _update_view(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        if self.opts.no_views:
            return unimplemented(NO_VIEWS_MESSAGE)
        if not self.has_edit_view:
            return unimplemented(NO_EDIT_VIEW_MESSAGE)

        item_id = request.path_params.get("id")
        query = {self.opts.url_field: item_id, **ctx.query}
        try:
            item = await self.entity.read_one(query)
            if item is None:
                raise NotFoundError(resource=self.resource, resource_id=item_id)
        except Exception as exc:
            return self._item_error(request, ctx, exc, "edit")

        ctx = ctx.evolve(item=item, error=self.flash.consume(request, FLASH_ERROR))
        return self._render("edit", ctx)

    async def _delete(self, request: Request, ctx: RequestContext, call_next: CallNext) -> Response:
        return unimplemented(DELETE_MESSAGE)
