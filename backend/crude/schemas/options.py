"""
Crude — Controller Options
============================

What:  The per-controller configuration record (CrudOptions).
Why:   One CrudController serves one entity at one base URL; everything that
       varies between mounts (aliases for the url/name/id fields, templates,
       visibility rules, pagination, ownership) is declared here.
How:   A pydantic model with validate_assignment, so options may be changed
       after construction and are re-validated on every assignment.

Build-time vs request-time:
    The controller reads template names and `no_pagination` once, when it
    compiles templates and composes pipelines. Mutating those later has no
    effect on an already-built controller. Everything else is read per
    request (`show_id` in templates, `no_views`, `own_user`, `url_field`, ...).
    `labels`, `view_exclude_paths`, `show_id` and `expand_paths` also feed the
    schema view, which is computed once on first access.
"""

from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CrudOptions(BaseModel):
    """Options for a CrudController. Unknown keys are rejected."""

    model_config = ConfigDict(
        validate_assignment=True,
        arbitrary_types_allowed=True,
        extra="forbid",
    )

    base_url: str = Field(default="crude", description="Mount point of the entity")

    # ── Field aliases ─────────────────────────────────────────────────────
    url_field: str = Field(default="local_url", description="Field addressing an item in URLs")
    name_field: str = Field(default="name", description="Human-readable title field")
    id_field: str = Field(default="id", description="Identity field (update bodies carry it)")

    # ── Templates (captured at construction) ──────────────────────────────
    layout_view: Optional[str] = Field(default=None, description="Wraps output via `crud_view`")
    edit_view: Optional[str] = Field(default=None, description="Edit form; enables update routes")
    item_view: Optional[str] = None
    list_view: Optional[str] = None
    add_view: Optional[str] = None
    template_dirs: List[str] = Field(default_factory=list)

    # ── Presentation ──────────────────────────────────────────────────────
    show_id: bool = False
    expand_paths: bool = False
    view_exclude_paths: List[str] = Field(default_factory=list)
    labels: Dict[str, str] = Field(default_factory=dict)

    # ── Behaviour switches ────────────────────────────────────────────────
    no_pagination: bool = False
    no_views: bool = Field(default=False, description="JSON responses only")
    page_size: Optional[int] = Field(default=None, ge=1)
    max_page_size: Optional[int] = Field(default=None, ge=1)

    # ── Ownership ─────────────────────────────────────────────────────────
    # own_user_request_property: dotted path on request.state (e.g. "user.id")
    # own_user_schema_property:  model field holding the owner's id
    own_user: bool = False
    own_user_request_property: Optional[str] = None
    own_user_schema_property: Optional[str] = None

    # ── Callbacks ─────────────────────────────────────────────────────────
    # paginate_query(request, query) -> query, applied to list queries
    # sanitize_result(item) -> JSON-able value, replaces the built-in serializer
    paginate_query: Optional[Callable[..., Any]] = None
    sanitize_result: Optional[Callable[..., Any]] = None

    @model_validator(mode="after")
    def check_own_user(self) -> "CrudOptions":
        """Ownership enforcement needs both property names."""
        if self.own_user and not (
            self.own_user_request_property and self.own_user_schema_property
        ):
            raise ValueError(
                "own_user requires own_user_request_property and own_user_schema_property"
            )
        return self

    def snapshot(self, rendered_base_url: str) -> Dict[str, Any]:
        """
        Plain-dict copy of the options for one request's template context.

        Callbacks are left out; templates have no use for them.
        """
        data = self.model_dump(exclude={"paginate_query", "sanitize_result"})
        data["rendered_base_url"] = rendered_base_url
        return data
