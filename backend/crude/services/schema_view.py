"""
Crude — Schema View Cache
===========================

What:  Derives, once per controller, the presentation view of an entity's
       fields: which paths templates may render and under what label.
Why:   Every list/view/edit render needs the same projection. It depends
       only on the entity schema and the controller options, so computing
       it per request would be pure waste.
How:   The first get() walks entity.schema_paths(), applies can_show() and
       get_name(), and memoizes a read-only mapping. Later calls return
       the memoized mapping untouched.

Concurrency:
    Requests interleave on one event loop and the build contains no await,
    so a build can't be interrupted half-way. Even if two builds did race,
    both would produce equal values (the computation is deterministic).

Visibility rules (can_show):
    1. Paths listed in view_exclude_paths      → hidden
    2. The id path (id_field or "_id")         → shown only with show_id
    3. Nested paths ("address.street")         → shown only with expand_paths
    4. Other paths starting with "_"
       (internal / reserved)                   → hidden
    5. Everything else                         → shown
"""

import logging
import re
from types import MappingProxyType
from typing import Mapping, Optional

from crude.schemas.options import CrudOptions
from crude.schemas.view import FieldView
from crude.services.entity_base import Entity

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def humanize(path: str) -> str:
    """
    Turn a field path into a label.

    Examples:
        "local_url"      → "Local url"
        "createdAt"      → "Created at"
        "address.street" → "Address street"
    """
    words = _CAMEL_BOUNDARY.sub(" ", path).replace("_", " ").replace(".", " ")
    text = " ".join(words.split()).lower()
    return text[:1].upper() + text[1:]


def can_show(path: str, options: CrudOptions) -> bool:
    """Whether templates may render `path` under the given options."""
    if path in options.view_exclude_paths:
        return False
    if path in (options.id_field, "_id"):
        return options.show_id
    if "." in path:
        return options.expand_paths
    return not path.startswith("_")


def get_name(path: str, options: CrudOptions) -> str:
    """The label for `path`: an explicit label, else the humanized path."""
    if path in options.labels:
        return options.labels[path]
    if not options.expand_paths:
        path = path.rsplit(".", 1)[-1]
    return humanize(path)


class SchemaViewCache:
    """
    Memoized schema view for one entity under one set of options.

    The options object is held by reference and read on first access, so
    options changed before the first request are honoured and changes after
    it are not.
    """

    def __init__(self, entity: Entity, options: CrudOptions):
        self._entity = entity
        self._options = options
        self._view: Optional[Mapping[str, FieldView]] = None

    def get(self) -> Mapping[str, FieldView]:
        if self._view is None:
            self._view = self._build()
        return self._view

    def _build(self) -> Mapping[str, FieldView]:
        view = {}
        for path, type_name in self._entity.schema_paths().items():
            view[path] = FieldView(
                path=path,
                type_name=type_name,
                can_show=can_show(path, self._options),
                name=get_name(path, self._options),
            )
        logger.debug(
            "Built schema view for %s: %d fields, %d visible",
            type(self._entity).__name__,
            len(view),
            sum(1 for field in view.values() if field.can_show),
        )
        return MappingProxyType(view)
