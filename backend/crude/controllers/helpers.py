"""
Crude — View Helpers
======================

What:  Small functions shared by templates (through the `fn` table in every
       request context) and by the controller itself.
Why:   Records may be ORM objects, mappings or plain objects; templates
       shouldn't care which. Reading a field, formatting it and building an
       item URL go through one place.
"""

from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from fastapi.encoders import jsonable_encoder

from crude.schemas.view import FieldView
from crude.services.schema_view import humanize

_MISSING = object()


def get_value(item: Any, path: str, default: Any = None) -> Any:
    """Read a (possibly dotted) field path from an object or mapping."""
    current = item
    for part in path.split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            current = current.get(part, _MISSING)
        else:
            current = getattr(current, part, _MISSING)
        if current is _MISSING:
            return default
    return current


def url_value(item: Any, url_field: str) -> Optional[str]:
    """
    The url-field value as a path segment, or None when unusable.

    Strings and integers qualify (an integer primary key is a fine url-field);
    empty strings, booleans and None do not.
    """
    value = get_value(item, url_field)
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value:
        return value
    return None


def item_url(base_url: str, item: Any, url_field: str) -> str:
    """Canonical URL of an item below `base_url`."""
    return f"{base_url.rstrip('/')}/{url_value(item, url_field) or ''}"


def format_value(value: Any) -> str:
    """Render a field value as display text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ", timespec="minutes")
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def resolve_attr(obj: Any, dotted: str) -> Any:
    """Follow a dotted attribute path; None as soon as a link is missing."""
    return get_value(obj, dotted)


def serialize_item(
    item: Any,
    schema: Mapping[str, FieldView],
    url_field: str,
) -> Dict[str, Any]:
    """
    Built-in JSON sanitizer: visible fields plus the url-field.

    Replaced wholesale by the `sanitize_result` option when set.
    """
    data = {
        path: get_value(item, path)
        for path, field in schema.items()
        if field.can_show or path == url_field
    }
    return jsonable_encoder(data)


# Exposed to templates as `fn`
TEMPLATE_HELPERS: Mapping[str, Any] = MappingProxyType({
    "value": get_value,
    "format": format_value,
    "item_url": item_url,
    "humanize": humanize,
})
