"""
Crude — Custom Exception Hierarchy
====================================

What:  Application-specific exceptions for the CRUD pipelines.
Why:   Pipelines recover from storage failures by mapping them to a flash +
       redirect (HTML) or a JSON error envelope. A typed hierarchy lets the
       error handler pick the user-facing message and error code without
       inspecting driver-specific exceptions.
How:   Each exception carries a message (safe to show) and an optional
       context dict (logged, never returned to the client), plus a stable
       `code` used in JSON envelopes.
Who:   Raised by entity adapters and controllers; consumed by
       CrudController.handle_error and the global handlers in main.py.

Exception Hierarchy:
    CrudeError (base)
    ├── ValidationError          → malformed request body
    ├── NotFoundError            → read/update/delete target missing
    ├── PersistenceError         → storage create/update/save failure
    ├── ConsistencyError         → create returned no usable url-field value
    ├── UnimplementedRouteError  → delete stub / missing id / missing edit_view
    └── TemplateConfigError      → configured template missing (startup fatal)

    Incomplete entity adapters raise the built-in NotImplementedError instead;
    that is a wiring bug, not a request-level condition.
"""

from typing import Any, Dict, Optional


class CrudeError(Exception):
    """
    Base exception for all Crude application errors.

    Attributes:
        message:  User-facing error description (safe to flash or return)
        context:  Additional debug info (logged but NOT returned to client)
        code:     Stable machine-readable error code for JSON envelopes
    """

    code = "crude_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)

    def to_envelope(self) -> Dict[str, str]:
        """The `{error, message}` body returned to JSON clients."""
        return {"error": self.code, "message": self.message}


class ValidationError(CrudeError):
    """
    Raised when the request body cannot be read.

    When:    Invalid JSON, a JSON body that is not an object, unreadable form data.
    Note:    This is NOT field validation; storage adapters own that and
             report it as PersistenceError.
    """

    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(CrudeError):
    """
    Raised when a requested record does not exist.

    Treated as a user-visible condition (rendered with an error message),
    not a system fault.
    """

    code = "not_found"

    def __init__(
        self,
        resource: str = "item",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PersistenceError(CrudeError):
    """
    Raised when a storage create/update/save (or query) fails.

    Security Note:
        The message is generic. Driver errors (constraint names, SQL) go into
        `context` and the server log only.
    """

    code = "persistence_error"

    def __init__(
        self,
        message: str = "Could not save the item. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConsistencyError(CrudeError):
    """
    Raised when create succeeds but the record can't be addressed.

    When:    The adapter returned nothing (#200), or the record's url-field is
             empty (#201). Handled exactly like a persistence failure.
    """

    code = "consistency_error"

    def __init__(
        self,
        reason: int = 200,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["reason"] = reason
        super().__init__(
            message=f"An error occurred, please try again. #{reason}",
            context=ctx,
        )
        self.reason = reason


class UnimplementedRouteError(CrudeError):
    """
    A deliberate dead end: the delete stub or a missing required option.

    Never routed through the error handler. Controllers turn it into a
    plain-text 501 so misconfiguration is obvious during development.
    """

    code = "unimplemented_route"
    status_code = 501

    def __init__(
        self,
        message: str = "NOT IMPLEMENTED",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TemplateConfigError(CrudeError):
    """
    Raised at controller construction when a configured template is missing.

    Fatal: the controller refuses to build rather than failing per request.
    """

    code = "template_config_error"

    def __init__(
        self,
        template: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["template"] = template
        super().__init__(
            message=f"Template '{template}' could not be loaded",
            context=ctx,
        )
        self.template = template
