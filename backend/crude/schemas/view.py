"""
Crude — View & Response Schemas
=================================

What:  Pydantic models the controller hands to templates and JSON clients.
Why:   The schema view, paging metadata and error envelope have a fixed
       shape; declaring them keeps templates and API clients in agreement.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FieldView(BaseModel):
    """
    What:  One entry of the schema view: a field path plus presentation flags.
    Who:   Built once by SchemaViewCache; read by every list/view/edit template.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Field path as known to the storage schema")
    type_name: str = Field(description="Storage type name (e.g. 'String')")
    can_show: bool = Field(description="Whether views render this field")
    name: str = Field(description="Human label")


class Paging(BaseModel):
    """
    What:  Page bounds and totals written by the pagination step.

    Fields:
        page:      1-indexed page number
        limit:     items per page after clamping
        skip:      rows skipped before this page
        total:     matching rows across all pages
        pages:     number of pages (at least 1)
        has_next / has_prev: navigation hints for templates
    """

    page: int
    limit: int
    skip: int
    total: int
    pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Paging":
        """Derives skip/pages/navigation; `page` is clamped to 1..pages."""
        pages = max(1, (total + limit - 1) // limit)
        page = min(max(1, page), pages)
        skip = (page - 1) * limit
        return cls(
            page=page,
            limit=limit,
            skip=skip,
            total=total,
            pages=pages,
            has_next=skip + limit < total,
            has_prev=page > 1,
        )


class ErrorResponse(BaseModel):
    """
    What:  Standardized JSON error body.

    Fields:
        error: Machine-readable error code (e.g. "persistence_error")
        message: Human-readable description
        request_id: Correlation ID for tracing this error in server logs
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """What:  Health check response showing service and database status."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
