"""
Crude — Article SQLAlchemy Model
==================================

What:  The demo model mounted by the application factory at /articles.
Why:   Gives the generic controller a concrete table to list, view, create
       and edit out of the box, and gives the test-suite a realistic schema.
How:   Plain declarative model; SqlAlchemyEntity introspects its columns to
       build the schema view.

Column Notes:
    - id:         integer identity; hidden in views unless show_id is set
    - local_url:  the url-field; the canonical URL is /articles/<local_url>
    - name:       the name-field used in flash messages
    - _notes:     underscore-prefixed attribute; an internal path that the
                  schema view never shows and that `process` keeps clients
                  from writing
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crude.database import Base


class Article(Base):
    """A short piece of content addressed by its local URL."""

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    local_url: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        unique=True,
        comment="URL slug; unique because it addresses the article",
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    body: Mapped[str] = mapped_column(Text, nullable=False, default="")

    _notes: Mapped[str | None] = mapped_column(
        "notes",
        Text,
        nullable=True,
        default=None,
        comment="Editorial notes; never rendered or client-writable",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        """Developer-friendly string representation for debugging."""
        return f"<Article(id={self.id}, local_url='{self.local_url}')>"
