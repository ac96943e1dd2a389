"""Mixins for SQLAlchemy models."""

from sqlalchemy import Column, DateTime, Integer, func
from sqlalchemy.orm import declared_attr


class TimestampMixin:
    """Mixin to add created_at and updated_at timestamp columns."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class RowVersionMixin:
    """Optimistic concurrency counter.

    SQLAlchemy bumps ``row_version`` on every flush and adds it to the UPDATE's
    WHERE clause, so writing over a row another session already changed raises
    ``StaleDataError`` instead of silently overwriting it.
    """

    row_version = Column(Integer, nullable=False)

    @declared_attr
    def __mapper_args__(cls):
        return {"version_id_col": cls.row_version}
