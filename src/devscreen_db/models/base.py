"""Declarative base for the screening tables.

Unnamed indexes and unique constraints get deterministic names, matching
the hand-written Alembic revisions (``ix_screening_sessions_family_id``).
Constraints the workflows rely on, such as ``uq_analysis_session``, are
named explicitly on the models.
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
}


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)
