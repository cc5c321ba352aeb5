"""
SQLAlchemy 2.0 async DeclarativeBase for Pitchside.

All models inherit from this Base.
"""

import uuid

from sqlalchemy.orm import DeclarativeBase


def new_id() -> str:
    """Client-side UUID default so inserts work on SQLite as well as Postgres."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all Pitchside database models."""
    pass
