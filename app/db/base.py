"""Shared SQLAlchemy declarative bases and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for business ORM models."""


class AuditBase(DeclarativeBase):
    """Base class for models stored in the separate audit database."""


# Import model modules so metadata is populated before create_all.
from app.models import audit_log as _audit_log  # noqa: E402,F401
from app.models import car as _car  # noqa: E402,F401
from app.models import refresh_token as _refresh_token  # noqa: E402,F401
from app.models import user as _user  # noqa: E402,F401
