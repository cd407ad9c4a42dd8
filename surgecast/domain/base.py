"""
SurgeCast Domain Base

Model base class and shared mixins
"""
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict

from sqlalchemy import Column, DateTime, Integer, event

from surgecast.core.database import Base
from surgecast.core.exceptions import ImmutableRecordError


def utcnow() -> datetime:
    """Naive UTC timestamp, the convention for every stored datetime"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    """Row bookkeeping timestamps"""

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class IDMixin:
    """Integer primary key"""

    id = Column(Integer, primary_key=True, autoincrement=True)


class BaseModel(Base, IDMixin, TimestampMixin):
    """
    Common model base

    Integer primary key plus bookkeeping timestamps.
    """
    __abstract__ = True

    def to_dict(self) -> Dict[str, Any]:
        """Column values as a JSON-friendly dict"""
        result = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            result[column.key] = value
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(id={getattr(self, 'id', None)})>"


def _reject_update(mapper, connection, target) -> None:
    raise ImmutableRecordError(
        f"{target.__class__.__name__} {getattr(target, 'id', None)} is append-only"
    )


def append_only(cls):
    """Class decorator: forbid flushing in-place updates of a model"""
    event.listen(cls, "before_update", _reject_update)
    return cls
