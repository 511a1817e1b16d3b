"""
Entity store: the create / find / update / delete / count / aggregate
boundary the core modules talk to.

An EntityStore wraps one SQLAlchemy session and is passed explicitly into
every core function, so tests can run the same code against an in-memory
SQLite database.  Filters are ordinary SQLAlchemy criteria:

    store.find_one(Contact, Contact.email == email, Contact.status != "closed")

No operation spans more than one commit.  Unique constraints declared on
the models are the real guard against concurrent duplicates: a violation
at commit time is rolled back and re-raised as UniqueViolation so the
caller can turn it into its own duplicate error.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import new_id
from errors import InternalError

logger = logging.getLogger(__name__)

__all__ = ["EntityStore", "Page", "UniqueViolation", "new_id"]


class UniqueViolation(Exception):
    """A write was rejected by a store-level unique constraint."""


@dataclass
class Page:
    items: list
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class EntityStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, model, /, **values):
        record = model(**values)
        self.session.add(record)
        self._commit()
        return record

    def update_by_id(self, model, record_id: str, values: dict[str, Any]):
        """Apply `values` to the record; returns None if it does not exist."""
        record = self.find_by_id(model, record_id)
        if record is None:
            return None
        for key, value in values.items():
            setattr(record, key, value)
        self._commit()
        return record

    def save(self, record):
        """Commit in-place changes made to a record loaded from this store."""
        self._commit()
        return record

    def delete_by_id(self, model, record_id: str):
        record = self.find_by_id(model, record_id)
        if record is None:
            return None
        self.session.delete(record)
        self._commit()
        return record

    def _commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Store rejected write: %s", exc.orig)
            raise UniqueViolation(str(exc.orig)) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("Store write failed: %s", exc, exc_info=True)
            raise InternalError("Database error") from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def find_by_id(self, model, record_id: str | None):
        if not record_id:
            return None
        return self.session.get(model, record_id)

    def find_one(self, model, *criteria):
        return self.session.query(model).filter(*criteria).first()

    def find(self, model, *criteria, order_by=None, skip: int = 0, limit: int | None = None) -> list:
        query = self.session.query(model).filter(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        if skip:
            query = query.offset(skip)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def find_page(self, model, *criteria, order_by=None, page: int = 1, limit: int = 10) -> Page:
        """One page of results plus the unpaginated total."""
        page = max(page, 1)
        items = self.find(model, *criteria, order_by=order_by, skip=(page - 1) * limit, limit=limit)
        return Page(items=items, total=self.count(model, *criteria), page=page, limit=limit)

    def count(self, model, *criteria) -> int:
        return self.session.query(func.count(model.id)).filter(*criteria).scalar() or 0

    def aggregate_group_count(self, model, field: str) -> dict[Any, int]:
        """Map each distinct value of `field` to its row count, largest first."""
        column = getattr(model, field)
        counted = func.count(model.id)
        rows = (
            self.session.query(column, counted)
            .group_by(column)
            .order_by(counted.desc())
            .all()
        )
        return {value: count for value, count in rows}

    def sum_and_avg(self, model, field: str) -> tuple[float, float]:
        column = getattr(model, field)
        total, average = self.session.query(func.sum(column), func.avg(column)).one()
        return total or 0, average or 0
