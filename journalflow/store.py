"""
Entity store.

A thin layer over a SQLAlchemy session that addresses tables by collection
name and filters rows with plain dicts. A filter value that is a list, tuple
or set becomes an ``IN`` clause; anything else is an equality test.

Every write commits immediately. ``upsert`` is a single
``INSERT .. ON CONFLICT`` statement scoped to the given unique keys, so two
callers racing on the same key converge on one row.
"""

from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from journalflow.errors import Conflict
from journalflow.logging import get_logger
from journalflow.models import (
    Message,
    Paper,
    Proposal,
    Review,
    ReviewerAssignment,
    ReviewerExpertise,
    ReviewThread,
    Revision,
    User,
    Validation,
)

logger = get_logger(__name__)

COLLECTIONS = {
    model.__tablename__: model
    for model in (
        User,
        Proposal,
        Paper,
        ReviewerAssignment,
        ReviewThread,
        Message,
        Review,
        Revision,
        ReviewerExpertise,
        Validation,
    )
}

_INSERT_BY_DIALECT = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

Filters = dict[str, Any]


class EntityStore:
    def __init__(self, db: Session):
        self.db = db

    def _model(self, collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    def _query(self, model, filters: Filters | None, order_by: str | None = None, desc: bool = False):
        query = self.db.query(model)
        for column, value in (filters or {}).items():
            attr = getattr(model, column)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.filter(attr.in_(list(value)))
            else:
                query = query.filter(attr == value)
        if order_by:
            col = getattr(model, order_by)
            query = query.order_by(col.desc() if desc else col.asc(), model.id.asc())
        return query

    def _commit(self, collection: str) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            logger.warning("integrity_conflict", collection=collection, error=str(exc.orig))
            raise Conflict(f"Duplicate or invalid row for {collection}", collection=collection) from exc

    # ----------------------------------------
    # Reads
    # ----------------------------------------
    def get(
        self,
        collection: str,
        filters: Filters | None = None,
        order_by: str | None = None,
        desc: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list:
        query = self._query(self._model(collection), filters, order_by, desc)
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def count(self, collection: str, filters: Filters | None = None) -> int:
        return self._query(self._model(collection), filters).count()

    def get_one(self, collection: str, filters: Filters, order_by: str | None = None, desc: bool = False):
        return self._query(self._model(collection), filters, order_by, desc).first()

    # ----------------------------------------
    # Writes
    # ----------------------------------------
    def insert(self, collection: str, row: dict[str, Any]):
        obj = self._model(collection)(**row)
        self.db.add(obj)
        self._commit(collection)
        self.db.refresh(obj)
        return obj

    def update(self, collection: str, filters: Filters, patch: dict[str, Any]) -> list:
        """Apply ``patch`` to every row matching ``filters`` and return those rows."""
        rows = self._query(self._model(collection), filters).all()
        for obj in rows:
            for key, value in patch.items():
                setattr(obj, key, value)
        self._commit(collection)
        for obj in rows:
            self.db.refresh(obj)
        return rows

    def upsert(
        self,
        collection: str,
        row: dict[str, Any],
        conflict_keys: list[str],
        ignore_duplicates: bool = False,
    ):
        """Insert ``row`` or, when ``conflict_keys`` already exist, update it in place.

        With ``ignore_duplicates`` an existing row is left untouched. Returns
        the stored row either way.
        """
        model = self._model(collection)
        dialect = self.db.get_bind().dialect.name
        try:
            insert = _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise ValueError(f"Upsert is not supported on {dialect}") from None

        stmt = insert(model.__table__).values(**row)
        updates = {key: stmt.excluded[key] for key in row if key not in conflict_keys}
        if ignore_duplicates or not updates:
            stmt = stmt.on_conflict_do_nothing(index_elements=conflict_keys)
        else:
            stmt = stmt.on_conflict_do_update(index_elements=conflict_keys, set_=updates)

        try:
            self.db.execute(stmt)
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict(f"Upsert rejected for {collection}", collection=collection) from exc
        self._commit(collection)

        key = {name: row[name] for name in conflict_keys}
        return self._query(model, key).populate_existing().one()

    def delete(self, collection: str, filters: Filters) -> int:
        count = self._query(self._model(collection), filters).delete(synchronize_session="fetch")
        self._commit(collection)
        return count

    def rollback(self) -> None:
        self.db.rollback()
