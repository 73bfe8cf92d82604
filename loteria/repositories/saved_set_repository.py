"""Repository layer for saved set persistence (the history store)."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from loteria.db import get_db_backend, get_mongo_db
from loteria.models.saved_set import SavedSetRow
from loteria.schemas.saved_set import dump_saved_set, load_saved_set
from loteria.services.saved_sets import SavedSet


logger = logging.getLogger(__name__)

_COLLECTION = "saved_sets"


def _require_session(session: object | None) -> Session:
    if session is None:
        raise RuntimeError("SQLAlchemy session required for sql backend")
    return session  # type: ignore[return-value]


class SavedSetRepository:
    """Key-value storage of saved sets, keyed by id.

    Values are the documents produced by `dump_saved_set`; callers only ever
    see the frozen value types.
    """

    def load(self, session: object | None = None) -> list[SavedSet]:
        """All saved sets, newest first."""

        if get_db_backend() == "mongo":
            cur = get_mongo_db()[_COLLECTION].find({}, {"_id": 0}).sort("created_at", -1)
            return [load_saved_set(doc["payload"]) for doc in cur]

        db = _require_session(session)
        stmt = select(SavedSetRow).order_by(SavedSetRow.created_at.desc(), SavedSetRow.id.asc())
        return [load_saved_set(row.payload) for row in db.scalars(stmt).all()]

    def save(self, session: object | None, saved_sets: Sequence[SavedSet]) -> None:
        """Replace the whole collection with `saved_sets`."""

        if get_db_backend() == "mongo":
            coll = get_mongo_db()[_COLLECTION]
            coll.delete_many({})
            if saved_sets:
                coll.insert_many([self._document(s) for s in saved_sets])
            return

        db = _require_session(session)
        keep = {s.id for s in saved_sets}
        for row in db.scalars(select(SavedSetRow)).all():
            if row.id not in keep:
                db.delete(row)
        for saved_set in saved_sets:
            row = db.get(SavedSetRow, saved_set.id)
            if row is None:
                db.add(self._row(saved_set))
            else:
                row.payload = dump_saved_set(saved_set)
        db.flush()

    def get(self, session: object | None, set_id: str) -> SavedSet | None:
        if get_db_backend() == "mongo":
            doc = get_mongo_db()[_COLLECTION].find_one({"id": str(set_id)}, {"_id": 0})
            return load_saved_set(doc["payload"]) if doc else None

        row = _require_session(session).get(SavedSetRow, str(set_id))
        return load_saved_set(row.payload) if row is not None else None

    def add(self, session: object | None, saved_set: SavedSet) -> SavedSet:
        if get_db_backend() == "mongo":
            get_mongo_db()[_COLLECTION].insert_one(self._document(saved_set))
            return saved_set

        db = _require_session(session)
        db.add(self._row(saved_set))
        db.flush()  # surface IntegrityError on duplicate ids
        return saved_set

    def replace(self, session: object | None, saved_set: SavedSet) -> bool:
        """Store a new value for an existing id.

        Returns False, writing nothing, when the set was deleted meanwhile.
        """

        if get_db_backend() == "mongo":
            result = get_mongo_db()[_COLLECTION].replace_one(
                {"id": saved_set.id}, self._document(saved_set), upsert=False
            )
            found = result.matched_count > 0
        else:
            db = _require_session(session)
            row = db.get(SavedSetRow, saved_set.id)
            found = row is not None
            if row is not None:
                row.payload = dump_saved_set(saved_set)
                db.flush()

        if not found:
            logger.info("Saved set %s disappeared before update; skipping", saved_set.id)
        return found

    def delete(self, session: object | None, set_id: str) -> bool:
        if get_db_backend() == "mongo":
            return get_mongo_db()[_COLLECTION].delete_one({"id": str(set_id)}).deleted_count > 0

        db = _require_session(session)
        row = db.get(SavedSetRow, str(set_id))
        if row is None:
            return False
        db.delete(row)
        db.flush()
        return True

    @staticmethod
    def _document(saved_set: SavedSet) -> dict:
        return {
            "id": saved_set.id,
            "variant_id": saved_set.variant_id,
            "kind": saved_set.kind,
            "created_at": saved_set.created_at,
            "payload": dump_saved_set(saved_set),
        }

    @staticmethod
    def _row(saved_set: SavedSet) -> SavedSetRow:
        return SavedSetRow(
            id=saved_set.id,
            variant_id=saved_set.variant_id,
            kind=saved_set.kind,
            created_at=saved_set.created_at,
            payload=dump_saved_set(saved_set),
        )
