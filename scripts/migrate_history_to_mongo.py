"""Copy the saved-set history from the SQL store to MongoDB.

Usage:
  DATABASE_URL=sqlite:///./loteria.db MONGODB_URI=mongodb://localhost:27017 \
    python scripts/migrate_history_to_mongo.py --skip-existing

Notes:
- The SQL table is left untouched.
- `--drop-target` clears the Mongo collection first.
"""

from __future__ import annotations

import argparse
import logging
import os
from collections.abc import Sequence

from pymongo import ASCENDING, DESCENDING, MongoClient
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from loteria.config import resolve_database_url
from loteria.db import create_app_engine
from loteria.models.saved_set import SavedSetRow
from loteria.schemas.saved_set import load_saved_set


logger = logging.getLogger(__name__)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Migrate saved sets from SQL to MongoDB")
    parser.add_argument("--sql-url", dest="sql_url", type=str, default=None)
    parser.add_argument("--mongo-uri", dest="mongo_uri", type=str, default=None)
    parser.add_argument("--mongo-db", dest="mongo_db", type=str, default=None)
    parser.add_argument("--drop-target", action="store_true", help="Drop the target collection before import")
    parser.add_argument("--skip-existing", action="store_true", help="Skip ids already present in Mongo")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

    sql_url = str(args.sql_url or resolve_database_url())
    mongo_uri = str(args.mongo_uri or os.getenv("MONGODB_URI") or "mongodb://localhost:27017")
    mongo_db_name = str(args.mongo_db or os.getenv("MONGODB_DB") or "loteria")

    logger.info("Source SQL: %s", sql_url)
    logger.info("Target Mongo: %s (db=%s)", mongo_uri, mongo_db_name)

    engine = create_app_engine(sql_url)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    col = MongoClient(mongo_uri)[mongo_db_name]["saved_sets"]
    if args.drop_target:
        logger.warning("Dropping target collection: saved_sets")
        col.drop()
    col.create_index([("id", ASCENDING)], unique=True)
    col.create_index([("created_at", DESCENDING)])

    imported = 0
    with SessionLocal() as session:
        rows = session.scalars(select(SavedSetRow).order_by(SavedSetRow.created_at.asc())).all()
        logger.info("Found %d saved sets in SQL", len(rows))
        for row in rows:
            if args.skip_existing and col.find_one({"id": row.id}, {"_id": 1}):
                continue
            saved = load_saved_set(row.payload)  # refuse to copy unreadable documents
            doc = {
                "id": saved.id,
                "variant_id": saved.variant_id,
                "kind": saved.kind,
                "created_at": saved.created_at,
                "payload": row.payload,
            }
            col.replace_one({"id": saved.id}, doc, upsert=True)
            imported += 1

    logger.info("Imported saved sets: %d", imported)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
