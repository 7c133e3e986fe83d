"""Database records (the platform's catalogue, not the hosted MySQL databases)."""
from __future__ import annotations
import logging
from typing import Any, List

from flapi.core.db import db
from flapi.core.exceptions import NotFoundError
from flapi.core.models import Database
from flapi.core.validators import validate_database_payload

logger = logging.getLogger(__name__)


def create_database(payload: Any) -> Database:
    data = validate_database_payload(payload)
    database = Database(name=data["name"])
    db.session.add(database)
    db.session.commit()
    logger.info("Database record created (id=%s)", database.id)
    return database


def get_databases() -> List[Database]:
    return list(db.session.execute(db.select(Database).order_by(Database.id)).scalars())


def get_database_by_id(database_id: int) -> Database:
    database = db.session.get(Database, database_id)
    if database is None:
        raise NotFoundError("Database not found")
    return database


def update_database(database_id: int, payload: Any) -> Database:
    database = get_database_by_id(database_id)
    data = validate_database_payload(payload)
    database.name = data["name"]
    db.session.commit()
    return database


def delete_database(database_id: int) -> None:
    database = get_database_by_id(database_id)
    db.session.delete(database)
    db.session.commit()
    logger.info("Database record deleted (id=%s)", database_id)
