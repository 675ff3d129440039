from typing import List, Optional
import logging

from sqlalchemy import and_, desc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from string_analyzer.errors import ConflictError, PersistenceError
from string_analyzer.filters import Predicate
from string_analyzer.models.string_record import StringRecord
from string_analyzer.schemas.string_record import serialize_record
from string_analyzer.utils import analyze_string, compute_string_id, is_valid_string_id

logger = logging.getLogger(__name__)

CONFLICT_MESSAGE = "String already exists in the system"


def get_string_by_id(db: Session, string_id: str) -> Optional[StringRecord]:
    """Get string record by ID (hash). Malformed IDs are simply not found."""
    if not is_valid_string_id(string_id):
        return None
    try:
        return db.get(StringRecord, string_id)
    except SQLAlchemyError as e:
        logger.exception("Failed to load string record")
        raise PersistenceError() from e


def create_string_record(db: Session, value: str) -> StringRecord:
    """Analyze and insert a new record.

    ``value`` must already be in canonical (trimmed) form. Raises
    ConflictError carrying the stored record when the value exists, including
    when a concurrent insert wins the race on the primary key.
    """
    string_id = compute_string_id(value)

    existing = get_string_by_id(db, string_id)
    if existing:
        logger.warning(f"Duplicate string rejected: {string_id}")
        raise ConflictError(CONFLICT_MESSAGE, existing=serialize_record(existing))

    properties = analyze_string(value)
    db_string = StringRecord(id=string_id, value=value, value_lower=value.lower(), **properties)

    try:
        db.add(db_string)
        db.commit()
    except IntegrityError:
        # Another writer inserted the same id between our check and commit
        db.rollback()
        winner = get_string_by_id(db, string_id)
        logger.warning(f"Concurrent insert lost for {string_id}")
        raise ConflictError(
            CONFLICT_MESSAGE,
            existing=serialize_record(winner) if winner else None,
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to insert string record")
        raise PersistenceError() from e

    db.refresh(db_string)
    logger.info(f"Stored string {string_id} (length={db_string.length})")
    return db_string


def get_all_strings(db: Session, predicate: Predicate) -> List[StringRecord]:
    """Get all records matching every clause of ``predicate``, newest first"""
    query = db.query(StringRecord)

    if predicate:
        query = query.filter(and_(*predicate))

    try:
        return query.order_by(desc(StringRecord.created_at), StringRecord.id).all()
    except SQLAlchemyError as e:
        logger.exception("Failed to query string records")
        raise PersistenceError() from e


def delete_string(db: Session, string_id: str) -> bool:
    """Delete string record by ID. Returns False when nothing was removed."""
    db_string = get_string_by_id(db, string_id)
    if not db_string:
        return False

    try:
        db.delete(db_string)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to delete string record")
        raise PersistenceError() from e

    logger.info(f"Deleted string {string_id}")
    return True
