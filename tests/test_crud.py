import pytest
from sqlalchemy.exc import OperationalError

from string_analyzer.crud import string_record as crud
from string_analyzer.errors import ConflictError, PersistenceError
from string_analyzer.schemas.string_record import StringResponse, build_string_response
from string_analyzer.utils import compute_string_id


def test_create_and_get_round_trip(db_session):
    created = crud.create_string_record(db_session, "level")
    assert created.id == compute_string_id("level")
    assert created.sha256_hash == created.id

    fetched = crud.get_string_by_id(db_session, created.id)
    assert fetched.value == "level"
    assert fetched.length == 5
    assert fetched.created_at is not None


def test_duplicate_raises_conflict_with_existing_record(db_session):
    created = crud.create_string_record(db_session, "hello")
    with pytest.raises(ConflictError) as exc_info:
        crud.create_string_record(db_session, "hello")

    assert exc_info.value.status_code == 409
    assert exc_info.value.extra["existing"]["id"] == created.id
    assert exc_info.value.extra["existing"]["value"] == "hello"


def test_lost_insert_race_is_reported_as_conflict(session_factory, monkeypatch):
    writer = session_factory()
    loser = session_factory()

    real_get = crud.get_string_by_id
    calls = {"count": 0}

    def racing_get(db, string_id):
        # The first lookup happens before the other writer commits
        calls["count"] += 1
        if calls["count"] == 1:
            crud.create_string_record(writer, "race")
            return None
        return real_get(db, string_id)

    monkeypatch.setattr(crud, "get_string_by_id", racing_get)

    with pytest.raises(ConflictError) as exc_info:
        crud.create_string_record(loser, "race")

    assert exc_info.value.extra["existing"]["value"] == "race"
    writer.close()
    loser.close()


def test_malformed_id_is_not_found(db_session):
    assert crud.get_string_by_id(db_session, "not-a-hash") is None
    assert crud.delete_string(db_session, "not-a-hash") is False


def test_delete(db_session):
    created = crud.create_string_record(db_session, "bye")
    assert crud.delete_string(db_session, created.id) is True
    assert crud.get_string_by_id(db_session, created.id) is None
    assert crud.delete_string(db_session, created.id) is False


def test_store_failure_becomes_persistence_error(db_session, monkeypatch):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(db_session, "commit", broken_commit)

    with pytest.raises(PersistenceError) as exc_info:
        crud.create_string_record(db_session, "unlucky")

    assert exc_info.value.status_code == 500
    assert exc_info.value.to_dict() == {"error": "Internal server error"}


def test_lower_cased_copy_is_stored(db_session):
    created = crud.create_string_record(db_session, "ÉLAN Vital")
    assert created.value == "ÉLAN Vital"
    assert created.value_lower == "élan vital"


def test_response_schema_reads_orm_attributes(db_session):
    created = crud.create_string_record(db_session, "noon")
    response = build_string_response(created)
    assert StringResponse.model_config["from_attributes"] is True
    assert response.created_at.tzinfo is not None
    assert response.properties.sha256_hash == response.id
