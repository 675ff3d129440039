from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from string_analyzer.models.string_record import StringRecord


class StringCreate(BaseModel):
    value: StrictStr = Field(..., description="String to analyze")


class StringProperties(BaseModel):
    length: int
    is_palindrome: bool
    unique_characters: int
    word_count: int
    sha256_hash: str
    character_frequency_map: Dict[str, int]


class StringResponse(BaseModel):
    id: str
    value: str
    properties: StringProperties
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StringListResponse(BaseModel):
    data: List[StringResponse]
    count: int
    filters_applied: Dict[str, Any] = {}


class InterpretedQuery(BaseModel):
    original: str
    parsed_filters: Dict[str, Any]


class NaturalLanguageResponse(BaseModel):
    data: List[StringResponse]
    count: int
    interpreted_query: InterpretedQuery


def build_string_response(record: StringRecord) -> StringResponse:
    """Nest the flat ORM columns into the public record shape."""
    created_at = record.created_at
    if created_at is not None and created_at.tzinfo is None:
        # SQLite hands datetimes back without tzinfo; they are stored as UTC
        created_at = created_at.replace(tzinfo=timezone.utc)

    return StringResponse(
        id=record.id,
        value=record.value,
        properties=StringProperties(
            length=record.length,
            is_palindrome=record.is_palindrome,
            unique_characters=record.unique_characters,
            word_count=record.word_count,
            sha256_hash=record.sha256_hash,
            character_frequency_map=record.character_frequency_map,
        ),
        created_at=created_at,
    )


def serialize_record(record: StringRecord) -> Dict[str, Any]:
    """JSON-ready dict of a record, for error bodies built outside response_model."""
    return build_string_response(record).model_dump(mode="json")
