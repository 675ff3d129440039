from typing import Optional
import logging

from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from string_analyzer.crud import string_record as crud
from string_analyzer.database import get_db
from string_analyzer.errors import (
    FilterConflictError,
    FilterError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from string_analyzer.filters import INTERPRETER_SCHEMA, translate, translate_interpreted
from string_analyzer.schemas.string_record import (
    InterpretedQuery,
    NaturalLanguageResponse,
    StringCreate,
    StringListResponse,
    StringResponse,
    build_string_response,
)
from string_analyzer.services.interpreter import InterpreterError, QueryInterpreter, get_interpreter
from string_analyzer.utils import has_lone_surrogate, normalize_value

router = APIRouter()
logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "String does not exist in the system"


@router.post("/strings", response_model=StringResponse, status_code=status.HTTP_201_CREATED)
def create_string(string_data: StringCreate, db: Session = Depends(get_db)):
    """
    Analyze and store a string.
    Returns 409 (with the stored record) if the string already exists.
    """
    value = normalize_value(string_data.value)
    if not value:
        raise ValidationError("Invalid request body or missing 'value' field")
    if has_lone_surrogate(value):
        raise ValidationError("Invalid 'value': contains unpaired surrogate characters")

    db_string = crud.create_string_record(db, value)
    return build_string_response(db_string)


@router.get("/strings", response_model=StringListResponse)
def get_all_strings(
    is_palindrome: Optional[str] = Query(None, description="'true' or 'false'"),
    min_length: Optional[str] = Query(None, description="Minimum length (non-negative integer)"),
    max_length: Optional[str] = Query(None, description="Maximum length (non-negative integer)"),
    word_count: Optional[str] = Query(None, description="Exact word count (non-negative integer)"),
    contains_character: Optional[str] = Query(None, description="Single character, case-insensitive"),
    db: Session = Depends(get_db)
):
    """
    Get all strings with optional filtering.
    Values arrive as raw text and are parsed by the filter translator.
    """
    raw_filters = {
        key: value
        for key, value in (
            ("is_palindrome", is_palindrome),
            ("min_length", min_length),
            ("max_length", max_length),
            ("word_count", word_count),
            ("contains_character", contains_character),
        )
        if value is not None
    }

    try:
        predicate, filters_applied = translate(raw_filters)
    except FilterError as e:
        logger.warning(f"Rejected filters {raw_filters}: {e.message}")
        e.extra.setdefault("filters_applied", raw_filters)
        raise

    strings = crud.get_all_strings(db, predicate)
    data = [build_string_response(s) for s in strings]

    return StringListResponse(data=data, count=len(data), filters_applied=filters_applied)


@router.get("/strings/filter-by-natural-language", response_model=NaturalLanguageResponse)
async def filter_by_natural_language(
    query: Optional[str] = Query(None, description="Natural language query"),
    db: Session = Depends(get_db),
    interpreter: QueryInterpreter = Depends(get_interpreter),
):
    """
    Filter strings using natural language queries.
    Example: "all single word palindromic strings"
    """
    if query is None or not query.strip():
        raise ValidationError("Missing 'query' parameter for natural language filtering")

    try:
        parsed = await interpreter.interpret(query, INTERPRETER_SCHEMA)
    except InterpreterError as e:
        raise UpstreamError(
            f"Unable to parse natural language query: {e}",
            interpreted_query={"original": query, "parsed_filters": {}},
        )

    try:
        predicate, filters = translate_interpreted(parsed)
    except FilterConflictError as e:
        raise FilterConflictError(
            f"Query parsed but resulted in conflicting filters: {e.message}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            interpreted_query={"original": query, "parsed_filters": parsed},
        )
    except FilterError as e:
        raise FilterError(
            f"Interpreted query contained invalid filter values: {e.message}",
            interpreted_query={"original": query, "parsed_filters": parsed},
        )

    if not filters:
        raise UpstreamError(
            "Unable to parse natural language query: no recognizable filters",
            interpreted_query={"original": query, "parsed_filters": parsed},
        )

    # Blocking session work stays off the event loop
    strings = await run_in_threadpool(crud.get_all_strings, db, predicate)
    data = [build_string_response(s) for s in strings]

    return NaturalLanguageResponse(
        data=data,
        count=len(data),
        interpreted_query=InterpretedQuery(original=query, parsed_filters=filters),
    )


@router.get("/strings/{string_id}", response_model=StringResponse)
def get_string(string_id: str, db: Session = Depends(get_db)):
    """
    Get a stored string by its SHA-256 id.
    Returns 404 if it doesn't exist or the id is malformed.
    """
    db_string = crud.get_string_by_id(db, string_id)
    if not db_string:
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return build_string_response(db_string)


@router.delete("/strings/{string_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_string(string_id: str, db: Session = Depends(get_db)):
    """
    Delete a stored string by its id.
    Returns 404 if nothing was deleted.
    """
    if not crud.delete_string(db, string_id):
        raise NotFoundError(NOT_FOUND_MESSAGE)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
