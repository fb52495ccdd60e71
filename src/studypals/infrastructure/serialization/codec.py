"""
Encode domain records to JSON-shaped dicts and decode them back.

Decoding fails loudly: a missing required field or a value of the wrong
shape raises DeserializationError instead of silently defaulting.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from studypals.domain.analytics.models import (
    QuizSession,
    Review,
    StudyAnalytics,
    StudySession,
)
from studypals.domain.errors import DeserializationError

from .schemas import (
    QuizSessionSchema,
    ReviewSchema,
    StudyAnalyticsSchema,
    StudyHistorySchema,
    StudySessionSchema,
)

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_SCHEMAS: dict[type, type[BaseModel]] = {
    StudyAnalytics: StudyAnalyticsSchema,
    StudySession: StudySessionSchema,
    QuizSession: QuizSessionSchema,
    Review: ReviewSchema,
}


def humanize_validation_error(err: ValidationError) -> str:
    """Collapse pydantic's error list into one readable line."""
    parts = []
    for item in err.errors():
        location = ".".join(str(p) for p in item["loc"]) or "<root>"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def _validate(schema: type[SchemaT], payload: Any, record: str) -> SchemaT:
    if not isinstance(payload, Mapping):
        raise DeserializationError(record, f"expected an object, got {type(payload).__name__}")
    try:
        return schema.model_validate(payload)
    except ValidationError as e:
        raise DeserializationError(record, humanize_validation_error(e)) from e


def encode(record: Any) -> dict[str, Any]:
    """Serialize a StudyAnalytics, StudySession, QuizSession or Review."""
    schema = _SCHEMAS.get(type(record))
    if schema is None:
        raise TypeError(f"No wire schema for {type(record).__name__}")
    return schema.model_validate(asdict(record)).model_dump(mode="json", by_alias=True)


def decode_analytics(payload: Any) -> StudyAnalytics:
    return _validate(StudyAnalyticsSchema, payload, "StudyAnalytics").to_domain()


def decode_session(payload: Any) -> StudySession:
    return _validate(StudySessionSchema, payload, "StudySession").to_domain()


def decode_quiz_session(payload: Any) -> QuizSession:
    return _validate(QuizSessionSchema, payload, "QuizSession").to_domain()


def decode_review(payload: Any) -> Review:
    return _validate(ReviewSchema, payload, "Review").to_domain()


def decode_history(payload: Any) -> StudyHistorySchema:
    """Validate a history bundle; callers convert its parts with to_domain()."""
    return _validate(StudyHistorySchema, payload, "StudyHistory")


def loads(text: str, record: str) -> Any:
    """Parse JSON text, reporting syntax errors as DeserializationError."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning(f"Malformed JSON for {record}: {e}")
        raise DeserializationError(record, f"invalid JSON ({e.msg} at line {e.lineno})") from e


def dumps(record: Any) -> str:
    return json.dumps(encode(record), indent=2)
