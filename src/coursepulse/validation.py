"""Boundary validation of raw request bodies.

Each tracking route turns its raw body into either a `Parsed` value or a
`Rejected` result before touching the database, so handlers never operate on
partially validated input.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


class RejectionKind(str, Enum):
    MALFORMED_JSON = "malformed_json"
    NOT_AN_OBJECT = "not_an_object"
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"


@dataclass(frozen=True)
class Parsed(Generic[ModelT]):
    value: ModelT


@dataclass(frozen=True)
class Rejected:
    kind: RejectionKind
    message: str
    details: list[dict[str, Any]] = field(default_factory=list)


ParseResult = Union[Parsed[ModelT], Rejected]


def _error_details(exc: ValidationError) -> list[dict[str, Any]]:
    return [
        {
            "loc": [str(part) for part in error["loc"]],
            "msg": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def parse_body(model: Type[ModelT], raw: Union[bytes, str]) -> ParseResult:
    """Decode a JSON request body and validate it against `model`."""
    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return Rejected(RejectionKind.MALFORMED_JSON, "Request body is not valid JSON.")

    if not isinstance(payload, dict):
        return Rejected(RejectionKind.NOT_AN_OBJECT, "Request body must be a JSON object.")

    try:
        return Parsed(model.model_validate(payload))
    except ValidationError as exc:
        details = _error_details(exc)
        missing = [d for d in details if d["type"] == "missing"]
        if missing:
            fields = ", ".join(".".join(d["loc"]) for d in missing)
            return Rejected(
                RejectionKind.MISSING_FIELD, f"Missing required field(s): {fields}", details
            )
        return Rejected(RejectionKind.INVALID_FIELD, "Validation error", details)
