"""Decode raw query/form mappings into pydantic parameter models.

Endpoints never read request.query_params or request.form() field by
field; they hand the whole mapping to decode_params() and get back either
a validated model or an InvalidRequest carrying one message that names
the offending parameter.

Pydantic reports errors in field-declaration order and only runs
mode="after" model validators once every field is valid, so declaring
fields in the order they must be checked is what fixes the order of the
messages a caller sees.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from pydantic_core import ErrorDetails

from auth_mock.core.errors import InvalidRequest

ModelT = TypeVar("ModelT", bound=BaseModel)


def _describe(error: ErrorDetails) -> str:
    name = ".".join(str(part) for part in error["loc"]) or "request"
    kind = error["type"]
    if kind == "missing":
        return f"Parameter {name} is required."
    if kind == "extra_forbidden":
        return f'Unknown parameter: "{name}".'
    if kind == "string_type":
        return f"Parameter {name} must be a string."
    if kind == "value_error":
        # Our validators raise ValueError with a complete, caller-facing message
        return str(error.get("ctx", {}).get("error", error["msg"]))
    return f"Invalid parameter {name}: {error['msg']}."


def decode_params(model: type[ModelT], raw: Mapping[str, Any]) -> ModelT:
    """Validate ``raw`` against ``model``; raise InvalidRequest on the first error."""
    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        raise InvalidRequest(_describe(exc.errors()[0])) from None
