"""Shape validation of Record data against a Type's Fields.

The store accepts any JSON document as ``Record.data``; callers that create
records on behalf of a user check the document here first. Keys are field ids.
Unknown keys pass through untouched; only declared fields are checked.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated, Any, Dict, List, Optional, Sequence, Union

from pydantic import HttpUrl, StrictBool, StrictFloat, StrictInt, StrictStr, StringConstraints, TypeAdapter, ValidationError

from ..errors import ToolValidationError
from .domain import EntityField, FieldType

Email = Annotated[str, StringConstraints(strict=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")]

_FIELD_ANNOTATIONS: Dict[FieldType, Any] = {
    FieldType.text: StrictStr,
    FieldType.rich_text: StrictStr,
    FieldType.select: StrictStr,
    FieldType.date: StrictStr,
    FieldType.number: Union[StrictInt, StrictFloat],
    FieldType.boolean: StrictBool,
    FieldType.multi_select: List[StrictStr],
    FieldType.url: HttpUrl,
    FieldType.email: Email,
    FieldType.relation: Any,
}


@lru_cache(maxsize=None)
def _adapter(field_type: FieldType, optional: bool) -> TypeAdapter:
    annotation = _FIELD_ANNOTATIONS[field_type]
    if optional:
        annotation = Optional[annotation]
    return TypeAdapter(annotation)


def validate_record_data(fields: Sequence[EntityField], data: Dict[str, Any]) -> None:
    """
    Check ``data`` against ``fields``.

    Args:
        fields: The Type's Fields.
        data: The record document keyed by field id.

    Raises:
        ToolValidationError: Listing every offending field by name.
    """
    problems: List[str] = []
    for field in fields:
        optional = not field.required
        if field.id not in data:
            if not optional:
                problems.append(f'"{field.name}" ({field.id}) is required')
            continue
        try:
            _adapter(field.type, optional).validate_python(data[field.id])
        except ValidationError as exc:
            message = exc.errors()[0].get("msg", "invalid value") if exc.errors() else "invalid value"
            problems.append(f'"{field.name}" ({field.id}) expects {field.type.value}: {message}')
    if problems:
        raise ToolValidationError("Invalid record data: " + "; ".join(problems))
