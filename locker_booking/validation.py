from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Iterable, Mapping

from .errors import ValidationError
from .fields import Field, FieldContext, FieldError

_RESOURCE_ID_RE = re.compile(r"[0-9]{1,18}")


def validate_payload(
    fields: Iterable[Field],
    payload: Any,
    now: datetime,
    partial: bool = False,
) -> dict[str, Any]:
    """Validate and normalise a request body against field descriptors.

    Errors from every field are collected before raising. With ``partial``
    (PATCH) every field becomes optional and absent fields are left out of
    the result; otherwise missing optional fields fall back to their default.
    Keys not described by ``fields`` are dropped.
    """
    if not isinstance(payload, Mapping):
        raise ValidationError([{"field": "body", "message": "Request body must be a JSON object"}])

    context = FieldContext(now=now, values=payload)
    cleaned: dict[str, Any] = {}
    errors: list[dict[str, str]] = []

    for field in fields:
        value = payload.get(field.name)
        if value is None:
            if partial:
                continue
            if field.required:
                errors.append({"field": field.name, "message": f"{field.name} is required"})
            elif field.default is not None:
                cleaned[field.name] = field.default
            continue

        try:
            cleaned[field.name] = field.clean(value, context)
        except FieldError as error:
            errors.append({"field": field.name, "message": str(error)})

    if errors:
        raise ValidationError(errors)
    return cleaned


def parse_resource_id(raw: Any, field: str = "id") -> int:
    text = str(raw).strip()
    # ASCII digits only, and short enough for a signed 64-bit column
    if not _RESOURCE_ID_RE.fullmatch(text):
        raise ValidationError([{"field": field, "message": "ID must be a number"}])
    return int(text)
