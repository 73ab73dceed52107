"""Input schemas for list actions.

One Pydantic model per list endpoint. Unknown fields are discarded
without raising, values are coerced where unambiguous (``"5"`` -> 5,
``"true"`` -> True), and only the first failure is reported. A field
explicitly set to ``null`` is a failure, not an omission.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationError,
    field_validator,
)

from helpdesk_ext.errors import ParamsValidationError
from helpdesk_ext.restful import Endpoint


def _normalize_sort(value: object) -> object:
    if isinstance(value, str):
        return value.strip().upper()
    return value


# -- custom types ---------------------------------------------------------

UInt = Annotated[int, Field(gt=0)]
SortOrder = Annotated[Literal["ASC", "DESC"], BeforeValidator(_normalize_sort)]


def _single_line(max_length: int) -> Any:
    """Trimmed, non-empty, newline-free string of at most ``max_length``."""
    return Annotated[
        str,
        StringConstraints(
            strip_whitespace=True,
            min_length=1,
            max_length=max_length,
            pattern=r"^[^\r\n]*$",
        ),
    ]


DepartmentName = _single_line(0x80)
TopicName = _single_line(0x20)
TagName = _single_line(0xFF)
AgentName = _single_line(0x40)
TeamName = _single_line(0x7D)


# -- schemas ----------------------------------------------------------------


class ListParams(BaseModel):
    """Fields shared by every list action."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    sort: SortOrder | None = None
    limit: UInt | None = None
    offset: UInt | None = None

    @field_validator("*", mode="before")
    @classmethod
    def reject_null(cls, value: object) -> object:
        if value is None:
            raise ValueError("null is not allowed")
        return value


class DepartmentsParams(ListParams):
    pid: UInt | None = None
    name: DepartmentName | None = None


class TopicsParams(ListParams):
    is_active: bool | None = None
    name: TopicName | None = None


class TagsParams(ListParams):
    is_active: bool | None = None
    name: TagName | None = None


class AgentsParams(ListParams):
    is_locked: bool | None = None
    on_vacation: bool | None = None
    department_id: UInt | None = None
    name: AgentName | None = None


class TeamsParams(ListParams):
    is_empty: bool | None = None
    is_active: bool | None = None
    name: TeamName | None = None


SCHEMAS: Mapping[Endpoint, type[ListParams]] = {
    Endpoint.DEPARTMENTS: DepartmentsParams,
    Endpoint.TOPICS: TopicsParams,
    Endpoint.TAGS: TagsParams,
    Endpoint.AGENTS: AgentsParams,
    Endpoint.TEAMS: TeamsParams,
}


# -- error messages ---------------------------------------------------------

_UINT_MESSAGE = "The '{field}' field must be a positive integer."
_BOOL_MESSAGE = "The '{field}' field must be a boolean."
_STRING_MESSAGE = "The '{field}' field must be a non-empty string."
_SORT_MESSAGE = "The '{field}' field value does not match any of the allowed values."

# One message per field type, whatever the constraint that failed.
FIELD_MESSAGES: Mapping[str, str] = {
    "sort": _SORT_MESSAGE,
    "limit": _UINT_MESSAGE,
    "offset": _UINT_MESSAGE,
    "pid": _UINT_MESSAGE,
    "department_id": _UINT_MESSAGE,
    "is_active": _BOOL_MESSAGE,
    "is_locked": _BOOL_MESSAGE,
    "on_vacation": _BOOL_MESSAGE,
    "is_empty": _BOOL_MESSAGE,
    "name": _STRING_MESSAGE,
}


def _error_message(error: Mapping[str, Any]) -> str:
    field = ".".join(str(part) for part in error["loc"]) or "params"
    if error["type"] == "string_too_long":
        max_length = error.get("ctx", {}).get("max_length")
        return (
            f"The '{field}' field length must be less than or equal to "
            f"{max_length} characters long."
        )
    if error["type"] == "string_pattern_mismatch":
        return f"The '{field}' field must be a single line string."
    template = FIELD_MESSAGES.get(field, "The '{field}' field is invalid.")
    return template.format(field=field)


def validate_params(schema: type[ListParams], params: object) -> dict[str, Any]:
    """Validate caller params against ``schema``.

    Args:
        schema: One of the ListParams models.
        params: Raw params object from the caller.

    Returns:
        Coerced params, without fields the caller did not set.

    Raises:
        ParamsValidationError: if ``params`` is not an object or any
            field fails its constraints, ``null`` included.
    """
    if not isinstance(params, Mapping):
        raise ParamsValidationError([{"message": "The 'params' must be an Object."}])

    try:
        model = schema.model_validate(dict(params))
    except ValidationError as exc:
        raise ParamsValidationError(
            [{"message": _error_message(exc.errors()[0])}]
        ) from exc

    return model.model_dump(exclude_unset=True)
