"""Error envelope schemas, used to document non-2xx responses in OpenAPI."""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Top-level error envelope rendered by the app's exception handlers."""

    error: ErrorBody


def error_responses(*status_codes: int) -> dict[int | str, dict]:
    """``responses=`` mapping for a router or route that can fail with these codes."""
    return {code: {"model": ErrorResponse} for code in status_codes}
