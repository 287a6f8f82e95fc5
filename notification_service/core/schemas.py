"""Shared API schemas: RFC 7807 problem details."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    """A single field-level validation error."""

    field: str = Field(description="Dotted path of the offending field")
    message: str = Field(description="Human-readable error message")
    type: str = Field(description="Error type identifier")
    value: Any | None = Field(default=None, description="Rejected input value")


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details body."""

    type: str = Field(default="about:blank", description="Problem type identifier")
    title: str = Field(description="Short summary of the problem type")
    status: int = Field(description="HTTP status code")
    detail: str | None = Field(default=None, description="Explanation of this occurrence")
    instance: str | None = Field(default=None, description="URI of this occurrence")


class ValidationProblemDetail(ProblemDetail):
    """Problem details carrying field-level errors."""

    errors: list[FieldError] = Field(default_factory=list)
