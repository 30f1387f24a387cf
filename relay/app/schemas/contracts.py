"""
Contract location and validation result models.
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class SchemaLocationPair(BaseModel):
    """
    The two schema documents every relay exchange is checked against.

    Resolved once at startup, either from configuration or from the
    name-based text records.
    """

    request_schema_url: str = Field(
        ...,
        min_length=1,
        description="Location of the request-shape schema document",
    )

    receipt_schema_url: str = Field(
        ...,
        min_length=1,
        description="Location of the receipt-shape schema document",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


class ValidationIssue(BaseModel):
    """A single schema violation, addressed by JSON Pointer."""

    instance_path: str = Field(..., alias="instancePath")
    schema_path: str = Field(..., alias="schemaPath")
    keyword: str
    message: str

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
    )


class ValidationResult(BaseModel):
    valid: bool
    errors: List[ValidationIssue] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def error_details(self) -> list[dict]:
        """Errors in their wire shape (camelCase keys)."""
        return [issue.model_dump(by_alias=True) for issue in self.errors]
