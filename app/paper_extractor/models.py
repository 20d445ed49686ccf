"""
Pydantic models for the PDF field extraction pipeline.

Defines strict types for user-declared fields, extracted value instances,
and the per-field extraction results returned to the client.
Wire names are camelCase (``dataType``, ``fieldName``, ``ocrText``);
Python attributes are snake_case.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DataType(str, Enum):
    """Supported field data types."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"  # Extracted as a string, normalized to YYYY-MM-DD when parseable
    BOOLEAN = "boolean"
    LIST = "list"  # One value instance per list item, never an array value


class FieldSpec(BaseModel):
    """
    A field the user wants extracted from the document.

    Attributes:
        name: Display label and output key, unique within a request.
        data_type: Governs the value's representation in the output schema.
        metadata: Free-text extraction hints, placed verbatim in the prompt.
        focus_main_study: Restrict extraction to the primary study only.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(
        ...,
        min_length=1,
        description="Human-readable field name",
        examples=["Invoice Number", "Total ($)"],
    )
    data_type: DataType = Field(
        default=DataType.TEXT,
        alias="dataType",
        description="Expected data type of the field value",
    )
    metadata: str = Field(
        default="",
        description="Additional per-field extraction instructions",
        examples=["Usually in the header, format INV-#####"],
    )
    focus_main_study: bool = Field(
        default=False,
        alias="focusMainStudy",
        description="Ignore values from cited or referenced studies",
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        """Trim whitespace; a blank name is invalid."""
        v = v.strip()
        if not v:
            raise ValueError("Field name must not be blank")
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def none_metadata_to_empty(cls, v):
        return "" if v is None else v


class ValueInstance(BaseModel):
    """One occurrence of a field's value in the document."""

    value: bool | int | float | str = Field(
        ...,
        description="Extracted value, typed per the field's data type",
    )
    snippet: str = Field(
        ...,
        description="Short verbatim quote from the transcription backing the value",
    )
    confidence: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Model confidence for this value (0.0 to 1.0)",
    )


class ExtractionResult(BaseModel):
    """
    Extraction outcome for a single requested field.

    ``found`` is true iff ``values`` is non-empty; a missing field has
    zero value instances, never a null value.
    """

    model_config = ConfigDict(populate_by_name=True)

    field_name: str = Field(
        ...,
        alias="fieldName",
        description="The original (unsanitized) field name",
    )
    found: bool = Field(..., description="Whether any value was found")
    values: list[ValueInstance] = Field(
        default_factory=list,
        description="Every occurrence of the field, in document order",
    )

    @model_validator(mode="after")
    def check_found_matches_values(self) -> "ExtractionResult":
        if self.found != bool(self.values):
            raise ValueError("'found' must be true exactly when 'values' is non-empty")
        return self


class ExtractResponse(BaseModel):
    """Response model for POST /api/extract."""

    model_config = ConfigDict(populate_by_name=True)

    images: list[str] = Field(
        ...,
        description="Base64 PNG per page, in page order",
    )
    extractions: list[ExtractionResult] = Field(
        ...,
        description="One result per requested field, in request order",
    )
    ocr_text: str = Field(
        ...,
        alias="ocrText",
        description="Layout-preserving markdown transcription of the document",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="ok")


class ErrorResponse(BaseModel):
    """Error body returned for 4xx/5xx responses."""

    error: str = Field(..., min_length=1)
