"""Pipeline-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pipeline_registry.db.time import as_utc


class PipelineUrl(BaseModel):
    """Location of a template to import."""

    pipeline_url: str = Field(..., min_length=1, description="HTTP(S) URL of the template")


class PipelineCreate(BaseModel):
    """Schema for importing a pipeline by URL."""

    url: PipelineUrl
    name: str | None = Field(
        None,
        max_length=255,
        description="Pipeline name; defaults to the last segment of the URL",
    )
    description: str | None = Field(None, max_length=5000)


class PipelineResponse(BaseModel):
    """Schema for pipeline information returned by the API."""

    id: str
    name: str
    description: str | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    model_config = ConfigDict(from_attributes=True)


class ListPipelinesResponse(BaseModel):
    """One page of pipelines plus the token for the following page."""

    pipelines: list[PipelineResponse]
    next_page_token: str = Field(
        "",
        description="Opaque token for the next page; empty when no results remain.",
    )


class TemplateResponse(BaseModel):
    """Stored template of a pipeline."""

    template: str
