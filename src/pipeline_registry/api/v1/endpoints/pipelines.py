# src/pipeline_registry/api/v1/endpoints/pipelines.py
"""Pipeline-related endpoints for the Pipeline Registry API."""

from __future__ import annotations

import logging
from typing import Annotated, NoReturn

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from pipeline_registry.core.settings import settings
from pipeline_registry.db.session import get_db
from pipeline_registry.models import Pipeline
from pipeline_registry.repositories.pipeline_repo import PipelineRepository
from pipeline_registry.schemas.pipeline import (
    ListPipelinesResponse,
    PipelineCreate,
    PipelineResponse,
    TemplateResponse,
)
from pipeline_registry.services import pipeline_service
from pipeline_registry.services.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PipelineError,
    TemplateFetchError,
)
from pipeline_registry.services.template_fetcher import TemplateFetcher, get_template_fetcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pipelines", tags=["pipelines"])


def get_template_fetcher_dep() -> TemplateFetcher:
    """Return the shared template fetcher."""
    return get_template_fetcher()


def get_pipeline_repo(db: Annotated[Session, Depends(get_db)]) -> PipelineRepository:
    """Wrap the request session in a pipeline repository."""
    return PipelineRepository(db)


RepoDep = Annotated[PipelineRepository, Depends(get_pipeline_repo)]
FetcherDep = Annotated[TemplateFetcher, Depends(get_template_fetcher_dep)]


def _raise_http(err: PipelineError) -> NoReturn:
    """Translate a domain error into the matching HTTP error."""
    if isinstance(err, InvalidArgumentError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"InvalidArgument: {err}",
        ) from err
    if isinstance(err, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(err)) from err
    if isinstance(err, AlreadyExistsError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(err)) from err
    if isinstance(err, TemplateFetchError):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(err)) from err
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal pipeline registry error",
    ) from err


@router.get("/", response_model=ListPipelinesResponse)
async def list_pipelines(
    repo: RepoDep,
    page_size: int | None = Query(
        None,
        description=f"Maximum number of pipelines to return (default {settings.list_default_page_size})",
    ),
    page_token: str = Query("", description="Token returned by the previous list call"),
    sort_by: str = Query("", description="'name' or 'created_at', optionally followed by ' desc'"),
) -> ListPipelinesResponse:
    """List pipelines in a stable order with cursor pagination.

    Args:
        repo: Pipeline repository bound to the request session
        page_size: Page size; absent or zero applies the default
        page_token: Cursor from the previous page, empty for the first page
        sort_by: Sort field with optional direction

    Returns:
        The requested page and the token for the next one

    Raises:
        HTTPException: 400 on an unsupported sort field or malformed token
    """
    try:
        page = pipeline_service.list_pipelines(
            repo=repo,
            page_size=page_size,
            page_token=page_token,
            sort_by=sort_by,
        )
    except InvalidArgumentError as err:
        logger.info("Rejected list request (sort_by=%r): %s", sort_by, err)
        _raise_http(err)

    return ListPipelinesResponse(
        pipelines=[PipelineResponse.model_validate(p) for p in page.records],
        next_page_token=page.next_page_token,
    )


@router.get("/{pipeline_id}", response_model=PipelineResponse)
async def get_pipeline(pipeline_id: str, repo: RepoDep) -> Pipeline:
    """Get a specific pipeline by ID."""
    try:
        return pipeline_service.get_pipeline(repo=repo, pipeline_id=pipeline_id)
    except NotFoundError as err:
        _raise_http(err)


@router.get("/{pipeline_id}/templates", response_model=TemplateResponse)
async def get_template(pipeline_id: str, repo: RepoDep) -> TemplateResponse:
    """Return the template stored for a pipeline."""
    try:
        template = pipeline_service.get_template(repo=repo, pipeline_id=pipeline_id)
    except NotFoundError as err:
        _raise_http(err)
    return TemplateResponse(template=template)


@router.post("/", response_model=PipelineResponse, status_code=status.HTTP_201_CREATED)
async def create_pipeline(
    pipeline_data: PipelineCreate,
    repo: RepoDep,
    fetcher: FetcherDep,
) -> Pipeline:
    """Import a pipeline from a URL.

    Raises:
        HTTPException: 400 on a bad URL, 409 on a taken name, 502 when the
            template cannot be downloaded
    """
    try:
        pipeline = await pipeline_service.import_pipeline_from_url(
            repo=repo,
            fetcher=fetcher,
            url=pipeline_data.url.pipeline_url,
            name=pipeline_data.name,
            description=pipeline_data.description,
        )
    except PipelineError as err:
        _raise_http(err)

    repo.session.commit()
    repo.session.refresh(pipeline)
    return pipeline


@router.post("/upload", response_model=PipelineResponse, status_code=status.HTTP_201_CREATED)
async def upload_pipeline(
    repo: RepoDep,
    uploadfile: Annotated[UploadFile, File(description="Pipeline template file")],
    name: str | None = Query(None, description="Pipeline name; defaults to the file name"),
    description: str | None = Query(None),
) -> Pipeline:
    """Upload a pipeline template as a multipart file.

    Raises:
        HTTPException: 400 on an empty file or missing name, 409 on a taken name
    """
    content = await uploadfile.read(settings.max_template_bytes + 1)
    try:
        pipeline = pipeline_service.create_pipeline(
            repo=repo,
            name=name or uploadfile.filename,
            template=content,
            description=description,
            content_type=uploadfile.content_type,
        )
    except PipelineError as err:
        _raise_http(err)

    repo.session.commit()
    repo.session.refresh(pipeline)
    return pipeline


@router.delete("/{pipeline_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pipeline(pipeline_id: str, repo: RepoDep) -> Response:
    """Delete a pipeline by ID."""
    try:
        pipeline_service.delete_pipeline(repo=repo, pipeline_id=pipeline_id)
    except NotFoundError as err:
        _raise_http(err)

    repo.session.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
