"""Service-level helpers for registering, listing and removing pipelines."""
from __future__ import annotations

import logging
import posixpath
from urllib.parse import unquote, urlparse

from sqlalchemy.exc import IntegrityError

from pipeline_registry.core.settings import settings
from pipeline_registry.models.pipeline import Pipeline
from pipeline_registry.repositories.pipeline_repo import PipelineRepository
from pipeline_registry.services.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
)
from pipeline_registry.services.listing import Page, list_page
from pipeline_registry.services.template_fetcher import TemplateFetcher, validate_template_url

logger = logging.getLogger(__name__)


def _duplicate_name_message(name: str) -> str:
    return (
        f"Failed to create pipeline. Pipeline with name '{name}' already exists. "
        "Please specify a new name."
    )


def name_from_url(url: str) -> str:
    """Derive a default pipeline name from the last path segment of ``url``."""
    path = unquote(urlparse(url).path)
    return posixpath.basename(path.rstrip("/"))


def create_pipeline(
    *,
    repo: PipelineRepository,
    name: str | None,
    template: bytes,
    description: str | None = None,
    content_type: str | None = None,
) -> Pipeline:
    """Persist a new pipeline after validating its name and template.

    Args:
        repo: Repository used to persist the pipeline.
        name: Requested pipeline name; must be non-empty and unused.
        template: Raw template bytes, stored verbatim.
        description: Optional free-form description.
        content_type: Media type reported by the uploader or remote server.

    Returns:
        The flushed ORM instance; the caller owns the commit.

    Raises:
        InvalidArgumentError: If the name or template is empty or the
            template exceeds the configured size limit.
        AlreadyExistsError: If another pipeline already uses ``name``.
    """
    name = (name or "").strip()
    if not name:
        raise InvalidArgumentError("Pipeline name is required.")
    if not template:
        raise InvalidArgumentError("Pipeline template is empty.")
    if len(template) > settings.max_template_bytes:
        raise InvalidArgumentError(
            f"Pipeline template is larger than {settings.max_template_bytes} bytes."
        )

    if repo.get_by_name(name) is not None:
        raise AlreadyExistsError(_duplicate_name_message(name))

    try:
        pipeline = repo.create(
            name=name,
            template=template,
            description=description,
            template_content_type=content_type,
        )
    except IntegrityError as err:
        # Lost a race against a concurrent insert of the same name.
        repo.session.rollback()
        raise AlreadyExistsError(_duplicate_name_message(name)) from err

    logger.info("Created pipeline %s (%s)", pipeline.id, pipeline.name)
    return pipeline


async def import_pipeline_from_url(
    *,
    repo: PipelineRepository,
    fetcher: TemplateFetcher,
    url: str,
    name: str | None = None,
    description: str | None = None,
) -> Pipeline:
    """Download a template from ``url`` and register it.

    The pipeline name defaults to the final path segment of the URL.

    Raises:
        InvalidArgumentError: On a malformed URL or an empty derived name.
        AlreadyExistsError: If the name is already taken.
        TemplateFetchError: If the download fails.
    """
    url = validate_template_url(url)
    resolved_name = (name or "").strip() or name_from_url(url)
    if not resolved_name:
        raise InvalidArgumentError(f"Cannot derive a pipeline name from URL '{url}'.")

    # Name collisions are checked before the download.
    if repo.get_by_name(resolved_name) is not None:
        raise AlreadyExistsError(_duplicate_name_message(resolved_name))

    fetched = await fetcher.fetch(url)
    logger.info("Importing pipeline '%s' from %s", resolved_name, url)
    return create_pipeline(
        repo=repo,
        name=resolved_name,
        template=fetched.content,
        description=description,
        content_type=fetched.content_type,
    )


def get_pipeline(*, repo: PipelineRepository, pipeline_id: str) -> Pipeline:
    """Return the pipeline with ``pipeline_id``.

    Raises:
        NotFoundError: If no such pipeline exists.
    """
    pipeline = repo.get_by_id(pipeline_id)
    if pipeline is None:
        raise NotFoundError(f"Pipeline {pipeline_id} not found.")
    return pipeline


def get_template(*, repo: PipelineRepository, pipeline_id: str) -> str:
    """Return the stored template of ``pipeline_id`` as text.

    Bytes that are not valid UTF-8 are replaced rather than rejected.
    """
    pipeline = get_pipeline(repo=repo, pipeline_id=pipeline_id)
    return pipeline.template.decode("utf-8", errors="replace")


def delete_pipeline(*, repo: PipelineRepository, pipeline_id: str) -> None:
    """Remove the pipeline with ``pipeline_id``.

    Raises:
        NotFoundError: If no such pipeline exists.
    """
    pipeline = get_pipeline(repo=repo, pipeline_id=pipeline_id)
    repo.delete(pipeline)
    logger.info("Deleted pipeline %s (%s)", pipeline_id, pipeline.name)


def list_pipelines(
    *,
    repo: PipelineRepository,
    page_size: int | None = None,
    page_token: str | None = None,
    sort_by: str | None = None,
) -> Page[Pipeline]:
    """List pipelines through the listing engine with configured page bounds."""
    return list_page(
        repo,
        page_size=page_size,
        page_token=page_token,
        sort_by=sort_by,
        default_page_size=settings.list_default_page_size,
        max_page_size=settings.list_max_page_size,
    )
