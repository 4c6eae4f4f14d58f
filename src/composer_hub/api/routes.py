# coding: utf-8

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, Path, Request
from fastapi.responses import FileResponse

from composer_hub.http.errors import not_found
from composer_hub.models.error import Error
from composer_hub.repo.api_keys import ApiKey
from composer_hub.security_api import get_current_api_key, require_api_key
from composer_hub.services.repository_service import RepositoryService

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def get_repository_service(request: Request) -> RepositoryService:
    return request.app.state.repository_service


@router.get(
    "/health",
    tags=["Health"],
    summary="Health check",
)
def get_health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/packages.json",
    responses={
        200: {"description": "Composer repository index"},
        401: {"model": Error, "description": "Missing or invalid API key"},
    },
    tags=["Repository"],
    summary="Composer repository index",
)
def get_packages_index(
    _api_key: ApiKey = Depends(require_api_key),
    service: RepositoryService = Depends(get_repository_service),
) -> Dict[str, Any]:
    return service.get_index()


@router.get(
    "/dist/{vendor}/{slug}/{version}.zip",
    response_class=FileResponse,
    responses={
        200: {"content": {"application/zip": {}}, "description": "Release artifact"},
        401: {"model": Error, "description": "Missing or invalid API key"},
        404: {"model": Error, "description": "Unknown package or version"},
    },
    tags=["Repository"],
    summary="Download a release artifact",
)
def download_release(
    vendor: str = Path(..., description="Repository vendor namespace"),
    slug: str = Path(..., description="Package slug"),
    version: str = Path(..., description="Release version"),
    _api_key: ApiKey = Depends(require_api_key),
    service: RepositoryService = Depends(get_repository_service),
) -> FileResponse:
    package = service.find_package(vendor, slug)
    if package is None:
        raise not_found(f"Package {vendor}/{slug} not found.")
    release = package.get_release(version)

    api_key = get_current_api_key()
    LOGGER.info(
        "Download requested. package=%s version=%s user=%s",
        slug,
        version,
        api_key.user_id if api_key else None,
    )
    return service.download(release)
