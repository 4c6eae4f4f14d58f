"""Runtime entrypoint for the repository API."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from composer_hub import __version__
from composer_hub.api.routes import router
from composer_hub.archiver import Archiver
from composer_hub.config.settings import ComposerHubSettings, get_settings
from composer_hub.db.migrations import upgrade_database
from composer_hub.exceptions import ComposerHubError
from composer_hub.http.errors import error_response, status_for_error
from composer_hub.packages.models import Package
from composer_hub.services.repository_service import RepositoryService
from composer_hub.storage import Storage

LOGGER = logging.getLogger(__name__)


async def _handle_composer_hub_error(request: Request, exc: ComposerHubError) -> JSONResponse:
    status_code, code = status_for_error(exc)
    LOGGER.error(
        "Request failed. path=%s status=%s error=%s package=%s version=%s cause=%s",
        request.url.path,
        status_code,
        code,
        exc.package,
        exc.version,
        exc.__cause__ or exc,
    )
    return error_response(exc)


def create_app(
    settings: Optional[ComposerHubSettings] = None,
    packages: Optional[Iterable[Package]] = None,
    storage: Optional[Storage] = None,
    archiver: Optional[Archiver] = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        upgrade_database()
        app.state.repository_service = RepositoryService.from_settings(
            settings,
            packages=packages,
            storage=storage,
            archiver=archiver,
        )
        LOGGER.info(
            "Serving %d packages as vendor %s.",
            len(app.state.repository_service.packages),
            settings.vendor,
        )
        yield

    app = FastAPI(
        title="composer-hub",
        description="Composer repository for plugins and themes",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(ComposerHubError, _handle_composer_hub_error)
    app.include_router(router)
    return app


app = create_app()
