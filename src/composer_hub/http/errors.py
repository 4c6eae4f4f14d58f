"""Shared error helpers for the repository API."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse

from composer_hub.exceptions import (
    AuthenticationFailed,
    ComposerHubError,
    FileArchiveInvalid,
    FileDownloadFailed,
    FileNotFound,
    FileOperationFailed,
    InvalidReleaseVersion,
    PackageNotInstalled,
)
from composer_hub.models.error import Error

AUTH_REALM = "composer-hub"

_STATUS_ERROR_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: "bad_request",
    status.HTTP_401_UNAUTHORIZED: "unauthorized",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_409_CONFLICT: "conflict",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "internal_error",
    status.HTTP_502_BAD_GATEWAY: "bad_gateway",
}

# Checked in order, so subclasses must come before their bases.
ERROR_STATUS_CODES: tuple[tuple[type[ComposerHubError], int, str], ...] = (
    (AuthenticationFailed, status.HTTP_401_UNAUTHORIZED, "unauthorized"),
    (InvalidReleaseVersion, status.HTTP_404_NOT_FOUND, "invalid_release_version"),
    (FileNotFound, status.HTTP_404_NOT_FOUND, "file_not_found"),
    (PackageNotInstalled, status.HTTP_409_CONFLICT, "package_not_installed"),
    (FileDownloadFailed, status.HTTP_502_BAD_GATEWAY, "file_download_failed"),
    (FileArchiveInvalid, status.HTTP_502_BAD_GATEWAY, "file_archive_invalid"),
    (FileOperationFailed, status.HTTP_500_INTERNAL_SERVER_ERROR, "file_operation_failed"),
)


def authenticate_headers() -> dict[str, str]:
    return {"WWW-Authenticate": f'Basic realm="{AUTH_REALM}"'}


def error_payload(
    message: str,
    *,
    error: Optional[str] = None,
    status_code: Optional[int] = None,
    details: Optional[dict[str, Any]] = None,
    request_id: Optional[str] = None,
) -> dict[str, Any]:
    resolved_error = error or _STATUS_ERROR_CODES.get(status_code or 0, "error")
    return Error(
        error=resolved_error,
        message=message,
        request_id=request_id,
        details=details,
    ).model_dump(by_alias=True, exclude_none=True)


def http_error(
    status_code: int,
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    payload = error_payload(
        message,
        error=error,
        status_code=status_code,
        details=details,
    )
    return HTTPException(status_code=status_code, detail=payload, headers=headers)


def unauthorized(
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> HTTPException:
    return http_error(
        status.HTTP_401_UNAUTHORIZED,
        message,
        error=error,
        details=details,
        headers=authenticate_headers(),
    )


def not_found(
    message: str,
    *,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> HTTPException:
    return http_error(
        status.HTTP_404_NOT_FOUND,
        message,
        error=error,
        details=details,
    )


def status_for_error(exc: ComposerHubError) -> tuple[int, str]:
    for error_type, status_code, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code, code
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error"


def error_response(exc: ComposerHubError) -> JSONResponse:
    status_code, code = status_for_error(exc)
    details = {
        key: value
        for key, value in (("package", exc.package), ("version", exc.version))
        if value
    }
    headers = authenticate_headers() if status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=status_code,
        content=error_payload(exc.message, error=code, details=details or None),
        headers=headers,
    )


__all__ = [
    "AUTH_REALM",
    "ERROR_STATUS_CODES",
    "authenticate_headers",
    "error_payload",
    "error_response",
    "http_error",
    "not_found",
    "status_for_error",
    "unauthorized",
]
