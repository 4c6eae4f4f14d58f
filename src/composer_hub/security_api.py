# coding: utf-8

from contextvars import ContextVar
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from starlette.concurrency import run_in_threadpool

from composer_hub.exceptions import AuthenticationFailed
from composer_hub.http.errors import AUTH_REALM, unauthorized
from composer_hub.repo.api_keys import ApiKey, resolve_api_key

http_basic = HTTPBasic(auto_error=False, realm=AUTH_REALM)

_current_api_key: ContextVar[Optional[ApiKey]] = ContextVar("composer_hub_api_key", default=None)


async def require_api_key(
    credentials: Optional[HTTPBasicCredentials] = Depends(http_basic),
) -> ApiKey:
    """
    Validate the API key sent as the HTTP Basic username.

    :param credentials: Basic credentials from the Authorization header
    :type credentials: HTTPBasicCredentials | None
    :return: The resolved API key
    :rtype: ApiKey
    """

    if credentials is None or not credentials.username:
        _current_api_key.set(None)
        raise unauthorized("API key is required.")

    try:
        api_key = await run_in_threadpool(resolve_api_key, credentials.username)
    except AuthenticationFailed as exc:
        _current_api_key.set(None)
        raise unauthorized(exc.message) from exc

    _current_api_key.set(api_key)
    return api_key


def get_current_api_key() -> Optional[ApiKey]:
    return _current_api_key.get()
