from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from composer_hub.db.models import ApiKeyRecord
from composer_hub.db.session import SessionLocal
from composer_hub.exceptions import AuthenticationFailed
from composer_hub.repo.common import _generate_id, _generate_token, _now

# Composer sends the key as the Basic username; the password is a fixed
# placeholder and is not checked.
API_KEY_PASSWORD = "composer-hub"

# Minimum age of last_used_at before a request writes it again.
LAST_USED_RESOLUTION = timedelta(minutes=1)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApiKey:
    id: str
    token: str
    user_id: str
    name: str
    created_at: datetime
    last_used_at: Optional[datetime] = None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _api_key_from_model(record: ApiKeyRecord) -> ApiKey:
    return ApiKey(
        id=record.id,
        token=record.token,
        user_id=record.user_id,
        name=record.name or "",
        created_at=_as_utc(record.created_at),
        last_used_at=_as_utc(record.last_used_at),
    )


def create_api_key(user_id: str, name: str = "") -> ApiKey:
    if not user_id or not user_id.strip():
        raise ValueError("user_id is required")
    with SessionLocal() as session:
        record = ApiKeyRecord(
            id=_generate_id(),
            token=_generate_token(),
            user_id=user_id.strip(),
            name=name,
            created_at=_now(),
        )
        session.add(record)
        session.commit()
        session.refresh(record)
        return _api_key_from_model(record)


def list_api_keys(user_id: Optional[str] = None) -> list[ApiKey]:
    with SessionLocal() as session:
        statement = select(ApiKeyRecord).order_by(ApiKeyRecord.created_at, ApiKeyRecord.id)
        if user_id is not None:
            statement = statement.where(ApiKeyRecord.user_id == user_id)
        return [_api_key_from_model(record) for record in session.execute(statement).scalars()]


def get_api_key(token: str) -> Optional[ApiKey]:
    if not token:
        return None
    with SessionLocal() as session:
        record = session.execute(
            select(ApiKeyRecord).where(ApiKeyRecord.token == token)
        ).scalar_one_or_none()
        return _api_key_from_model(record) if record is not None else None


def _needs_touch(last_used_at: Optional[datetime], now: datetime) -> bool:
    if last_used_at is None:
        return True
    return now - last_used_at >= LAST_USED_RESOLUTION


def resolve_api_key(token: str) -> ApiKey:
    """Return the key owning ``token`` and record its use."""

    if not token:
        raise AuthenticationFailed("API key is required.")
    with SessionLocal() as session:
        record = session.execute(
            select(ApiKeyRecord).where(ApiKeyRecord.token == token)
        ).scalar_one_or_none()
        if record is None:
            raise AuthenticationFailed("Invalid API key.")
        api_key = _api_key_from_model(record)
        now = _now()
        if not _needs_touch(api_key.last_used_at, now):
            return api_key
        record.last_used_at = now
        try:
            session.commit()
        except OperationalError as exc:
            session.rollback()
            LOGGER.warning("Unable to record API key use. key=%s error=%s", api_key.id, exc)
            return api_key
        return replace(api_key, last_used_at=now)


def revoke_api_key(key_id: str) -> bool:
    with SessionLocal() as session:
        record = session.get(ApiKeyRecord, key_id)
        if record is None:
            return False
        session.delete(record)
        session.commit()
        return True


__all__ = [
    "API_KEY_PASSWORD",
    "ApiKey",
    "create_api_key",
    "get_api_key",
    "list_api_keys",
    "resolve_api_key",
    "revoke_api_key",
]
