"""FastAPI dependency injection — auth, DB session and the file gateway."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from mountgate.config import settings
from mountgate.database import get_db
from mountgate.schemas.auth import UserInfo
from mountgate.services import get_machine_resolver
from mountgate.services.machine_file_service import MachineFileService
from mountgate.services.mount_store import FileMountStore

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl=f"{settings.api_prefix}/auth/login",
    auto_error=False,
)


async def get_current_user(token: Optional[str] = Depends(oauth2_scheme)) -> UserInfo:
    """Validate the bearer JWT with the shared secret."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No authentication token provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.token_algorithm],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    username: str | None = payload.get("sub") or payload.get("username")
    if not username:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: no subject claim",
        )

    uid = payload.get("uid")
    try:
        user_id = int(uid) if uid is not None else None
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric uid claim: %r", uid)
        user_id = None
    return UserInfo(id=user_id, username=username)


def get_mount_store(db: AsyncSession = Depends(get_db)) -> FileMountStore:
    return FileMountStore(db)


def get_file_service(store: FileMountStore = Depends(get_mount_store)) -> MachineFileService:
    """Gateway bound to this request's DB session and the machine registry."""
    return MachineFileService(store, get_machine_resolver())
