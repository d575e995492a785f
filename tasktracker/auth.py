"""Request-scoped dependencies: authentication, catalogs, policy and settings"""
import logging
from typing import Optional
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from .catalogs import RoleCatalog, StatusCatalog
from .config import Settings
from .crud import users as user_crud
from .db import get_db
from .models import User
from .policy import AccessPolicy

logger = logging.getLogger(__name__)

security = HTTPBasic(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_statuses(request: Request) -> StatusCatalog:
    return request.app.state.statuses


def get_roles(request: Request) -> RoleCatalog:
    return request.app.state.roles


def get_policy(request: Request) -> AccessPolicy:
    return request.app.state.policy


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Basic"},
    )


async def get_current_user(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the principal from HTTP Basic credentials.

    Raises:
        HTTPException: 401 if credentials are missing or do not match
    """
    if credentials is None:
        logger.warning("No credentials provided")
        raise _unauthorized("Authentication is required")

    user = await user_crud.authenticate(db, credentials.username, credentials.password)
    if user is None:
        logger.warning("Failed authentication attempt for %s", credentials.username)
        raise _unauthorized("Invalid username or password")

    logger.debug("Authenticated user %s", user.username)
    return user
