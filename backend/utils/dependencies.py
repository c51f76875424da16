from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import AsyncSession
import logging

import httpx

from core.config import Settings
from core.database import get_db
from core.errors import AuthenticationError, AuthorizationError
from core.identity import IdentityVerifier, Principal
import utils.crud as crud
from core import models
from utils.text import normalize_phone
from utils.upload_store import UploadStore

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_identity_verifier(request: Request) -> IdentityVerifier:
    return request.app.state.identity_verifier


def get_upload_store(request: Request) -> UploadStore:
    return request.app.state.upload_store


async def get_http_client(request: Request) -> AsyncGenerator[httpx.AsyncClient, None]:
    """One outbound client per request, used for remote image fetches."""
    app_settings: Settings = request.app.state.settings
    async with httpx.AsyncClient(
        follow_redirects=True,
        timeout=app_settings.IMPORT_FETCH_TIMEOUT_SECONDS,
    ) as client:
        yield client


async def get_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Principal:
    """
    Verify the bearer credential and attach the principal to ``request.state.user``.

    Without a credential the request is rejected, unless SKIP_HEADER_CHECK is on;
    then the configured mock principal is used.
    """
    app_settings: Settings = request.app.state.settings
    if not credentials or not credentials.credentials:
        if app_settings.SKIP_HEADER_CHECK:
            principal = Principal(
                uid=app_settings.MOCK_USER_UID,
                phone_number=app_settings.MOCK_USER_PHONE,
                name=app_settings.MOCK_USER_NAME,
            )
            request.state.user = principal
            return principal
        raise AuthenticationError("Not authenticated")

    principal = await verifier.verify(credentials.credentials)
    request.state.user = principal
    return principal


async def get_current_admin(
    request: Request,
    principal: Principal = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
) -> models.Admin:
    """Require the verified principal's phone to be on the admin allow-list."""
    if not principal.phone_number:
        raise AuthorizationError("No phone number")

    admin = await crud.get_admin_by_phone(db, normalize_phone(principal.phone_number))
    if not admin:
        logger.info(f"Admin access denied for {principal.uid}")
        raise AuthorizationError("Admin only")

    request.state.admin = admin
    return admin


async def get_optional_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Optional[Principal]:
    """Like ``get_principal`` but anonymous requests give None instead of 401."""
    if not credentials or not credentials.credentials:
        return None
    principal = await verifier.verify(credentials.credentials)
    request.state.user = principal
    return principal
