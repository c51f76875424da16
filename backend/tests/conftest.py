import io
import os

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from PIL import Image

from core.config import Settings
from core.database import build_engine, build_sessionmaker, create_db_and_tables
from core.errors import AuthenticationError
from core.identity import Principal
from main import create_app
from utils.dependencies import get_http_client, get_identity_verifier

ADMIN_PHONE = "+919999900000"
USER_PHONE = "+91 88888-00000"

TOKENS = {
    "admin-token": Principal(uid="admin-uid", phone_number=ADMIN_PHONE, name="Site Admin"),
    "user-token": Principal(uid="user-uid", phone_number=USER_PHONE, name="Asha"),
    "nophone-token": Principal(uid="nophone-uid"),
}


class FakeVerifier:
    """Token table standing in for the identity service."""

    def __init__(self, tokens):
        self.tokens = dict(tokens)

    async def verify(self, token: str) -> Principal:
        principal = self.tokens.get(token)
        if principal is None:
            raise AuthenticationError("Invalid or expired token")
        return principal


def make_png_bytes(size=(10, 10), color=(0, 128, 255)) -> bytes:
    img = Image.new("RGB", size, color)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def remote_images():
    """URL -> (status, content type, body) served by the mocked outbound client."""
    return {
        "https://img.example.com/remote.png": (200, "image/png", make_png_bytes()),
        "http://cdn.example.com/photo.jpg": (200, "image/jpeg", make_png_bytes(color=(255, 0, 0))),
    }


@pytest.fixture
def mock_transport(remote_images):
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if request.url.host == "down.example.com":
            raise httpx.ConnectError("connection refused", request=request)
        if url in remote_images:
            status_code, content_type, body = remote_images[url]
            return httpx.Response(status_code, headers={"content-type": content_type}, content=body)
        return httpx.Response(404, text="not found")

    return httpx.MockTransport(handler)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        UPLOADS_DIR=str(tmp_path / "uploads"),
        TMP_DIR=str(tmp_path / "tmp"),
        UPLOAD_BACKEND="local",
        SKIP_HEADER_CHECK=False,
        BOOTSTRAP_ADMIN_PHONES=ADMIN_PHONE,
        MAX_UPLOAD_BYTES=1024 * 1024,
    )


@pytest.fixture
def app(test_settings, mock_transport):
    application = create_app(test_settings)
    verifier = FakeVerifier(TOKENS)

    async def _http_client():
        async with httpx.AsyncClient(transport=mock_transport, follow_redirects=True) as client:
            yield client

    application.dependency_overrides[get_identity_verifier] = lambda: verifier
    application.dependency_overrides[get_http_client] = _http_client
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def admin_headers():
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def user_headers():
    return {"Authorization": "Bearer user-token"}


@pytest_asyncio.fixture
async def session_factory(test_settings):
    engine = build_engine(test_settings)
    await create_db_and_tables(engine)
    yield build_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def http_client(mock_transport):
    async with httpx.AsyncClient(transport=mock_transport, follow_redirects=True) as c:
        yield c


@pytest.fixture
def uploads_dir(test_settings):
    os.makedirs(test_settings.UPLOADS_DIR, exist_ok=True)
    return test_settings.UPLOADS_DIR
