import json

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from core.config import Settings
from core.errors import AuthenticationError
from core.identity import IdentityVerifier, Principal
from main import create_app


@pytest.fixture
def lookup_calls(monkeypatch):
    """Route the verifier's outbound client to a fake account lookup endpoint."""
    calls = []
    accounts = {
        "good": {"users": [{"localId": "uid-1", "phoneNumber": "+919999900000", "displayName": "Site Admin"}]},
        "nophone": {"users": [{"localId": "uid-2"}]},
        "empty": {"users": []},
        "list-body": [{"localId": "uid-3"}],
        "users-not-list": {"users": "uid-4"},
        "account-not-object": {"users": ["uid-5"]},
    }

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        token = json.loads(request.content)["idToken"]
        if token == "unreachable":
            raise httpx.ConnectError("boom", request=request)
        if token == "not-json":
            return httpx.Response(200, text="<html>gateway</html>")
        if token in accounts:
            return httpx.Response(200, json=accounts[token])
        return httpx.Response(400, json={"error": {"message": "INVALID_ID_TOKEN"}})

    real_client = httpx.AsyncClient
    transport = httpx.MockTransport(handler)
    monkeypatch.setattr(httpx, "AsyncClient", lambda **kwargs: real_client(transport=transport, **kwargs))
    return calls


@pytest_asyncio.fixture
async def verifier():
    v = IdentityVerifier(Settings(
        _env_file=None,
        IDENTITY_PROVIDER_URL="https://identity.example.com/v1/",
        IDENTITY_API_KEY="api-key",
    ))
    await v.cache.clear()
    yield v
    await v.cache.clear()


@pytest.mark.asyncio
async def test_verify_returns_principal(verifier, lookup_calls):
    principal = await verifier.verify("good")
    assert principal == Principal(uid="uid-1", phone_number="+919999900000", name="Site Admin")

    request = lookup_calls[0]
    assert request.method == "POST"
    assert request.url.path == "/v1/accounts:lookup"
    assert request.url.params["key"] == "api-key"


@pytest.mark.asyncio
async def test_verify_caches_principal(verifier, lookup_calls):
    first = await verifier.verify("good")
    second = await verifier.verify("good")
    assert first == second
    assert len(lookup_calls) == 1


@pytest.mark.asyncio
async def test_principal_without_phone(verifier, lookup_calls):
    principal = await verifier.verify("nophone")
    assert principal.uid == "uid-2"
    assert principal.phone_number is None


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [
    "rejected", "empty", "unreachable", "list-body", "users-not-list", "account-not-object", "not-json",
])
async def test_verify_failures_are_authentication_errors(verifier, lookup_calls, token):
    with pytest.raises(AuthenticationError) as exc_info:
        await verifier.verify(token)
    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == "Invalid or expired token"


@pytest.mark.asyncio
async def test_failed_verification_is_not_cached(verifier, lookup_calls):
    for _ in range(2):
        with pytest.raises(AuthenticationError):
            await verifier.verify("rejected")
    assert len(lookup_calls) == 2


def test_skip_header_check_uses_mock_principal(tmp_path):
    app_settings = Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'dev.db'}",
        UPLOADS_DIR=str(tmp_path / "uploads"),
        TMP_DIR=str(tmp_path / "tmp"),
        SKIP_HEADER_CHECK=True,
        MOCK_USER_UID="dev-uid",
        MOCK_USER_PHONE="+910000000000",
        MOCK_USER_NAME="Dev",
        BOOTSTRAP_ADMIN_PHONES="+910000000000",
    )
    with TestClient(create_app(app_settings)) as client:
        r = client.post("/api/auth")
        assert r.status_code == 200, r.text
        user = r.json()["user"]
        assert user["uid"] == "dev-uid"
        assert user["isAdmin"] is True

        assert client.get("/api/admins").status_code == 200
