from core.identity import Principal
from utils.dependencies import get_identity_verifier


def _verifier(app):
    return app.dependency_overrides[get_identity_verifier]()


class TestAuth:
    def test_first_sign_in_creates_user(self, client, user_headers):
        r = client.post("/api/auth", headers=user_headers)
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["success"] is True
        user = body["user"]
        assert user["uid"] == "user-uid"
        assert user["phone"] == "+91 88888-00000"
        assert user["name"] == "Asha"
        assert user["isAdmin"] is False

    def test_admin_flag_from_allow_list(self, client, admin_headers):
        r = client.post("/api/auth", headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["user"]["isAdmin"] is True

    def test_repeat_sign_in_reuses_and_updates_user(self, app, client, user_headers):
        first = client.post("/api/auth", headers=user_headers).json()["user"]

        _verifier(app).tokens["user-token"] = Principal(uid="user-uid", phone_number="+918888811111", name="Asha K")
        second = client.post("/api/auth", headers=user_headers).json()["user"]

        assert second["id"] == first["id"]
        assert second["name"] == "Asha K"
        assert second["phone"] == "+918888811111"

    def test_missing_phone_is_rejected(self, client):
        r = client.post("/api/auth", headers={"Authorization": "Bearer nophone-token"})
        assert r.status_code == 400
        assert r.json() == {"error": "No phone number in token"}

    def test_requires_credential(self, client):
        r = client.post("/api/auth")
        assert r.status_code == 401
        assert r.headers.get("www-authenticate") == "Bearer"

    def test_allow_listed_user_becomes_admin(self, client, admin_headers, user_headers):
        client.post("/api/admins", json={"phone": "+91 88888-00000", "name": "Asha"}, headers=admin_headers)
        r = client.post("/api/auth", headers=user_headers)
        assert r.json()["user"]["isAdmin"] is True


class TestAdmins:
    def test_list_contains_bootstrap_admin(self, client, admin_headers):
        r = client.get("/api/admins", headers=admin_headers)
        assert r.status_code == 200
        assert [a["phone"] for a in r.json()["items"]] == ["+919999900000"]

    def test_admin_routes_require_admin(self, client, user_headers):
        assert client.get("/api/admins", headers=user_headers).status_code == 403
        assert client.post("/api/admins", json={"phone": "1"}, headers=user_headers).status_code == 403
        assert client.get("/api/admins").status_code == 401

    def test_create_normalizes_phone_and_upserts(self, client, admin_headers):
        r = client.post("/api/admins", json={"phone": "+91 77777-12345", "name": "Ravi"}, headers=admin_headers)
        assert r.status_code == 201, r.text
        created = r.json()["admin"]
        assert created["phone"] == "+917777712345"
        assert created["name"] == "Ravi"

        r = client.post("/api/admins", json={"phone": "+917777712345", "name": "Ravi S"}, headers=admin_headers)
        again = r.json()["admin"]
        assert again["id"] == created["id"]
        assert again["name"] == "Ravi S"

        items = client.get("/api/admins", headers=admin_headers).json()["items"]
        assert items[0]["id"] == created["id"]
        assert len(items) == 2

    def test_create_requires_phone(self, client, admin_headers):
        assert client.post("/api/admins", json={"name": "No Phone"}, headers=admin_headers).status_code == 400

        r = client.post("/api/admins", json={"phone": "---"}, headers=admin_headers)
        assert r.status_code == 400
        assert r.json() == {"error": "phone required"}

    def test_update_admin(self, client, admin_headers):
        created = client.post("/api/admins", json={"phone": "7777712345"}, headers=admin_headers).json()["admin"]

        r = client.put(f"/api/admins/{created['id']}", json={"name": "Meera"}, headers=admin_headers)
        assert r.status_code == 200
        assert r.json()["admin"] == {**created, "name": "Meera"}

        r = client.put(f"/api/admins/{created['id']}", json={"phone": "(777) 771-0000"}, headers=admin_headers)
        assert r.json()["admin"]["phone"] == "7777710000"

    def test_update_requires_changes(self, client, admin_headers):
        created = client.post("/api/admins", json={"phone": "7777712345"}, headers=admin_headers).json()["admin"]
        r = client.put(f"/api/admins/{created['id']}", json={}, headers=admin_headers)
        assert r.status_code == 400
        assert r.json() == {"error": "nothing to update"}

    def test_update_phone_collision_is_conflict(self, client, admin_headers):
        created = client.post("/api/admins", json={"phone": "7777712345"}, headers=admin_headers).json()["admin"]
        r = client.put(f"/api/admins/{created['id']}", json={"phone": "+919999900000"}, headers=admin_headers)
        assert r.status_code == 409
        assert r.json() == {"error": "phone already exists"}

    def test_update_missing_admin(self, client, admin_headers):
        r = client.put("/api/admins/999", json={"name": "Ghost"}, headers=admin_headers)
        assert r.status_code == 404

    def test_delete_admin(self, client, admin_headers):
        created = client.post("/api/admins", json={"phone": "7777712345"}, headers=admin_headers).json()["admin"]

        r = client.delete(f"/api/admins/{created['id']}", headers=admin_headers)
        assert r.status_code == 200
        assert r.json() == {"ok": True}

        r = client.delete(f"/api/admins/{created['id']}", headers=admin_headers)
        assert r.status_code == 404
        assert r.json() == {"error": "Not found"}
