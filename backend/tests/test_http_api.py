# Overview: Pytest coverage for the HTTP surface: auth flow, error mapping, PDF and health.

"""
HTTP API Tests

Verifies:
1. register -> login -> me -> logout round trip
2. Protected routes reject missing / invalid tokens with 401
3. Business errors map to status codes (400 / 403 / 404 / 409)
4. The PDF endpoint returns a PDF attachment
"""

from billing.extensions import db
from billing.models import Invoice

from conftest import auth_headers, get_auth_token, invoice_payload


def _register(client, username, password="secret123", email=None):
    return client.post("/api/auth/register", json={
        "username": username,
        "password": password,
        "email": email,
    })


class TestAuthFlow:

    def test_register_login_me_logout(self, client, db_session):
        response = _register(client, "alice", email="alice@example.com")
        assert response.status_code == 201
        assert response.json["user"]["default_shop_id"] is not None

        token = get_auth_token(client, "alice")
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["user"]["username"] == "alice"
        assert me.json["default_shop"]["name"] == "alice's Shop"
        assert [shop["role"] for shop in me.json["shops"]] == ["OWNER"]

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        after = client.get("/api/auth/me", headers=auth_headers(token))
        assert after.status_code == 401
        assert after.json["code"] == "INVALID_TOKEN"

    def test_login_by_email(self, client, db_session):
        _register(client, "alice", email="alice@example.com")
        response = client.post("/api/auth/login", json={"email": "alice@example.com", "password": "secret123"})
        assert response.status_code == 200
        assert response.json["token"]

    def test_bad_credentials(self, client, db_session):
        _register(client, "alice")
        response = client.post("/api/auth/login", json={"username": "alice", "password": "wrong-pass"})
        assert response.status_code == 401
        assert response.json["code"] == "INVALID_CREDENTIALS"

    def test_duplicate_registration_is_conflict(self, client, db_session):
        _register(client, "alice")
        response = _register(client, "alice")
        assert response.status_code == 409
        assert response.json["code"] == "USER_EXISTS"

    def test_short_password_is_rejected(self, client, db_session):
        response = _register(client, "alice", password="123")
        assert response.status_code == 400
        assert response.json["code"] == "PASSWORD_VALIDATION_ERROR"

    def test_missing_token(self, client, db_session):
        response = client.get("/api/shops")
        assert response.status_code == 401
        assert response.json["code"] == "AUTHENTICATION_REQUIRED"

    def test_garbage_token(self, client, db_session):
        response = client.get("/api/shops", headers=auth_headers("not-a-real-token"))
        assert response.status_code == 401
        assert response.json["code"] == "INVALID_TOKEN"


class TestShopAndInvoiceRoutes:

    def _login(self, client, username):
        _register(client, username)
        return auth_headers(get_auth_token(client, username))

    def test_invoice_lifecycle_over_http(self, client, db_session):
        headers = self._login(client, "alice")
        shop_id = client.get("/api/shops/default", headers=headers).json["id"]

        created = client.post(f"/api/shops/{shop_id}/invoices", json=invoice_payload(), headers=headers)
        assert created.status_code == 201
        invoice_id = created.json["id"]

        listing = client.get(f"/api/shops/{shop_id}/invoices?page=1&pageSize=5", headers=headers)
        assert listing.status_code == 200
        assert listing.json["total"] == 1
        assert listing.json["pagination"]["page_size"] == 5

        document = client.get(f"/api/invoices/{invoice_id}", headers=headers)
        assert document.status_code == 200
        assert document.json["total_in_words"] == "Five Thousand One Hundred Ninety Two Only"

        search = client.get(f"/api/shops/{shop_id}/invoices/search/bill-to?name=acme", headers=headers)
        assert [party["name"] for party in search.json] == ["Acme Corp"]

        assert client.delete(f"/api/invoices/{invoice_id}", headers=headers).status_code == 200
        assert db.session.query(Invoice).count() == 0

    def test_pdf_download(self, client, db_session):
        headers = self._login(client, "alice")
        shop_id = client.get("/api/shops/default", headers=headers).json["id"]
        invoice_id = client.post(
            f"/api/shops/{shop_id}/invoices", json=invoice_payload(serial_no="INV/2026/7"), headers=headers
        ).json["id"]

        response = client.get(f"/api/invoices/{invoice_id}/pdf", headers=headers)

        assert response.status_code == 200
        assert response.mimetype == "application/pdf"
        assert response.data.startswith(b"%PDF")
        assert 'filename="Invoice_INV-2026-7.pdf"' in response.headers["Content-Disposition"]

    def test_error_codes_map_to_statuses(self, client, db_session):
        alice = self._login(client, "alice")
        bob = self._login(client, "bobby")
        alice_shop = client.get("/api/shops/default", headers=alice).json["id"]
        invoice_id = client.post(
            f"/api/shops/{alice_shop}/invoices", json=invoice_payload(), headers=alice
        ).json["id"]

        denied = client.get(f"/api/shops/{alice_shop}/invoices", headers=bob)
        assert denied.status_code == 403
        assert denied.json["code"] == "SHOP_ACCESS_DENIED"

        missing_shop = client.get("/api/shops/99999/invoices", headers=bob)
        assert missing_shop.status_code == 404
        assert missing_shop.json["code"] == "SHOP_NOT_FOUND"

        hidden = client.get(f"/api/invoices/{invoice_id}", headers=bob)
        assert hidden.status_code == 404
        assert hidden.json["code"] == "INVOICE_NOT_FOUND"

        invalid = client.post(f"/api/shops/{alice_shop}/invoices", json={"serial_no": "X"}, headers=alice)
        assert invalid.status_code == 400
        assert invalid.json["code"] == "VALIDATION_ERROR"

        empty_search = client.get(f"/api/shops/{alice_shop}/invoices/search/ship-to", headers=alice)
        assert empty_search.status_code == 400
        assert empty_search.json["code"] == "INVALID_PARAMETER"

    def test_membership_routes(self, client, db_session):
        alice = self._login(client, "alice")
        self._login(client, "bobby")
        shop_id = client.get("/api/shops/default", headers=alice).json["id"]

        added = client.post(f"/api/shops/{shop_id}/users", json={"username": "bobby", "role": "viewer"}, headers=alice)
        assert added.status_code == 201
        assert added.json["role"] == "VIEWER"

        again = client.post(f"/api/shops/{shop_id}/users", json={"username": "bobby", "role": "EDITOR"}, headers=alice)
        assert again.status_code == 409
        assert again.json["code"] == "USER_SHOP_EXISTS"

        users = client.get(f"/api/shops/{shop_id}/users", headers=alice).json
        assert sorted(user["username"] for user in users) == ["alice", "bobby"]


class TestHealth:

    def test_health_is_public(self, client, db_session):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert response.json["checks"]["database"]["status"] == "healthy"
