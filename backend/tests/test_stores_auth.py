# Overview: Pytest coverage for store registration, administration and phone login.

"""
Store Directory & Authentication Tests

Covers:
- Registration (auth and idempotent directory paths)
- Admin-token protection of the store administration routes
- Phone + OTP login, session tokens, logout
"""

from datetime import timedelta

import pytest

from smartbill.errors import StoreNotFound, ValidationError
from smartbill.models import Invoice, Product, Store, StoreSession
from smartbill.services import invoice_service, session_service, store_service
from smartbill.time_utils import utcnow

from conftest import admin_headers, bearer_headers


class TestRequireStore:

    def test_resolves_existing(self, db_session, store_a):
        assert store_service.require_store(store_a.id).id == store_a.id
        assert store_service.require_store(str(store_a.id)).id == store_a.id

    def test_missing_id(self, db_session):
        with pytest.raises(ValidationError, match="storeId is required"):
            store_service.require_store(None)

    def test_unknown_id(self, db_session):
        with pytest.raises(StoreNotFound, match="Store ID 99999 not found"):
            store_service.require_store(99999)

    @pytest.mark.parametrize("value", ["abc", True])
    def test_non_integer_id(self, db_session, value):
        with pytest.raises(ValidationError):
            store_service.require_store(value)


class TestAuthRegistration:

    def test_register(self, client, db_session):
        response = client.post("/api/auth/register", json={
            "store_name": "Corner Shop",
            "phone": "9123456780",
            "email": "corner@example.com",
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data["store"]["store_name"] == "Corner Shop"
        assert data["apiKey"]
        assert db_session.query(Store).filter_by(phone="9123456780").count() == 1

    @pytest.mark.parametrize("phone", ["12345", "98765abcde"])
    def test_register_rejects_bad_phone(self, client, db_session, phone):
        response = client.post("/api/auth/register", json={"store_name": "Shop", "phone": phone})

        assert response.status_code == 400
        assert response.get_json()["error"] == "Phone number must be exactly 10 digits"

    def test_register_rejects_long_phone(self, client, db_session):
        response = client.post("/api/auth/register", json={"store_name": "Shop", "phone": "12345678901"})

        assert response.status_code == 400
        assert db_session.query(Store).count() == 0

    def test_register_requires_name_and_phone(self, client, db_session):
        response = client.post("/api/auth/register", json={"phone": "9123456780"})

        assert response.status_code == 400

    def test_register_duplicate_phone(self, client, db_session, store_a):
        response = client.post("/api/auth/register", json={"store_name": "Again", "phone": store_a.phone})

        assert response.status_code == 409


class TestDirectoryRegistration:

    def test_register_new(self, client, db_session):
        response = client.post("/api/stores/register", json={
            "storeName": "Green Grocer",
            "ownerName": "Lata",
            "phone": "9123456780",
            "gstNumber": "22AAAAA0000A1Z5",
        })

        assert response.status_code == 201
        data = response.get_json()
        store = db_session.get(Store, data["storeId"])
        assert store.owner_name == "Lata"
        assert store.api_key == data["apiKey"]

    def test_register_existing_is_idempotent(self, client, db_session, store_a):
        response = client.post("/api/stores/register", json={"storeName": "Other name", "phone": store_a.phone})

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "Store already existed"
        assert data["storeId"] == store_a.id
        assert data["apiKey"] == store_a.api_key
        assert db_session.query(Store).count() == 1

    def test_register_rejects_short_gst(self, client, db_session):
        response = client.post("/api/stores/register", json={
            "storeName": "Shop",
            "phone": "9123456780",
            "gstNumber": "SHORT",
        })

        assert response.status_code == 400
        assert response.get_json()["error"] == "GST number must be exactly 15 characters"


class TestStoreAdministration:

    def test_getall_requires_admin(self, client, db_session, store_a):
        assert client.get("/api/stores/getall").status_code == 401
        assert client.get("/api/stores/getall", headers=bearer_headers("wrong")).status_code == 401

    def test_getall(self, client, db_session, store_a, store_b):
        response = client.get("/api/stores/getall", headers=admin_headers())

        assert response.status_code == 200
        stores = response.get_json()
        assert [s["storeId"] for s in stores] == [store_a.id, store_b.id]
        assert all("apiKey" not in s for s in stores)

    def test_get_store(self, client, db_session, store_a):
        response = client.get(f"/api/stores/{store_a.id}", headers=admin_headers())

        assert response.status_code == 200
        data = response.get_json()
        assert data["storeName"] == "Store A"
        assert data["status"] == "active"

    def test_get_unknown_store(self, client, db_session):
        assert client.get("/api/stores/99999", headers=admin_headers()).status_code == 404

    def test_update_store(self, client, db_session, store_a):
        response = client.put(
            f"/api/stores/{store_a.id}",
            json={"ownerName": "New Owner", "pincode": "560001"},
            headers=admin_headers(),
        )

        assert response.status_code == 200
        assert response.get_json()["status"] == "updated"
        db_session.expire_all()
        assert db_session.get(Store, store_a.id).owner_name == "New Owner"

    def test_update_store_rejects_unknown_field(self, client, db_session, store_a):
        response = client.put(f"/api/stores/{store_a.id}", json={"api_key": "mine"}, headers=admin_headers())

        assert response.status_code == 400

    def test_update_store_empty_body(self, client, db_session, store_a):
        response = client.put(f"/api/stores/{store_a.id}", json={}, headers=admin_headers())

        assert response.status_code == 400
        assert response.get_json()["error"] == "No fields provided for update"

    def test_rotate_key(self, client, db_session, store_a):
        old_key = store_a.api_key

        response = client.post(f"/api/stores/{store_a.id}/rotate-key", headers=admin_headers())

        assert response.status_code == 200
        new_key = response.get_json()["apiKey"]
        assert new_key != old_key
        assert store_service.store_for_api_key(old_key) is None
        assert store_service.store_for_api_key(new_key).id == store_a.id

    def test_delete_store_cascades(self, client, db_session, store_a, product_a):
        invoice_service.create_invoice(
            store_id=store_a.id,
            customer_name="Asha",
            items=[{"productId": product_a.id, "qty": 1}],
            payment_method="cash",
        )

        response = client.delete(f"/api/stores/{store_a.id}", headers=admin_headers())

        assert response.status_code == 200
        db_session.expire_all()
        assert db_session.query(Store).count() == 0
        assert db_session.query(Product).count() == 0
        assert db_session.query(Invoice).count() == 0


class TestPhoneLogin:

    def test_verify_phone_returns_stub_otp(self, client, db_session, store_a):
        response = client.post("/api/auth/verify-phone", json={"phone": store_a.phone})

        assert response.status_code == 200
        assert response.get_json()["otp"] == "123456"

    def test_verify_unknown_phone(self, client, db_session):
        response = client.post("/api/auth/verify-phone", json={"phone": "9000000999"})

        assert response.status_code == 404
        assert response.get_json()["error"] == "Store not found. Please register first."

    def test_login(self, client, db_session, store_a):
        response = client.post("/api/auth/login", json={"phone": store_a.phone, "otp": "123456"})

        assert response.status_code == 200
        data = response.get_json()
        assert data["storeId"] == store_a.id
        assert data["storeName"] == "Store A"
        assert len(data["token"]) == 64

        context = session_service.validate_session(data["token"])
        assert context.store.id == store_a.id

    def test_login_wrong_otp(self, client, db_session, store_a):
        response = client.post("/api/auth/login", json={"phone": store_a.phone, "otp": "000000"})

        assert response.status_code == 401
        assert response.get_json()["error"] == "Invalid OTP"
        assert db_session.query(StoreSession).count() == 0

    def test_login_unregistered_phone(self, client, db_session):
        response = client.post("/api/auth/login", json={"phone": "9000000999", "otp": "123456"})

        assert response.status_code == 404
        assert response.get_json()["error"] == "Store not registered"

    def test_token_is_stored_hashed(self, client, db_session, store_a):
        token = client.post("/api/auth/login", json={"phone": store_a.phone, "otp": "123456"}).get_json()["token"]

        session = db_session.query(StoreSession).one()
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_logout_revokes_token(self, client, db_session, store_a):
        token = client.post("/api/auth/login", json={"phone": store_a.phone, "otp": "123456"}).get_json()["token"]

        response = client.post("/api/auth/logout", headers=bearer_headers(token))

        assert response.status_code == 200
        assert session_service.validate_session(token) is None
        assert client.get(f"/api/products/{store_a.id}", headers=bearer_headers(token)).status_code == 401

    def test_expired_session_is_rejected(self, db_session, store_a):
        session, token = session_service.create_session(store_a.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert session_service.validate_session(token) is None

    def test_cleanup_expired_sessions(self, db_session, store_a):
        expired, _ = session_service.create_session(store_a.id)
        expired.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        session_service.create_session(store_a.id)

        assert session_service.cleanup_expired_sessions() == 1
        assert db_session.query(StoreSession).count() == 1
