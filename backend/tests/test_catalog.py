# Overview: Pytest coverage for catalog management and its credential checks.

"""
Product Catalog Tests

SECURITY TESTS: A store's credential only ever reaches that store's products.
- Products: cross-store read/write answers 404
- Listing another store's catalog answers 403
- Missing or unknown credentials answer 401
"""

import pytest

from smartbill.errors import ConflictError, ProductNotFound, ValidationError
from smartbill.models import Product
from smartbill.services import catalog_service, invoice_service

from conftest import api_key_headers, bearer_headers, make_product, stock_of


class TestCatalogService:

    def test_add_and_get(self, db_session, store_a):
        product = catalog_service.add_product(
            store_id=store_a.id,
            patch={"name": "Tea", "sku": "TEA-1", "price": 45, "quantity": 3},
        )

        fetched = catalog_service.get_product(store_a.id, product.id)
        assert fetched.name == "Tea"
        assert fetched.quantity == 3

    def test_duplicate_sku_in_same_store(self, db_session, store_a, product_a):
        with pytest.raises(ConflictError):
            catalog_service.add_product(
                store_id=store_a.id,
                patch={"name": "Dup", "sku": product_a.sku, "price": 1, "quantity": 1},
            )

    def test_same_sku_in_other_store_is_fine(self, db_session, store_b, product_a):
        product = catalog_service.add_product(
            store_id=store_b.id,
            patch={"name": "Same", "sku": "PROD-A-001", "price": 1, "quantity": 1},
        )
        assert product.store_id == store_b.id

    def test_get_product_of_other_store(self, db_session, store_b, product_a):
        with pytest.raises(ProductNotFound):
            catalog_service.get_product(store_b.id, product_a.id)

    def test_find_price_and_quantity_are_store_scoped(self, db_session, store_a, store_b, product_a):
        assert catalog_service.find_price(product_a.id, store_a.id) == product_a.price
        assert catalog_service.find_price(product_a.id, store_b.id) is None
        assert catalog_service.find_quantity(product_a.id, store_a.id) == 5
        assert catalog_service.find_quantity(product_a.id, store_b.id) is None

    def test_adjust_stock(self, db_session, store_a, product_a):
        assert catalog_service.adjust_stock(store_id=store_a.id, product_id=product_a.id, quantity_change=4) == 9
        assert catalog_service.adjust_stock(store_id=store_a.id, product_id=product_a.id, quantity_change=-9) == 0

    def test_adjust_stock_cannot_go_negative(self, db_session, store_a, product_a):
        with pytest.raises(ValidationError, match="Stock cannot be negative"):
            catalog_service.adjust_stock(store_id=store_a.id, product_id=product_a.id, quantity_change=-6)

        assert stock_of(db_session, product_a) == 5

    @pytest.mark.parametrize("change", [None, "abc", 1.5])
    def test_adjust_stock_requires_integer(self, db_session, store_a, product_a, change):
        with pytest.raises(ValidationError):
            catalog_service.adjust_stock(store_id=store_a.id, product_id=product_a.id, quantity_change=change)

    def test_update_product_price_keeps_invoice_history(self, db_session, store_a, product_a):
        result = invoice_service.create_invoice(
            store_id=store_a.id,
            customer_name="Asha",
            items=[{"productId": product_a.id, "qty": 1}],
            payment_method="cash",
        )

        catalog_service.update_product(store_id=store_a.id, product_id=product_a.id, patch={"price": 250})

        invoice = invoice_service.get_invoice(result.invoice_id)
        assert float(invoice.items[0].price) == 100.0
        assert float(invoice.total) == 100.0

    def test_delete_product_referenced_by_invoice(self, db_session, store_a, product_a):
        invoice_service.create_invoice(
            store_id=store_a.id,
            customer_name="Asha",
            items=[{"productId": product_a.id, "qty": 1}],
            payment_method="cash",
        )

        with pytest.raises(ConflictError):
            catalog_service.delete_product(store_id=store_a.id, product_id=product_a.id)

    def test_delete_product(self, db_session, store_a, product_a):
        product_id = product_a.id
        catalog_service.delete_product(store_id=store_a.id, product_id=product_id)

        assert db_session.get(Product, product_id) is None


class TestProductRoutes:

    def test_create_with_api_key(self, client, db_session, store_a):
        response = client.post(
            "/api/products",
            json={"storeId": store_a.id, "name": "Soap", "sku": "SOAP-1", "price": 35.5, "quantity": 12},
            headers=api_key_headers(store_a),
        )

        assert response.status_code == 201
        product = response.get_json()["product"]
        assert product["price"] == 35.5
        assert product["storeId"] == store_a.id

    def test_create_with_session_token(self, client, db_session, store_a):
        login = client.post("/api/auth/login", json={"phone": store_a.phone, "otp": "123456"})
        token = login.get_json()["token"]

        response = client.post(
            "/api/products",
            json={"name": "Soap", "sku": "SOAP-1", "price": "35.50", "quantity": 12},
            headers=bearer_headers(token),
        )

        assert response.status_code == 201

    def test_create_for_other_store_is_forbidden(self, client, db_session, store_a, store_b):
        response = client.post(
            "/api/products",
            json={"storeId": store_b.id, "name": "Soap", "sku": "SOAP-1", "price": 1, "quantity": 1},
            headers=api_key_headers(store_a),
        )

        assert response.status_code == 403
        assert db_session.query(Product).count() == 0

    @pytest.mark.parametrize("payload,fragment", [
        ({"sku": "X", "price": 1, "quantity": 1}, "Missing required fields"),
        ({"name": "X", "sku": "X", "price": -1, "quantity": 1}, "price must be >= 0"),
        ({"name": "X", "sku": "X", "price": 1, "quantity": -1}, "quantity must be >= 0"),
        ({"name": "X", "sku": "X", "price": 1, "quantity": 1.5}, "quantity must be an integer"),
        ({"name": "X", "sku": "X", "price": 1, "quantity": 1, "color": "red"}, "Field not allowed"),
    ])
    def test_create_validation(self, client, db_session, store_a, payload, fragment):
        response = client.post("/api/products", json=payload, headers=api_key_headers(store_a))

        assert response.status_code == 400
        assert fragment in response.get_json()["error"]

    def test_missing_credentials(self, client, db_session, store_a):
        response = client.get(f"/api/products/{store_a.id}")

        assert response.status_code == 401
        assert response.get_json()["reason"] == "UNAUTHORIZED"

    def test_unknown_api_key(self, client, db_session, store_a):
        response = client.get(f"/api/products/{store_a.id}", headers={"Authorization": "nope"})

        assert response.status_code == 401

    def test_list_own_catalog(self, client, db_session, store_a, product_a):
        response = client.get(f"/api/products/{store_a.id}", headers=api_key_headers(store_a))

        assert response.status_code == 200
        data = response.get_json()
        assert data["count"] == 1
        assert data["products"][0]["sku"] == "PROD-A-001"

    def test_list_other_catalog_is_forbidden(self, client, db_session, store_a, store_b, product_b):
        response = client.get(f"/api/products/{store_b.id}", headers=api_key_headers(store_a))

        assert response.status_code == 403
        assert response.get_json()["reason"] == "FORBIDDEN"

    def test_cross_store_product_is_not_found(self, client, db_session, store_a, product_b):
        headers = api_key_headers(store_a)

        assert client.get(f"/api/products/item/{product_b.id}", headers=headers).status_code == 404
        assert client.put(f"/api/products/{product_b.id}", json={"price": 1}, headers=headers).status_code == 404
        assert client.delete(f"/api/products/{product_b.id}", headers=headers).status_code == 404
        assert client.patch(
            f"/api/products/stock/{product_b.id}", json={"quantityChange": -1}, headers=headers
        ).status_code == 404
        assert stock_of(db_session, product_b) == 10

    def test_update_product(self, client, db_session, store_a, product_a):
        response = client.put(
            f"/api/products/{product_a.id}",
            json={"price": "120.00", "category": "grocery"},
            headers=api_key_headers(store_a),
        )

        assert response.status_code == 200
        product = response.get_json()["product"]
        assert product["price"] == 120.0
        assert product["category"] == "grocery"

    def test_update_with_empty_body(self, client, db_session, store_a, product_a):
        response = client.put(f"/api/products/{product_a.id}", json={}, headers=api_key_headers(store_a))

        assert response.status_code == 400
        assert response.get_json()["error"] == "No fields provided for update"

    def test_adjust_stock_route(self, client, db_session, store_a, product_a):
        response = client.patch(
            f"/api/products/stock/{product_a.id}",
            json={"quantityChange": -2},
            headers=api_key_headers(store_a),
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["productId"] == product_a.id
        assert data["newQuantity"] == 3

    def test_adjust_stock_route_negative_result(self, client, db_session, store_a, product_a):
        response = client.patch(
            f"/api/products/stock/{product_a.id}",
            json={"quantityChange": -10},
            headers=api_key_headers(store_a),
        )

        assert response.status_code == 400
        assert response.get_json()["error"] == "Stock cannot be negative"

    def test_delete_product_route(self, client, db_session, store_a):
        product = make_product(db_session, store_a, sku="GONE", price="1.00", quantity=1)

        response = client.delete(f"/api/products/{product.id}", headers=api_key_headers(store_a))

        assert response.status_code == 200
        assert db_session.query(Product).filter_by(sku="GONE").count() == 0
