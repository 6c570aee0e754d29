"""
Catalog API tests.

Verifies product CRUD, generated product codes, input validation and the
delete guard for products with recorded sales.
"""

import pytest
from sqlalchemy import update

from pharmapos.extensions import db
from pharmapos.models import Product, Sale
from pharmapos.services import products_service
from pharmapos.services.products_service import format_product_code, next_product_code
from pharmapos.validation import ConflictError

from conftest import make_product


def _bump_version(db_session, product):
    """Another writer changes the row after it was loaded into the session."""
    assert product.version_id == 1
    table = Product.__table__
    db_session.execute(
        update(table).where(table.c.id == product.id).values(version_id=table.c.version_id + 1)
    )


class TestProductCodes:
    def test_format(self):
        assert format_product_code(7) == "PR007"
        assert format_product_code(1234) == "PR1234"

    def test_empty_catalog_starts_at_one(self, db_session):
        assert next_product_code() == "PR001"

    def test_one_past_highest_suffix(self, db_session):
        make_product(db_session, "PR004", "Zinc", 1)
        make_product(db_session, "PR012", "Iodine", 1)
        make_product(db_session, "CUSTOM-9", "Gauze", 1)
        assert next_product_code() == "PR013"


class TestReadProducts:
    def test_list_newest_first(self, client, user_headers, products):
        resp = client.get("/api/products", headers=user_headers)
        assert resp.status_code == 200
        assert [p["name"] for p in resp.json] == ["Cough syrup", "Bandages", "Aspirin"]
        assert resp.json[-1]["productCode"] == "PR001"
        assert resp.json[-1]["price"] == 9.99

    def test_get_one(self, client, user_headers, products):
        resp = client.get(f"/api/products/{products['B'].id}", headers=user_headers)
        assert resp.status_code == 200
        assert resp.json["quantity"] == 2

    def test_get_missing(self, client, user_headers, db_session):
        assert client.get("/api/products/404", headers=user_headers).status_code == 404


class TestCreateProduct:
    def test_generates_code(self, client, admin_headers, products):
        resp = client.post(
            "/api/products",
            json={"name": "Ibuprofen", "price": "4.50", "quantity": 12, "purchasePrice": 2},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["productCode"] == "PR004"
        assert resp.json["price"] == 4.5
        assert resp.json["purchasePrice"] == 2.0
        assert resp.json["quantity"] == 12

    def test_explicit_code(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/products",
            json={"productCode": "VIT-C", "name": "Vitamin C", "price": 3},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["productCode"] == "VIT-C"
        assert resp.json["quantity"] == 0

    def test_duplicate_code(self, client, admin_headers, products):
        resp = client.post(
            "/api/products",
            json={"productCode": "PR001", "name": "Copy", "price": 1},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_missing_required(self, client, admin_headers, db_session):
        resp = client.post("/api/products", json={"name": "No price"}, headers=admin_headers)
        assert resp.status_code == 400
        assert "price" in resp.json["error"]

    def test_negative_quantity(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/products",
            json={"name": "Bad", "price": 1, "quantity": -1},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_unknown_field(self, client, admin_headers, db_session):
        resp = client.post(
            "/api/products",
            json={"name": "Bad", "price": 1, "versionId": 9},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_plain_user_forbidden(self, client, user_headers, db_session):
        resp = client.post("/api/products", json={"name": "X", "price": 1}, headers=user_headers)
        assert resp.status_code == 403


class TestUpdateProduct:
    def test_partial_update(self, client, admin_headers, products):
        a = products["A"]
        resp = client.put(f"/api/products/{a.id}", json={"quantity": 25}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["quantity"] == 25
        assert resp.json["name"] == "Aspirin"

    def test_code_clash(self, client, admin_headers, products):
        resp = client.put(
            f"/api/products/{products['A'].id}",
            json={"productCode": "PR002"},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_missing(self, client, admin_headers, db_session):
        assert client.put("/api/products/777", json={"name": "x"}, headers=admin_headers).status_code == 404

    def test_price_cap(self, client, admin_headers, products):
        resp = client.put(
            f"/api/products/{products['A'].id}",
            json={"price": "10000000"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_concurrent_modification_conflicts(self, admin_auth, products, db_session):
        a = products["A"]
        _bump_version(db_session, a)

        with pytest.raises(ConflictError):
            products_service.update_product(admin_auth, product_id=a.id, patch={"quantity": 25})

        db.session.expire_all()
        assert db.session.get(Product, a.id).quantity == 10


class TestDeleteProduct:
    def test_delete_unsold(self, client, admin_headers, user_headers, products):
        c = products["C"]
        resp = client.delete(f"/api/products/{c.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert client.get(f"/api/products/{c.id}", headers=user_headers).status_code == 404

    def test_delete_with_sales_conflicts(self, client, admin_headers, products, db_session):
        a = products["A"]
        db_session.add(Sale(product_id=a.id, quantity_sold=1))
        db_session.commit()

        resp = client.delete(f"/api/products/{a.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_missing(self, client, admin_headers, db_session):
        assert client.delete("/api/products/31337", headers=admin_headers).status_code == 404

    def test_concurrent_modification_conflicts(self, admin_auth, products, db_session):
        c = products["C"]
        _bump_version(db_session, c)

        with pytest.raises(ConflictError):
            products_service.delete_product(admin_auth, product_id=c.id)

        db.session.expire_all()
        assert db.session.get(Product, c.id) is not None
