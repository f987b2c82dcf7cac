# Overview: Pytest coverage for the owner-scoped product catalog and barcode upsert.

"""
Product Catalog Tests

UPSERT: submitting a barcode twice leaves exactly one row holding the latest
values. OWNER SCOPING: one owner's products never appear in another owner's
reads and cannot be modified by them.
"""

import uuid
from decimal import Decimal

import pytest

from shelfkeep.errors import Conflict, InvalidReference, NotFound, ValidationError
from shelfkeep.models import Product, StockMovement
from shelfkeep.services import products_service
from tests.conftest import product_payload


class TestUpsertProduct:
    def test_create_returns_201(self, client, db_session, snacks, headers_a):
        response = client.post('/products', json=product_payload(category_id=snacks.id), headers=headers_a)

        assert response.status_code == 201
        assert response.json['message'] == 'Product saved successfully'
        product = response.json['product']
        assert product['barcode'] == '4800016644290'
        assert product['owner_id'] == 'user_a'
        assert product['unit_type'] == 'pcs'
        assert product['purchase_cost'] == '0.00'
        assert product['selling_price'] == '10.00'
        assert product['current_stock'] == 0
        assert product['reorder_level'] == 10
        assert product['is_active'] is True
        assert product['category_name'] == 'Snacks'

    def test_same_barcode_twice_keeps_one_row_with_latest_values(self, client, db_session, snacks, drinks, headers_a):
        client.post('/products', json=product_payload(category_id=snacks.id), headers=headers_a)
        response = client.post(
            '/products',
            json=product_payload(
                category_id=drinks.id,
                name='Piattos Cheese 85g (new pack)',
                selling_price=12.5,
                unit_type='pack',
            ),
            headers=headers_a,
        )

        assert response.status_code == 201
        assert db_session.query(Product).count() == 1
        product = response.json['product']
        assert product['name'] == 'Piattos Cheese 85g (new pack)'
        assert product['selling_price'] == '12.50'
        assert product['unit_type'] == 'pack'
        assert product['category_id'] == drinks.id

    def test_upsert_keeps_product_id(self, db_session, snacks):
        first = products_service.upsert_product("user_a", product_payload(category_id=snacks.id))
        second = products_service.upsert_product("user_a", product_payload(category_id=snacks.id, name="Renamed"))
        assert first.product_id == second.product_id

    def test_missing_required_fields_all_named(self, client, db_session, headers_a):
        response = client.post('/products', json={'name': 'No barcode'}, headers=headers_a)

        assert response.status_code == 400
        assert response.json['kind'] == 'validation_error'
        assert response.json['fields'] == ['barcode', 'category_id', 'selling_price']
        assert db_session.query(Product).count() == 0

    def test_unknown_category_is_invalid_reference(self, client, db_session, headers_a):
        response = client.post('/products', json=product_payload(category_id=9999), headers=headers_a)

        assert response.status_code == 422
        assert response.json['kind'] == 'invalid_reference'
        assert db_session.query(Product).count() == 0

    @pytest.mark.parametrize("field,value", [
        ("unit_type", "crate"),
        ("selling_price", 0),
        ("selling_price", "-1.00"),
        ("selling_price", "1.999"),
        ("purchase_cost", -5),
        ("current_stock", "ten"),
        ("current_stock", 2.5),
        ("reorder_level", -1),
        ("image", "not a uri"),
    ])
    def test_field_rules(self, client, db_session, snacks, headers_a, field, value):
        payload = product_payload(category_id=snacks.id, **{field: value})
        response = client.post('/products', json=payload, headers=headers_a)

        assert response.status_code == 400
        assert field in response.json['fields']

    def test_unknown_field_rejected(self, client, db_session, snacks, headers_a):
        payload = product_payload(category_id=snacks.id, owner_id='user_b')
        response = client.post('/products', json=payload, headers=headers_a)

        assert response.status_code == 400
        assert response.json['fields'] == ['owner_id']

    def test_reject_mode_reports_existing_barcode(self, client, db_session, snacks, headers_a):
        client.post('/products', json=product_payload(category_id=snacks.id), headers=headers_a)
        response = client.post(
            '/products?on_conflict=reject',
            json=product_payload(category_id=snacks.id, name='Overwrite attempt'),
            headers=headers_a,
        )

        assert response.status_code == 409
        assert response.json['kind'] == 'conflict'
        assert db_session.query(Product).one().name == 'Piattos Cheese 85g'

    def test_invalid_on_conflict_mode(self, client, db_session, snacks, headers_a):
        response = client.post(
            '/products?on_conflict=merge', json=product_payload(category_id=snacks.id), headers=headers_a
        )
        assert response.status_code == 400

    def test_upsert_reactivates_product(self, db_session, snacks):
        product = products_service.upsert_product("user_a", product_payload(category_id=snacks.id))
        products_service.deactivate_product("user_a", product.product_id)

        again = products_service.upsert_product("user_a", product_payload(category_id=snacks.id))
        assert again.is_active is True

    def test_upsert_requires_owner(self, db_session, snacks):
        from shelfkeep.errors import Unauthorized
        with pytest.raises(Unauthorized):
            products_service.upsert_product(None, product_payload(category_id=snacks.id))


class TestUpsertStock:
    """A submitted current_stock is reached through an adjustment movement."""

    def test_initial_stock_recorded_as_adjustment(self, db_session, snacks):
        product = products_service.upsert_product(
            "user_a", product_payload(category_id=snacks.id, current_stock=24)
        )

        assert product.current_stock == 24
        movement = db_session.query(StockMovement).one()
        assert movement.type == "adjustment"
        assert movement.quantity == 24
        assert movement.actor_id == "user_a"

    def test_resubmitting_stock_records_only_the_delta(self, db_session, snacks):
        products_service.upsert_product("user_a", product_payload(category_id=snacks.id, current_stock=24))
        product = products_service.upsert_product("user_a", product_payload(category_id=snacks.id, current_stock=20))

        assert product.current_stock == 20
        quantities = sorted(m.quantity for m in db_session.query(StockMovement).all())
        assert quantities == [-4, 24]

    def test_same_stock_adds_no_movement(self, db_session, snacks):
        products_service.upsert_product("user_a", product_payload(category_id=snacks.id, current_stock=5))
        products_service.upsert_product("user_a", product_payload(category_id=snacks.id, current_stock=5))
        assert db_session.query(StockMovement).count() == 1

    def test_omitted_stock_leaves_count_untouched(self, db_session, snacks):
        products_service.upsert_product("user_a", product_payload(category_id=snacks.id, current_stock=5))
        product = products_service.upsert_product("user_a", product_payload(category_id=snacks.id, name="New name"))
        assert product.current_stock == 5

    def test_negative_stock_rejected(self, db_session, snacks):
        with pytest.raises(ValidationError):
            products_service.upsert_product(
                "user_a", product_payload(category_id=snacks.id, current_stock=-1)
            )


class TestCrossOwnerBarcode:
    def test_rejected_by_default(self, client, db_session, snacks, headers_a, headers_b):
        client.post('/products', json=product_payload(category_id=snacks.id), headers=headers_a)
        response = client.post(
            '/products', json=product_payload(category_id=snacks.id, name='Hijack'), headers=headers_b
        )

        assert response.status_code == 409
        product = db_session.query(Product).one()
        assert product.owner_id == 'user_a'
        assert product.name == 'Piattos Cheese 85g'

    def test_transfer_policy_moves_row_to_latest_writer(self, db_session, snacks):
        products_service.upsert_product("user_a", product_payload(category_id=snacks.id))
        product = products_service.upsert_product(
            "user_b",
            product_payload(category_id=snacks.id, name="Now mine"),
            cross_owner_policy="transfer",
        )

        assert db_session.query(Product).count() == 1
        assert product.owner_id == "user_b"
        assert product.name == "Now mine"


class TestOwnerScoping:
    def test_list_only_shows_own_products(self, client, db_session, make_product, headers_a, headers_b):
        make_product(owner_id="user_a", barcode="A-1")
        make_product(owner_id="user_a", barcode="A-2")
        make_product(owner_id="user_b", barcode="B-1")

        a = client.get('/products', headers=headers_a).json['products']
        b = client.get('/products', headers=headers_b).json['products']

        assert sorted(p['barcode'] for p in a) == ["A-1", "A-2"]
        assert [p['barcode'] for p in b] == ["B-1"]

    def test_list_is_newest_first(self, db_session, make_product):
        from datetime import timedelta
        older = make_product(barcode="OLD")
        newer = make_product(barcode="NEW")
        older.created_at = newer.created_at - timedelta(minutes=5)
        db_session.commit()

        barcodes = [p.barcode for p in products_service.list_active_products("user_a")]
        assert barcodes == ["NEW", "OLD"]

    def test_search_by_barcode(self, client, db_session, make_product, headers_a):
        make_product(barcode="4801234567890")

        response = client.get('/products/search?barcode=4801234567890', headers=headers_a)
        assert response.status_code == 200
        assert response.json['product']['barcode'] == "4801234567890"

    def test_search_other_owners_barcode_is_404(self, client, db_session, make_product, headers_b):
        make_product(owner_id="user_a", barcode="4801234567890")

        response = client.get('/products/search?barcode=4801234567890', headers=headers_b)
        assert response.status_code == 404

    def test_search_unknown_barcode_is_404(self, client, db_session, headers_a):
        response = client.get('/products/search?barcode=0000000000000', headers=headers_a)
        assert response.status_code == 404
        assert response.json['kind'] == 'not_found'

    def test_search_requires_barcode(self, client, db_session, headers_a):
        response = client.get('/products/search', headers=headers_a)
        assert response.status_code == 400
        assert response.json['fields'] == ['barcode']

    def test_list_by_category(self, client, db_session, snacks, drinks, make_product, headers_a):
        make_product(barcode="S-1", category_id=snacks.id)
        make_product(barcode="D-1", category_id=drinks.id)
        make_product(owner_id="user_b", barcode="D-2", category_id=drinks.id)

        response = client.get(f'/products/category/{drinks.id}', headers=headers_a)
        assert [p['barcode'] for p in response.json['products']] == ["D-1"]

    def test_other_owner_cannot_deactivate(self, client, db_session, make_product, headers_b):
        product = make_product(owner_id="user_a")

        response = client.delete(f'/products/{product.product_id}', headers=headers_b)
        assert response.status_code == 404
        db_session.refresh(product)
        assert product.is_active is True


class TestDeactivateProduct:
    def test_deactivated_product_hidden_from_reads(self, client, db_session, make_product, headers_a):
        product = make_product(barcode="GONE-1")

        response = client.delete(f'/products/{product.product_id}', headers=headers_a)
        assert response.status_code == 200

        assert client.get('/products', headers=headers_a).json['products'] == []
        assert client.get('/products/search?barcode=GONE-1', headers=headers_a).status_code == 404
        assert db_session.query(Product).count() == 1

    def test_unknown_product(self, db_session):
        with pytest.raises(NotFound):
            products_service.deactivate_product("user_a", uuid.uuid4())

    def test_malformed_product_id_is_404(self, client, db_session, headers_a):
        response = client.delete('/products/not-a-uuid', headers=headers_a)
        assert response.status_code == 404


class TestMoneyHandling:
    def test_float_prices_are_stored_exactly(self, db_session, snacks):
        product = products_service.upsert_product(
            "user_a", product_payload(category_id=snacks.id, selling_price=19.99, purchase_cost=0.1)
        )
        assert product.selling_price == Decimal("19.99")
        assert product.purchase_cost == Decimal("0.10")

    def test_integrity_error_classification(self):
        from sqlalchemy.exc import IntegrityError

        class FakeOrig(Exception):
            def __init__(self, message, pgcode=None):
                super().__init__(message)
                self.pgcode = pgcode

        fk = IntegrityError("INSERT", {}, FakeOrig("violates foreign key constraint", "23503"))
        dup = IntegrityError("INSERT", {}, FakeOrig("UNIQUE constraint failed: products.barcode"))

        assert isinstance(products_service._classify_integrity_error(fk), InvalidReference)
        assert isinstance(products_service._classify_integrity_error(dup), Conflict)
