from factories import TestDataFactory
from servicedesk import inventory
from servicedesk.models import ServiceOrderState


class TestProductsApi:
    def test_new_product_starts_with_initial_stock(self, api, session):
        category = TestDataFactory.create_category(session)
        supplier = TestDataFactory.create_supplier(session)

        response = api.post("/api/products", json=TestDataFactory.product_payload(category.id, supplier.id))

        assert response.status_code == 201
        assert response.json()["stock"] == 100

    def test_list_includes_category(self, api, session):
        TestDataFactory.create_product(session)

        rows = api.get("/api/products").json()

        assert rows[0]["category_name"] == "Cable"
        assert rows[0]["unit"] == "metre"

    def test_provider_listing(self, api, session):
        TestDataFactory.create_product(session)

        rows = api.get("/api/products/provider").json()

        assert rows[0]["supplier_name"] == "Electro Supply"

    def test_manual_stock_adjustment(self, api, session):
        product = TestDataFactory.create_product(session, stock=10)

        response = api.put(f"/api/products/{product.id}", json={"stock": 12})

        assert response.json()["product"]["stock"] == 12


def test_available_stock_counts_open_orders(api, session):
    product = TestDataFactory.create_product(session, stock=10)
    open_order = TestDataFactory.create_order(session)
    done_order = TestDataFactory.create_order(session)
    for order, quantity in ((open_order, 3), (done_order, 4)):
        api.post(f"/api/service-orders/{order.id}/products",
                 json={"products": [{"product_id": product.id, "quantity_used": quantity}]})
    api.put(f"/api/service-orders/{done_order.id}/start")
    api.put(f"/api/service-orders/{done_order.id}/complete")

    row = api.get("/api/products/available").json()[0]

    assert row["physical_stock"] == 10
    assert row["committed_stock"] == 3
    assert row["available_stock"] == 7
    assert row["low_stock"] is False


def test_aggregate_usage_sums_repeated_products():
    totals = inventory.aggregate_usage([(3, 1), (1, 2), (3, 2.5)])

    assert dict(totals) == {3: 3.5, 1: 2.0}


def test_dashboard(api, session):
    TestDataFactory.create_product(session, stock=4, sale_price=10.0)
    TestDataFactory.create_product(session, stock=20, sale_price=2.5, name="Jack")
    TestDataFactory.create_order(session)
    TestDataFactory.create_order(session, state=ServiceOrderState.CANCELLED)

    figures = api.get("/api/dashboard").json()

    assert figures["total_inventory_value"] == 90.0
    assert figures["low_stock_count"] == 1
    assert figures["orders_by_state"] == {"pending": 1, "in_progress": 0, "completed": 0, "cancelled": 1}
    assert figures["open_orders"] == 1


def test_non_finite_numbers_are_rejected(api, session):
    category = TestDataFactory.create_category(session)
    supplier = TestDataFactory.create_supplier(session)
    product = TestDataFactory.create_product(session, category=category, supplier=supplier)
    body = (
        '{"name": "UTP cable", "category_id": %d, "supplier_id": %d, "description": "UTP cat6",'
        ' "sale_price": 1e999, "manufacturer_brand": "Belden", "initial_stock": 10, "minimum_stock": 1}'
        % (category.id, supplier.id)
    )

    created = api.post("/api/products", content=body, headers={"Content-Type": "application/json"})
    adjusted = api.put(f"/api/products/{product.id}", content='{"stock": 1e999}',
                       headers={"Content-Type": "application/json"})

    assert created.status_code == 400
    assert adjusted.status_code == 400
    assert len(api.get("/api/products").json()) == 1
    assert api.get(f"/api/products/{product.id}").json()["stock"] == 20
