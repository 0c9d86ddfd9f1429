from fastapi.testclient import TestClient

from factories import TestDataFactory
from servicedesk.main import app


def test_category_crud(api):
    created = api.post("/api/categories", json={"name": "Cable", "unit": "metre"})
    assert created.status_code == 201
    category_id = created.json()["id"]

    updated = api.put(f"/api/categories/{category_id}", json={"unit": "roll"})
    assert updated.status_code == 200
    assert updated.json() == {
        "message": "Category updated successfully",
        "category": {"id": category_id, "name": "Cable", "unit": "roll"},
    }

    assert api.get(f"/api/categories/{category_id}").json()["unit"] == "roll"
    assert api.delete(f"/api/categories/{category_id}").status_code == 204
    assert api.get(f"/api/categories/{category_id}").status_code == 404


def test_missing_field_is_400(api):
    response = api.post("/api/categories", json={"name": "Cable"})

    assert response.status_code == 400
    assert "unit" in response.json()["message"]


def test_empty_update_is_400(api, session):
    client = TestDataFactory.create_client(session)

    response = api.put(f"/api/clients/{client.id}", json={})

    assert response.status_code == 400
    assert response.json() == {"message": "No valid fields were sent for update"}


def test_null_on_required_column_is_400(api, session):
    client = TestDataFactory.create_client(session)

    response = api.put(f"/api/clients/{client.id}", json={"trade_name": None})

    assert response.status_code == 400
    assert response.json()["message"] == "trade_name cannot be empty"


def test_unknown_ids_are_404(api):
    assert api.get("/api/clients/42").json() == {"message": "Client not found"}
    assert api.put("/api/suppliers/42", json={"city": "León"}).status_code == 404
    assert api.delete("/api/contacts/42").status_code == 404


def test_search_filters_list(api):
    api.post("/api/clients", json=TestDataFactory.client_payload(trade_name="Acme Offices"))
    api.post("/api/clients", json=TestDataFactory.client_payload(trade_name="Blue Hotel", city="Cancun"))

    names = [row["trade_name"] for row in api.get("/api/clients", params={"search": "hotel"}).json()]

    assert names == ["Blue Hotel"]
    assert len(api.get("/api/clients").json()) == 2


def test_contacts_and_suppliers(api):
    contact = api.post("/api/contacts", json={
        "name": "Marta", "last_name": "Ruiz", "position": "Buyer",
        "cell_number": "555-0300", "email": "marta@example.com",
    })
    supplier = api.post("/api/suppliers", json=TestDataFactory.supplier_payload(notes="Net 30"))

    assert contact.status_code == 201
    assert supplier.status_code == 201
    assert supplier.json()["notes"] == "Net 30"


def test_deleting_referenced_row_is_500(api, session):
    category = TestDataFactory.create_category(session)
    TestDataFactory.create_product(session, category=category)
    client = TestClient(app, raise_server_exceptions=False)

    response = client.delete(f"/api/categories/{category.id}")

    assert response.status_code == 500
    assert response.json() == {"message": "Internal server error"}


class TestPersonnel:
    def test_password_is_never_returned(self, api, session):
        role = TestDataFactory.create_role(session)

        created = api.post("/api/personnel", json=TestDataFactory.personnel_payload(role.id))
        listed = api.get("/api/personnel").json()

        assert created.status_code == 201
        assert "password" not in created.json()
        assert "password_hash" not in created.json()
        assert "password_hash" not in listed[0]

    def test_short_password_is_400(self, api, session):
        role = TestDataFactory.create_role(session)

        response = api.post("/api/personnel", json=TestDataFactory.personnel_payload(role.id, password="123"))

        assert response.status_code == 400

    def test_login(self, api, session):
        role = TestDataFactory.create_role(session)
        api.post("/api/personnel", json=TestDataFactory.personnel_payload(role.id))

        ok = api.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
        wrong = api.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})
        unknown = api.post("/api/auth/login", json={"email": "who@example.com", "password": "secret123"})

        assert ok.status_code == 200
        assert ok.json()["user"]["email"] == "ana@example.com"
        assert "password_hash" not in ok.json()["user"]
        assert wrong.status_code == 401
        assert unknown.json() == wrong.json() == {"message": "Invalid credentials"}

    def test_password_change_on_update(self, api, session):
        person = TestDataFactory.create_personnel(session, email="tech@example.com", password="first-pass")

        api.put(f"/api/personnel/{person.id}", json={"password": "second-pass"})

        assert api.post("/api/auth/login", json={"email": "tech@example.com", "password": "first-pass"}).status_code == 401
        assert api.post("/api/auth/login", json={"email": "tech@example.com", "password": "second-pass"}).status_code == 200


def test_health(api):
    assert api.get("/health").json() == {"status": "ok"}
