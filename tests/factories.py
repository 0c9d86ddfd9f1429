"""
Test data: rows inserted straight through a session, plus the JSON
payloads the API expects.
"""
from datetime import date

from servicedesk.models import (
    Category,
    Client,
    Personnel,
    Product,
    Role,
    Service,
    ServiceOrder,
    ServiceOrderState,
    Supplier,
)
from servicedesk.security import hash_password


class TestDataFactory:
    """Factory class for creating test data"""
    __test__ = False

    @staticmethod
    def _save(session, obj):
        session.add(obj)
        session.commit()
        session.refresh(obj)
        return obj

    @staticmethod
    def create_category(session, name="Cable", unit="metre"):
        return TestDataFactory._save(session, Category(name=name, unit=unit))

    @staticmethod
    def create_supplier(session, **overrides):
        return TestDataFactory._save(session, Supplier(**TestDataFactory.supplier_payload(**overrides)))

    @staticmethod
    def create_client(session, **overrides):
        return TestDataFactory._save(session, Client(**TestDataFactory.client_payload(**overrides)))

    @staticmethod
    def create_service(session, category=None, name="Network installation"):
        category = category or TestDataFactory.create_category(session, name="Services", unit="piece")
        return TestDataFactory._save(session, Service(
            name=name, category_id=category.id, sale_price=1500.0, description="Structured cabling",
        ))

    @staticmethod
    def create_product(session, category=None, supplier=None, stock=20.0, product_id=None, **overrides):
        category = category or TestDataFactory.create_category(session)
        supplier = supplier or TestDataFactory.create_supplier(session)
        data = dict(
            id=product_id,
            name="UTP cable",
            category_id=category.id,
            supplier_id=supplier.id,
            description="UTP cat6",
            sale_price=12.5,
            manufacturer_brand="Belden",
            initial_stock=stock,
            minimum_stock=5.0,
            stock=stock,
        )
        data.update(overrides)
        return TestDataFactory._save(session, Product(**data))

    @staticmethod
    def create_role(session, name="Technician"):
        return TestDataFactory._save(session, Role(name=name))

    @staticmethod
    def create_personnel(session, role=None, email="tech@example.com", password="secret123", name="Ana"):
        role = role or TestDataFactory.create_role(session)
        data = TestDataFactory.personnel_payload(role.id, email=email, name=name)
        data.pop("password")
        return TestDataFactory._save(session, Personnel(**data, password_hash=hash_password(password)))

    @staticmethod
    def create_order(session, client=None, service=None, state=ServiceOrderState.PENDING, **overrides):
        client = client or TestDataFactory.create_client(session)
        service = service or TestDataFactory.create_service(session)
        data = dict(
            client_id=client.id,
            service_id=service.id,
            contact_name="Luis",
            contact_phone="555-0199",
            contact_email="luis@acme.test",
            scheduled_date=date(2026, 10, 19),
            price=1500.0,
            activities="Install 4 network points",
            recommendations="Label the patch panel",
            state=state,
        )
        data.update(overrides)
        return TestDataFactory._save(session, ServiceOrder(**data))

    # --- JSON payloads ---

    @staticmethod
    def client_payload(**overrides):
        data = {
            "trade_name": "Acme Offices",
            "business_type": "Services",
            "phone_or_cell": "55 1234 5678",
            "email": "office@acme.test",
            "street": "Reforma",
            "number": "100",
            "city": "CDMX",
            "state": "CDMX",
            "country": "MX",
            "contact_name": "Luis",
            "contact_cell_phone": "555-0199",
            "contact_email": "luis@acme.test",
        }
        data.update(overrides)
        return data

    @staticmethod
    def supplier_payload(**overrides):
        data = {
            "trade_name": "Electro Supply",
            "business_type": "Wholesale",
            "cell_number": "555-0200",
            "email": "sales@electro.test",
            "city": "Monterrey",
            "state": "NL",
            "country": "MX",
            "contact_name": "Marta",
            "contact_cell_phone": "555-0201",
            "contact_email": "marta@electro.test",
        }
        data.update(overrides)
        return data

    @staticmethod
    def personnel_payload(role_id, **overrides):
        data = {
            "name": "Ana",
            "last_name": "Lopez",
            "role_id": role_id,
            "email": "ana@example.com",
            "cell_number": "555-0101",
            "address": "Main St 1",
            "city": "Monterrey",
            "state": "NL",
            "country": "MX",
            "password": "secret123",
        }
        data.update(overrides)
        return data

    @staticmethod
    def product_payload(category_id, supplier_id, **overrides):
        data = {
            "name": "UTP cable",
            "category_id": category_id,
            "supplier_id": supplier_id,
            "description": "UTP cat6",
            "sale_price": 12.5,
            "manufacturer_brand": "Belden",
            "initial_stock": 100,
            "minimum_stock": 10,
        }
        data.update(overrides)
        return data

    @staticmethod
    def order_payload(client_id, service_id, **overrides):
        data = {
            "client_id": client_id,
            "service_id": service_id,
            "contact_name": "Luis",
            "contact_phone": "555-0199",
            "contact_email": "luis@acme.test",
            "scheduled_date": "2026-10-19",
            "price": 1500,
            "activities": "Install 4 network points",
            "recommendations": "Label the patch panel",
        }
        data.update(overrides)
        return data
