from fastapi import APIRouter

from servicedesk import repository
from servicedesk.routers.crud import register_crud_routes
from servicedesk.schemas import (
    ClientCreate,
    ClientUpdate,
    ContactCreate,
    ContactUpdate,
    SupplierCreate,
    SupplierUpdate,
)

clients_router = register_crud_routes(
    APIRouter(prefix="/clients", tags=["clients"]),
    repository.clients,
    resource="client",
    create_schema=ClientCreate,
    update_schema=ClientUpdate,
)

suppliers_router = register_crud_routes(
    APIRouter(prefix="/suppliers", tags=["suppliers"]),
    repository.suppliers,
    resource="supplier",
    create_schema=SupplierCreate,
    update_schema=SupplierUpdate,
)

contacts_router = register_crud_routes(
    APIRouter(prefix="/contacts", tags=["contacts"]),
    repository.contacts,
    resource="contact",
    create_schema=ContactCreate,
    update_schema=ContactUpdate,
)
