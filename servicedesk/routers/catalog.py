from fastapi import APIRouter, Depends
from sqlmodel import Session

from servicedesk import inventory, repository
from servicedesk.database import get_session
from servicedesk.routers.crud import register_crud_routes
from servicedesk.schemas import (
    CategoryCreate,
    CategoryUpdate,
    ProductCreate,
    ProductUpdate,
    ServiceCreate,
    ServiceUpdate,
)

# --- Categories ---
categories_router = register_crud_routes(
    APIRouter(prefix="/categories", tags=["categories"]),
    repository.categories,
    resource="category",
    create_schema=CategoryCreate,
    update_schema=CategoryUpdate,
)

# --- Services ---
services_router = register_crud_routes(
    APIRouter(prefix="/services", tags=["services"]),
    repository.services,
    resource="service",
    create_schema=ServiceCreate,
    update_schema=ServiceUpdate,
)

# --- Products (inventory) ---
products_router = APIRouter(prefix="/products", tags=["products"])


@products_router.get("/provider")
def read_products_with_supplier(search: str = "", session: Session = Depends(get_session)):
    return inventory.list_products_with_supplier(session, search or None)


@products_router.get("/available")
def read_available_products(search: str = "", session: Session = Depends(get_session)):
    """Physical, committed and available stock per product."""
    return inventory.list_available_products(session, search or None)


register_crud_routes(
    products_router,
    repository.products,
    resource="product",
    create_schema=ProductCreate,
    update_schema=ProductUpdate,
    lister=inventory.list_products,
)
