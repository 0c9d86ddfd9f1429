"""
Request bodies.

Create schemas reuse the table bases, so a missing required column is a
validation error before anything reaches the database. Update schemas are
the allow-list of writable fields: every field is optional, unknown keys are
dropped, and only the keys the client actually sent are applied.
"""
import math
from typing import List, Optional
from datetime import date

from pydantic import FiniteFloat, field_validator
from sqlmodel import Field, SQLModel

from servicedesk.models import (
    CategoryBase,
    ClientBase,
    ContactBase,
    PersonnelBase,
    ProductBase,
    RoleBase,
    ServiceBase,
    SupplierBase,
)


def _require_finite(value):
    if value is not None and not math.isfinite(value):
        raise ValueError("must be a finite number")
    return value


# --- Roles & personnel ---

class RoleCreate(RoleBase):
    pass


class RoleUpdate(SQLModel):
    name: Optional[str] = None
    description: Optional[str] = None


class PersonnelCreate(PersonnelBase):
    password: Optional[str] = Field(default=None, min_length=6)


class PersonnelUpdate(SQLModel):
    name: Optional[str] = None
    last_name: Optional[str] = None
    role_id: Optional[int] = None
    email: Optional[str] = None
    cell_number: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    password: Optional[str] = Field(default=None, min_length=6)


class LoginRequest(SQLModel):
    email: str
    password: str


# --- Clients, suppliers, contacts ---

class ClientCreate(ClientBase):
    pass


class ClientUpdate(SQLModel):
    trade_name: Optional[str] = None
    business_type: Optional[str] = None
    phone_or_cell: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    contact_name: Optional[str] = None
    contact_cell_phone: Optional[str] = None
    contact_email: Optional[str] = None


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(SQLModel):
    trade_name: Optional[str] = None
    business_type: Optional[str] = None
    cell_number: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    website: Optional[str] = None
    billing_name: Optional[str] = None
    billing_number: Optional[str] = None
    billing_address: Optional[str] = None
    notes: Optional[str] = None
    contact_name: Optional[str] = None
    contact_area_or_position: Optional[str] = None
    contact_cell_phone: Optional[str] = None
    contact_email: Optional[str] = None


class ContactCreate(ContactBase):
    pass


class ContactUpdate(SQLModel):
    name: Optional[str] = None
    last_name: Optional[str] = None
    position: Optional[str] = None
    cell_number: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


# --- Catalog ---

class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(SQLModel):
    name: Optional[str] = None
    unit: Optional[str] = None


class ServiceCreate(ServiceBase):
    @field_validator("sale_price")
    @classmethod
    def _finite_price(cls, value):
        return _require_finite(value)


class ServiceUpdate(SQLModel):
    name: Optional[str] = None
    category_id: Optional[int] = None
    sale_price: Optional[FiniteFloat] = None
    description: Optional[str] = None
    sat_unit: Optional[str] = None
    sat_code: Optional[str] = None


class ProductCreate(ProductBase):
    @field_validator("sale_price", "initial_stock", "minimum_stock")
    @classmethod
    def _finite_numbers(cls, value):
        return _require_finite(value)


class ProductUpdate(SQLModel):
    name: Optional[str] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    sale_price: Optional[FiniteFloat] = None
    model: Optional[str] = None
    factory_code: Optional[str] = None
    supplier_id: Optional[int] = None
    manufacturer_brand: Optional[str] = None
    initial_stock: Optional[FiniteFloat] = None
    minimum_stock: Optional[FiniteFloat] = None
    stock: Optional[FiniteFloat] = Field(default=None, description="Manual stock adjustment")
    product_image: Optional[str] = None


# --- Service orders ---

class ProductUsage(SQLModel):
    """One line of material: which product and how much of it."""
    product_id: int
    quantity_used: FiniteFloat


class ServiceOrderCreate(SQLModel):
    client_id: int
    service_id: int
    contact_name: str
    contact_phone: str
    contact_email: str
    scheduled_date: date
    start_time: Optional[str] = Field(default=None, description="Planned start, HH:MM:SS")
    price: FiniteFloat
    activities: str
    recommendations: str
    files: Optional[str] = None
    products: List[ProductUsage] = Field(default_factory=list)
    personnel_ids: List[int] = Field(default_factory=list)

    @field_validator("products", "personnel_ids", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value


class ServiceOrderUpdate(SQLModel):
    client_id: Optional[int] = None
    service_id: Optional[int] = None
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    scheduled_date: Optional[date] = None
    price: Optional[FiniteFloat] = None
    activities: Optional[str] = None
    recommendations: Optional[str] = None
    products: Optional[List[ProductUsage]] = None
    personnel_ids: Optional[List[int]] = None


class StartRequest(SQLModel):
    start_time: Optional[str] = None


class CompleteRequest(SQLModel):
    end_time: Optional[str] = None
    products: Optional[List[ProductUsage]] = None


class CancelRequest(SQLModel):
    cancel_reason: Optional[str] = None


class CorrectTimesRequest(SQLModel):
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class ConfirmRequest(SQLModel):
    products_used: Optional[List[ProductUsage]] = None


class UsedProductsRequest(SQLModel):
    products: List[ProductUsage]


class SignRequest(SQLModel):
    files: Optional[str] = None
