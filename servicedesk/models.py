from typing import Optional
from datetime import date, datetime, time, timezone
from enum import Enum

from sqlalchemy import Text
from sqlmodel import Field, SQLModel


# --- Enums ---
class ServiceOrderState(str, Enum):
    """Lifecycle of a service order."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({ServiceOrderState.COMPLETED, ServiceOrderState.CANCELLED})
OPEN_STATES = frozenset({ServiceOrderState.PENDING, ServiceOrderState.IN_PROGRESS})


# --- People ---

class RoleBase(SQLModel):
    name: str = Field(description="Role name (e.g. Technician, Administrator)")
    description: Optional[str] = None


class Role(RoleBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class PersonnelBase(SQLModel):
    name: str
    last_name: str
    role_id: int = Field(foreign_key="role.id")
    email: str = Field(unique=True, index=True, description="Also the login name")
    cell_number: str
    phone: Optional[str] = None
    address: str
    city: str
    state: str
    country: str


class Personnel(PersonnelBase, table=True):
    """
    A staff member. Can be assigned to service orders and log in.
    The password is only ever stored as a PBKDF2 hash.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    password_hash: Optional[str] = None


class PersonnelRead(PersonnelBase):
    id: int


# --- Business partners ---

class ClientBase(SQLModel):
    trade_name: str
    business_type: str
    phone_or_cell: str = Field(description="Phone used for WhatsApp messages")
    email: str
    street: str
    number: str
    neighborhood: Optional[str] = None
    postal_code: Optional[str] = None
    city: str
    state: str
    country: str
    contact_name: str
    contact_cell_phone: str
    contact_email: str


class Client(ClientBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class SupplierBase(SQLModel):
    trade_name: str
    business_type: str
    cell_number: str
    email: str
    address: Optional[str] = None
    postal_code: Optional[str] = None
    city: str
    state: str
    country: str
    website: Optional[str] = None
    billing_name: Optional[str] = None
    billing_number: Optional[str] = None
    billing_address: Optional[str] = None
    notes: Optional[str] = Field(default=None, sa_type=Text)
    contact_name: str
    contact_area_or_position: Optional[str] = None
    contact_cell_phone: str
    contact_email: str


class Supplier(SupplierBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class ContactBase(SQLModel):
    name: str
    last_name: str
    position: str
    cell_number: str
    phone_number: Optional[str] = None
    email: str
    street: Optional[str] = None
    number: Optional[str] = None
    neighborhood: Optional[str] = None
    postal_code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None


class Contact(ContactBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


# --- Catalog ---

class CategoryBase(SQLModel):
    name: str
    unit: str = Field(description="Unit the category is counted in (piece, metre, roll)")


class Category(CategoryBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)


class ServiceBase(SQLModel):
    name: str
    category_id: int = Field(foreign_key="category.id")
    sale_price: float
    description: str = Field(sa_type=Text)
    sat_unit: Optional[str] = None
    sat_code: Optional[str] = None


class Service(ServiceBase, table=True):
    """A billable service offered to clients (installation, maintenance...)."""
    id: Optional[int] = Field(default=None, primary_key=True)


class ProductBase(SQLModel):
    name: str
    category_id: int = Field(foreign_key="category.id")
    description: str = Field(sa_type=Text)
    sale_price: float
    model: Optional[str] = None
    factory_code: Optional[str] = None
    supplier_id: int = Field(foreign_key="supplier.id")
    manufacturer_brand: str
    initial_stock: float
    minimum_stock: float = Field(description="Stock level that triggers the low-stock alert")
    product_image: Optional[str] = Field(default=None, sa_type=Text)


class Product(ProductBase, table=True):
    """
    A stock-bearing inventory item.
    `stock` is the physical quantity on hand; it starts at initial_stock
    and goes down when a service order consumes the product.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    stock: float = Field(default=0, description="Physical stock on hand")


# --- Service orders ---

class ServiceOrder(SQLModel, table=True):
    """
    A job done for a client: which service, when, by whom, with which materials.
    Its state only moves forward (see servicedesk.workflow).
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    client_id: int = Field(foreign_key="client.id", description="Client the work is done for")
    service_id: int = Field(foreign_key="service.id")
    contact_name: Optional[str] = None
    contact_phone: Optional[str] = None
    contact_email: Optional[str] = None
    scheduled_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    price: float = Field(default=0.0)
    activities: Optional[str] = Field(default=None, sa_type=Text)
    recommendations: Optional[str] = Field(default=None, sa_type=Text)
    files: Optional[str] = Field(default=None, sa_type=Text, description="Signature / attachment (base64 or path)")
    state: ServiceOrderState = Field(default=ServiceOrderState.PENDING, index=True)
    cancel_reason: Optional[str] = Field(default=None, sa_type=Text)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ServiceOrderProduct(SQLModel, table=True):
    """Material consumed by a service order."""
    id: Optional[int] = Field(default=None, primary_key=True)
    service_order_id: int = Field(foreign_key="serviceorder.id", ondelete="CASCADE", index=True)
    product_id: int = Field(foreign_key="product.id", index=True)
    quantity_used: float


class ServiceOrderPersonnel(SQLModel, table=True):
    """Staff member assigned to a service order."""
    service_order_id: int = Field(foreign_key="serviceorder.id", primary_key=True, ondelete="CASCADE")
    personnel_id: int = Field(foreign_key="personnel.id", primary_key=True)
