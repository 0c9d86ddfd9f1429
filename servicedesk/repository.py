import logging
from typing import Any, Dict, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import or_
from sqlmodel import Session, SQLModel, select

from servicedesk.database import unit_of_work
from servicedesk.errors import NotFoundError, ValidationFailed
from servicedesk.models import (
    Category,
    Client,
    Contact,
    Personnel,
    Product,
    Role,
    Service,
    Supplier,
)
from servicedesk.security import hash_password

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


class Repository(Generic[ModelT]):
    """
    list/get/create/update/delete for one table.

    The session is always passed in by the caller; the repository never
    opens one itself. Writes run in their own unit of work.
    """

    def __init__(self, model: Type[ModelT], label: str, order_by=None, search_fields: Sequence = ()):
        self.model = model
        self.label = label
        self.order_by = order_by
        self.search_fields = tuple(search_fields)

    def list(self, session: Session, search: Optional[str] = None) -> List[ModelT]:
        query = select(self.model)
        if search and self.search_fields:
            pattern = f"%{search.strip()}%"
            query = query.where(or_(*[column.ilike(pattern) for column in self.search_fields]))
        if self.order_by is not None:
            query = query.order_by(self.order_by)
        return list(session.exec(query).all())

    def get(self, session: Session, item_id: int) -> ModelT:
        item = session.get(self.model, item_id)
        if item is None:
            raise NotFoundError(f"{self.label} not found")
        return item

    def create(self, session: Session, payload: SQLModel) -> ModelT:
        item = self._build(payload)
        with unit_of_work(session):
            session.add(item)
        session.refresh(item)
        logger.info("%s %s created", self.label, item.id)
        return item

    def update(self, session: Session, item_id: int, payload: SQLModel) -> ModelT:
        data = payload.model_dump(exclude_unset=True)
        if not data:
            raise ValidationFailed("No valid fields were sent for update")
        self._reject_nulls(data)
        item = self.get(session, item_id)
        with unit_of_work(session):
            item.sqlmodel_update(self._prepare_update(data))
            session.add(item)
        session.refresh(item)
        logger.info("%s %s updated (%s)", self.label, item_id, ", ".join(sorted(data)))
        return item

    def delete(self, session: Session, item_id: int) -> None:
        item = self.get(session, item_id)
        with unit_of_work(session):
            session.delete(item)
        logger.info("%s %s deleted", self.label, item_id)

    # Hooks for tables that derive columns from the payload
    def _build(self, payload: SQLModel) -> ModelT:
        return self.model.model_validate(payload)

    def _prepare_update(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return data

    def _reject_nulls(self, data: Dict[str, Any]) -> None:
        required = {name for name, field in self.model.model_fields.items() if field.is_required()}
        for key, value in data.items():
            if value is None and key in required:
                raise ValidationFailed(f"{key} cannot be empty")


class PersonnelRepository(Repository[Personnel]):
    """Hashes the plain password before it reaches the table."""

    def _build(self, payload: SQLModel) -> Personnel:
        password = getattr(payload, "password", None)
        return Personnel.model_validate(
            payload,
            update={"password_hash": hash_password(password) if password else None},
        )

    def _prepare_update(self, data: Dict[str, Any]) -> Dict[str, Any]:
        password = data.pop("password", None)
        if password:
            data["password_hash"] = hash_password(password)
        return data


class ProductRepository(Repository[Product]):
    """New products start with their whole initial stock on hand."""

    def _build(self, payload: SQLModel) -> Product:
        return Product.model_validate(payload, update={"stock": payload.initial_stock})


roles = Repository(Role, "Role", order_by=Role.name, search_fields=(Role.name,))
personnel = PersonnelRepository(
    Personnel, "Personnel", order_by=Personnel.name,
    search_fields=(Personnel.name, Personnel.last_name, Personnel.email),
)
categories = Repository(Category, "Category", order_by=Category.name, search_fields=(Category.name, Category.unit))
suppliers = Repository(
    Supplier, "Supplier", order_by=Supplier.trade_name,
    search_fields=(Supplier.trade_name, Supplier.contact_name, Supplier.email, Supplier.city),
)
clients = Repository(
    Client, "Client", order_by=Client.trade_name,
    search_fields=(Client.trade_name, Client.contact_name, Client.email, Client.city),
)
contacts = Repository(
    Contact, "Contact", order_by=Contact.name,
    search_fields=(Contact.name, Contact.last_name, Contact.position, Contact.email),
)
services = Repository(Service, "Service", order_by=Service.name, search_fields=(Service.name, Service.description))
products = ProductRepository(
    Product, "Product", order_by=Product.name,
    search_fields=(Product.name, Product.model, Product.manufacturer_brand, Product.factory_code),
)
