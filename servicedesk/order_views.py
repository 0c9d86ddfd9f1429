"""Read-side shapes of service orders, with the joined display names."""
from typing import Dict, List, Optional

from sqlmodel import Session, select

from servicedesk.errors import NotFoundError
from servicedesk.models import (
    Category,
    Client,
    Personnel,
    Product,
    Service,
    ServiceOrder,
    ServiceOrderPersonnel,
    ServiceOrderProduct,
)


def _personnel_names(session: Session, order_ids: List[int]) -> Dict[int, List[str]]:
    if not order_ids:
        return {}
    rows = session.exec(
        select(ServiceOrderPersonnel.service_order_id, Personnel.name, Personnel.last_name)
        .where(ServiceOrderPersonnel.personnel_id == Personnel.id)
        .where(ServiceOrderPersonnel.service_order_id.in_(order_ids))
        .order_by(Personnel.name)
    ).all()
    names: Dict[int, List[str]] = {}
    for order_id, name, last_name in rows:
        names.setdefault(order_id, []).append(f"{name} {last_name}")
    return names


def list_orders(session: Session, search: Optional[str] = None) -> List[dict]:
    """All orders, newest scheduled first, with client, service and staff names."""
    query = (
        select(ServiceOrder, Client.trade_name, Service.name)
        .join(Client, Client.id == ServiceOrder.client_id, isouter=True)
        .join(Service, Service.id == ServiceOrder.service_id, isouter=True)
    )
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            (Client.trade_name.ilike(pattern)) |
            (Service.name.ilike(pattern)) |
            (ServiceOrder.contact_name.ilike(pattern)) |
            (ServiceOrder.activities.ilike(pattern))
        )
    rows = session.exec(query.order_by(ServiceOrder.scheduled_date.desc(), ServiceOrder.id.desc())).all()
    staff = _personnel_names(session, [order.id for order, _, _ in rows])
    return [
        {
            **order.model_dump(),
            "client_name": client_name,
            "service_name": service_name,
            "personnel_names": ", ".join(staff.get(order.id, [])) or None,
        }
        for order, client_name, service_name in rows
    ]


def order_products(session: Session, order_id: int) -> List[dict]:
    rows = session.exec(
        select(ServiceOrderProduct, Product, Category)
        .join(Product, Product.id == ServiceOrderProduct.product_id)
        .join(Category, Category.id == Product.category_id, isouter=True)
        .where(ServiceOrderProduct.service_order_id == order_id)
        .order_by(ServiceOrderProduct.id)
    ).all()
    return [
        {
            "id": line.id,
            "product_id": line.product_id,
            "product_name": product.name,
            "quantity_used": line.quantity_used,
            "unit": category.unit if category else None,
            "sale_price": product.sale_price,
        }
        for line, product, category in rows
    ]


def order_personnel(session: Session, order_id: int) -> List[dict]:
    rows = session.exec(
        select(Personnel)
        .join(ServiceOrderPersonnel, ServiceOrderPersonnel.personnel_id == Personnel.id)
        .where(ServiceOrderPersonnel.service_order_id == order_id)
        .order_by(Personnel.name)
    ).all()
    return [{"id": person.id, "full_name": f"{person.name} {person.last_name}"} for person in rows]


def order_detail(session: Session, order_id: int) -> dict:
    """One order with its materials and assigned staff."""
    row = session.exec(
        select(ServiceOrder, Client, Service)
        .join(Client, Client.id == ServiceOrder.client_id, isouter=True)
        .join(Service, Service.id == ServiceOrder.service_id, isouter=True)
        .where(ServiceOrder.id == order_id)
    ).first()
    if row is None:
        raise NotFoundError("Service order not found")
    order, client, service = row
    return {
        **order.model_dump(),
        "client_name": client.trade_name if client else None,
        "client_phone": client.phone_or_cell if client else None,
        "service_name": service.name if service else None,
        "products": order_products(session, order_id),
        "personnel": order_personnel(session, order_id),
    }


def full_orders(session: Session) -> List[dict]:
    """
    Every order with client, service and product details, one entry per order
    (products nested instead of one row per product).
    """
    orders = session.exec(
        select(ServiceOrder, Client, Service)
        .join(Client, Client.id == ServiceOrder.client_id, isouter=True)
        .join(Service, Service.id == ServiceOrder.service_id, isouter=True)
        .order_by(ServiceOrder.id.desc())
    ).all()
    result = []
    for order, client, service in orders:
        result.append({
            **order.model_dump(),
            "service_name": service.name if service else None,
            "service_description": service.description if service else None,
            "client": client.model_dump() if client else None,
            "products": order_products(session, order.id),
            "personnel": order_personnel(session, order.id),
        })
    return result
