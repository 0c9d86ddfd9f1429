import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from servicedesk.errors import NotFoundError, ValidationFailed
from servicedesk.models import (
    OPEN_STATES,
    Category,
    Product,
    ServiceOrder,
    ServiceOrderProduct,
    ServiceOrderState,
    Supplier,
)

logger = logging.getLogger(__name__)


def _with_search(query, search: Optional[str]):
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            (Product.name.ilike(pattern)) |
            (Product.model.ilike(pattern)) |
            (Product.manufacturer_brand.ilike(pattern)) |
            (Category.name.ilike(pattern))
        )
    return query


def list_products(session: Session, search: Optional[str] = None) -> List[dict]:
    """Products with their category name and unit."""
    query = select(Product, Category).where(Product.category_id == Category.id)
    rows = session.exec(_with_search(query, search).order_by(Product.name)).all()
    return [
        {**product.model_dump(), "category_name": category.name, "unit": category.unit}
        for product, category in rows
    ]


def list_products_with_supplier(session: Session, search: Optional[str] = None) -> List[dict]:
    query = select(Product, Category, Supplier).where(
        Product.category_id == Category.id, Product.supplier_id == Supplier.id
    )
    rows = session.exec(_with_search(query, search).order_by(Product.name)).all()
    return [
        {
            **product.model_dump(),
            "category_name": category.name,
            "unit": category.unit,
            "supplier_name": supplier.trade_name,
        }
        for product, category, supplier in rows
    ]


def committed_quantities(session: Session) -> Dict[int, float]:
    """Quantity of each product booked on orders that are not finished yet."""
    query = (
        select(ServiceOrderProduct.product_id, func.sum(ServiceOrderProduct.quantity_used))
        .join(ServiceOrder, ServiceOrder.id == ServiceOrderProduct.service_order_id)
        .where(ServiceOrder.state.in_(list(OPEN_STATES)))
        .group_by(ServiceOrderProduct.product_id)
    )
    return {product_id: float(total or 0) for product_id, total in session.exec(query).all()}


def list_available_products(session: Session, search: Optional[str] = None) -> List[dict]:
    """
    Stock view used when filling in a service order:
    physical = on hand, committed = booked on open orders,
    available = physical - committed.
    """
    committed = committed_quantities(session)
    result = []
    for row in list_products(session, search):
        physical = float(row["stock"] or 0)
        booked = committed.get(row["id"], 0.0)
        available = physical - booked
        result.append({
            **row,
            "physical_stock": physical,
            "committed_stock": booked,
            "available_stock": available,
            "low_stock": available <= float(row["minimum_stock"] or 0),
        })
    return result


def aggregate_usage(usages: Iterable[Tuple[int, float]]) -> "OrderedDict[int, float]":
    totals: "OrderedDict[int, float]" = OrderedDict()
    for product_id, quantity in usages:
        totals[product_id] = totals.get(product_id, 0.0) + float(quantity)
    return totals


def decrement_stock(session: Session, usages: Iterable[Tuple[int, float]]) -> None:
    """
    Takes the used quantities out of stock. Must run inside the caller's
    unit of work: product rows are locked, every product is checked first
    and nothing is written if any of them falls short.
    """
    totals = aggregate_usage(usages)
    products = {}
    for product_id in sorted(totals):
        product = session.exec(
            select(Product).where(Product.id == product_id).with_for_update()
        ).first()
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if product.stock < totals[product_id]:
            raise ValidationFailed(
                f"Insufficient stock for product {product_id}: "
                f"available {product.stock:g}, requested {totals[product_id]:g}"
            )
        products[product_id] = product

    for product_id, quantity in totals.items():
        product = products[product_id]
        product.stock -= quantity
        session.add(product)
        logger.info("Stock of product %s decreased by %g (now %g)", product_id, quantity, product.stock)


def dashboard_figures(session: Session) -> dict:
    """Headline numbers for the home page."""
    # 1. Inventory value at sale price
    items = session.exec(select(Product)).all()
    total_inventory_value = sum(item.sale_price * item.stock for item in items)

    # 2. Products at or below their minimum
    low_stock_count = sum(1 for item in items if item.stock <= item.minimum_stock)

    # 3. Orders per state
    counts = dict(
        session.exec(select(ServiceOrder.state, func.count()).group_by(ServiceOrder.state)).all()
    )
    orders_by_state = {state.value: counts.get(state, 0) for state in ServiceOrderState}

    return {
        "total_inventory_value": round(total_inventory_value, 2),
        "low_stock_count": low_stock_count,
        "orders_by_state": orders_by_state,
        "open_orders": sum(orders_by_state[state.value] for state in OPEN_STATES),
    }
