"""
Service-order workflow.

    PENDING --start--> IN_PROGRESS --complete--> COMPLETED
       |                    |
       +------cancel--------+-----------------> CANCELLED

COMPLETED and CANCELLED are terminal, and the general update and material
changes are refused for them too. Every operation runs in one unit of
work: validation and not-found checks happen before the first write, and any
failure rolls the whole operation back.

`correct_times` is an administrative override that derives the state from
the time fields instead of following the graph above. It is for fixing data
entry mistakes and is not part of the normal lifecycle.
"""
import logging
import math
import re
from datetime import datetime, time
from typing import Callable, Collection, Iterable, List, Optional, Sequence, Union

from sqlalchemy import delete
from sqlmodel import Session, select

from servicedesk import inventory
from servicedesk.config import StockPolicy
from servicedesk.database import unit_of_work
from servicedesk.errors import InvalidStateError, NotFoundError, ValidationFailed
from servicedesk.models import (
    OPEN_STATES,
    TERMINAL_STATES,
    Client,
    Personnel,
    Product,
    Service,
    ServiceOrder,
    ServiceOrderPersonnel,
    ServiceOrderProduct,
    ServiceOrderState,
)
from servicedesk.schemas import ProductUsage, ServiceOrderCreate, ServiceOrderUpdate

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M:%S"
_TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d:[0-5]\d$")

# Descriptive columns the general update may touch; state and times are not among them
UPDATABLE_FIELDS = frozenset({
    "client_id", "service_id", "contact_name", "contact_phone", "contact_email",
    "scheduled_date", "price", "activities", "recommendations",
})


def parse_time(value: Union[str, time], field_name: str) -> time:
    """Strict HH:MM:SS (00-23 / 00-59 / 00-59)."""
    if isinstance(value, time):
        return value.replace(microsecond=0)
    if not isinstance(value, str) or not _TIME_RE.match(value):
        raise ValidationFailed(f"{field_name} must use the HH:MM:SS format")
    return time.fromisoformat(value)


def validate_usage(products: Optional[Iterable[ProductUsage]]) -> List[ProductUsage]:
    """Checks every line before anything is written."""
    lines = list(products or [])
    for line in lines:
        if line.product_id is None:
            raise ValidationFailed("Each product needs a product_id and a quantity_used")
        if line.quantity_used is None or not math.isfinite(line.quantity_used) or not line.quantity_used > 0:
            raise ValidationFailed("quantity_used must be greater than 0")
    return lines


class ServiceOrderWorkflow:
    """
    Lifecycle operations for service orders.

    `stock_policy` decides which completion path takes materials out of
    stock (see servicedesk.config.StockPolicy). `clock` returns the current
    datetime and is used when a transition does not carry an explicit time.
    """

    def __init__(self, stock_policy: StockPolicy = StockPolicy.ON_CONFIRM, clock: Callable[[], datetime] = datetime.now):
        self.stock_policy = stock_policy
        self.clock = clock

    # --- Helpers ---

    def resolve_time(self, value: Optional[str], field_name: str) -> time:
        """Explicit value when given, otherwise the current time of day."""
        if value is None or value == "":
            value = self.clock().strftime(TIME_FORMAT)
        return parse_time(value, field_name)

    def _load(self, session: Session, order_id: int, lock: bool = False) -> ServiceOrder:
        query = select(ServiceOrder).where(ServiceOrder.id == order_id)
        if lock:
            query = query.with_for_update().execution_options(populate_existing=True)
        order = session.exec(query).first()
        if order is None:
            raise NotFoundError("Service order not found")
        return order

    def _require_state(self, order: ServiceOrder, allowed: Collection[ServiceOrderState], action: str) -> None:
        if order.state not in allowed:
            raise InvalidStateError(
                f'Cannot {action} service order {order.id}: current state is "{order.state.value}"'
            )

    def _check_references(self, session: Session, client_id=None, service_id=None,
                          products: Sequence[ProductUsage] = (), personnel_ids: Sequence[int] = ()) -> None:
        if client_id is not None and session.get(Client, client_id) is None:
            raise NotFoundError(f"Client {client_id} not found")
        if service_id is not None and session.get(Service, service_id) is None:
            raise NotFoundError(f"Service {service_id} not found")
        for line in products:
            if session.get(Product, line.product_id) is None:
                raise NotFoundError(f"Product {line.product_id} not found")
        for personnel_id in personnel_ids:
            if session.get(Personnel, personnel_id) is None:
                raise NotFoundError(f"Personnel {personnel_id} not found")

    def _insert_products(self, session: Session, order_id: int, products: Sequence[ProductUsage]) -> None:
        for line in products:
            session.add(ServiceOrderProduct(
                service_order_id=order_id,
                product_id=line.product_id,
                quantity_used=line.quantity_used,
            ))

    def _insert_personnel(self, session: Session, order_id: int, personnel_ids: Sequence[int]) -> None:
        # Keep first occurrence only; (order, personnel) is the primary key
        for personnel_id in dict.fromkeys(personnel_ids):
            session.add(ServiceOrderPersonnel(service_order_id=order_id, personnel_id=personnel_id))

    def _product_lines(self, session: Session, order_id: int) -> List[ServiceOrderProduct]:
        return list(session.exec(
            select(ServiceOrderProduct).where(ServiceOrderProduct.service_order_id == order_id)
        ).all())

    def _finish(self, session: Session, order: ServiceOrder, end_time: time, take_stock: bool) -> None:
        """Shared last step of `complete` and `confirm`."""
        if take_stock:
            session.flush()
            lines = self._product_lines(session, order.id)
            inventory.decrement_stock(session, [(line.product_id, line.quantity_used) for line in lines])
        order.end_time = end_time
        order.state = ServiceOrderState.COMPLETED
        session.add(order)

    # --- Associations ---

    def replace_associations(self, session: Session, order_id: int,
                             products: Optional[Sequence[ProductUsage]] = None,
                             personnel_ids: Optional[Sequence[int]] = None) -> None:
        """
        Full replace, not merge: all product and personnel rows of the order
        are deleted and the given sets inserted. None/empty leaves the order
        with no associations. Runs inside the caller's unit of work.
        """
        session.exec(delete(ServiceOrderProduct).where(ServiceOrderProduct.service_order_id == order_id))
        session.exec(delete(ServiceOrderPersonnel).where(ServiceOrderPersonnel.service_order_id == order_id))
        self._insert_products(session, order_id, products or [])
        self._insert_personnel(session, order_id, personnel_ids or [])

    # --- CRUD ---

    def create(self, session: Session, payload: ServiceOrderCreate) -> ServiceOrder:
        products = validate_usage(payload.products)
        personnel_ids = list(payload.personnel_ids or [])
        start_time = parse_time(payload.start_time, "start_time") if payload.start_time else None
        self._check_references(session, payload.client_id, payload.service_id, products, personnel_ids)

        order = ServiceOrder.model_validate(
            payload.model_dump(exclude={"products", "personnel_ids", "start_time"}),
            update={"start_time": start_time, "state": ServiceOrderState.PENDING},
        )
        with unit_of_work(session):
            session.add(order)
            session.flush()
            self._insert_products(session, order.id, products)
            self._insert_personnel(session, order.id, personnel_ids)
        session.refresh(order)
        logger.info("Service order %s created with %d product(s), %d personnel",
                    order.id, len(products), len(set(personnel_ids)))
        return order

    def update(self, session: Session, order_id: int, payload: ServiceOrderUpdate) -> ServiceOrder:
        sent = payload.model_dump(exclude_unset=True)
        if not sent:
            raise ValidationFailed("No valid fields were sent for update")
        fields = {key: value for key, value in sent.items() if key in UPDATABLE_FIELDS}
        for key in ("client_id", "service_id", "scheduled_date", "price"):
            if key in fields and fields[key] is None:
                raise ValidationFailed(f"{key} cannot be empty")
        products = validate_usage(payload.products)
        personnel_ids = list(payload.personnel_ids or [])

        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            self._require_state(order, OPEN_STATES, "update")
            self._check_references(session, fields.get("client_id"), fields.get("service_id"),
                                   products, personnel_ids)
            order.sqlmodel_update(fields)
            session.add(order)
            self.replace_associations(session, order.id, products, personnel_ids)
        session.refresh(order)
        logger.info("Service order %s updated", order_id)
        return order

    def delete(self, session: Session, order_id: int) -> None:
        """Deletes the order together with its association rows."""
        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            self.replace_associations(session, order.id)
            session.delete(order)
        logger.info("Service order %s deleted", order_id)

    # --- Transitions ---

    def start(self, session: Session, order_id: int, start_time: Optional[str] = None) -> ServiceOrder:
        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            self._require_state(order, [ServiceOrderState.PENDING], "start")
            order.start_time = self.resolve_time(start_time, "start_time")
            order.state = ServiceOrderState.IN_PROGRESS
            session.add(order)
        session.refresh(order)
        logger.info("Service order %s started at %s", order_id, order.start_time)
        return order

    def complete(self, session: Session, order_id: int, end_time: Optional[str] = None,
                 products: Optional[Sequence[ProductUsage]] = None) -> ServiceOrder:
        """
        IN_PROGRESS -> COMPLETED. The given products are appended to the
        order's materials. Stock only moves here under the `complete` policy.
        """
        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            self._require_state(order, [ServiceOrderState.IN_PROGRESS], "complete")
            resolved = self.resolve_time(end_time, "end_time")
            lines = validate_usage(products)
            self._check_references(session, products=lines)
            self._insert_products(session, order.id, lines)
            self._finish(session, order, resolved, take_stock=self.stock_policy == StockPolicy.ON_COMPLETE)
        session.refresh(order)
        logger.info("Service order %s completed at %s (%d product line(s) added)",
                    order_id, order.end_time, len(lines))
        return order

    def confirm(self, session: Session, order_id: int,
                products_used: Optional[Sequence[ProductUsage]] = None) -> ServiceOrder:
        """
        Completion that always takes the materials out of stock. Accepts a
        pending order too (its start time is captured now). When
        `products_used` is given it replaces the order's materials first.
        """
        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            self._require_state(order, [ServiceOrderState.PENDING, ServiceOrderState.IN_PROGRESS], "confirm")
            if products_used is not None:
                lines = validate_usage(products_used)
                self._check_references(session, products=lines)
                session.exec(delete(ServiceOrderProduct).where(ServiceOrderProduct.service_order_id == order.id))
                self._insert_products(session, order.id, lines)
            now = self.resolve_time(None, "end_time")
            if order.state == ServiceOrderState.PENDING and order.start_time is None:
                order.start_time = now
            self._finish(session, order, now, take_stock=True)
        session.refresh(order)
        logger.info("Service order %s confirmed, stock updated", order_id)
        return order

    def cancel(self, session: Session, order_id: int, reason: Optional[str] = None) -> ServiceOrder:
        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            if order.state in TERMINAL_STATES:
                raise InvalidStateError(
                    f'Cannot cancel service order {order.id}: current state is "{order.state.value}"'
                )
            order.state = ServiceOrderState.CANCELLED
            order.cancel_reason = reason or None
            session.add(order)
        session.refresh(order)
        logger.info("Service order %s cancelled", order_id)
        return order

    # --- Administrative override ---

    def correct_times(self, session: Session, order_id: int,
                      start_time: Optional[str] = None, end_time: Optional[str] = None) -> ServiceOrder:
        """
        Fixes recorded times and derives the state from what was sent:
        start only -> IN_PROGRESS, both -> COMPLETED, neither or end only ->
        unchanged. Omitted times keep their stored value. Bypasses the
        transition rules.
        """
        new_start = parse_time(start_time, "start_time") if start_time else None
        new_end = parse_time(end_time, "end_time") if end_time else None

        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            previous = order.state
            if new_start is not None:
                order.start_time = new_start
            if new_end is not None:
                order.end_time = new_end
            if new_start is not None and new_end is None:
                order.state = ServiceOrderState.IN_PROGRESS
            elif new_start is not None and new_end is not None:
                order.state = ServiceOrderState.COMPLETED
            session.add(order)
        session.refresh(order)
        logger.warning("Times of service order %s corrected by override (state %s -> %s)",
                       order_id, previous.value, order.state.value)
        return order

    # --- Materials & signature ---

    def add_used_products(self, session: Session, order_id: int, products: Sequence[ProductUsage]) -> List[ServiceOrderProduct]:
        lines = validate_usage(products)
        if not lines:
            raise ValidationFailed("products must be a non-empty list")
        with unit_of_work(session):
            order = self._load(session, order_id, lock=True)
            self._require_state(order, OPEN_STATES, "add products to")
            self._check_references(session, products=lines)
            self._insert_products(session, order.id, lines)
        logger.info("%d product line(s) added to service order %s", len(lines), order_id)
        return self._product_lines(session, order_id)

    def sign(self, session: Session, order_id: int, files: Optional[str]) -> ServiceOrder:
        if not files:
            raise ValidationFailed("files is required (base64 data or a path)")
        with unit_of_work(session):
            order = self._load(session, order_id)
            order.files = files
            session.add(order)
        session.refresh(order)
        logger.info("Signature stored for service order %s", order_id)
        return order
