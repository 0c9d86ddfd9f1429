from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlmodel import Session

from servicedesk import order_views, reports
from servicedesk.config import Settings, get_settings
from servicedesk.database import get_session
from servicedesk.schemas import (
    CancelRequest,
    CompleteRequest,
    ConfirmRequest,
    CorrectTimesRequest,
    ServiceOrderCreate,
    ServiceOrderUpdate,
    SignRequest,
    StartRequest,
    UsedProductsRequest,
)
from servicedesk.workflow import ServiceOrderWorkflow

router = APIRouter(prefix="/service-orders", tags=["service-orders"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))


def get_workflow(settings: Settings = Depends(get_settings)) -> ServiceOrderWorkflow:
    return ServiceOrderWorkflow(stock_policy=settings.stock_policy)


def _answer(session: Session, message: str, order_id: int) -> dict:
    return {"message": message, "service_order": order_views.order_detail(session, order_id)}


# --- Queries ---

@router.get("")
def read_service_orders(search: str = "", session: Session = Depends(get_session)):
    return order_views.list_orders(session, search or None)


@router.get("/full")
def read_full_service_orders(session: Session = Depends(get_session)):
    return order_views.full_orders(session)


@router.get("/{order_id}")
def read_service_order(order_id: int, session: Session = Depends(get_session)):
    return order_views.order_detail(session, order_id)


# --- CRUD ---

@router.post("", status_code=201)
def create_service_order(
    payload: ServiceOrderCreate,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    order = workflow.create(session, payload)
    return {"message": "Service order created successfully", "id": order.id,
            "service_order": order_views.order_detail(session, order.id)}


@router.put("/{order_id}")
def update_service_order(
    order_id: int,
    payload: ServiceOrderUpdate,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.update(session, order_id, payload)
    return _answer(session, "Service order updated successfully", order_id)


@router.delete("/{order_id}", status_code=204)
def delete_service_order(
    order_id: int,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.delete(session, order_id)
    return Response(status_code=204)


# --- Transitions ---

@router.put("/{order_id}/start")
def start_service_order(
    order_id: int,
    payload: Optional[StartRequest] = None,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.start(session, order_id, payload.start_time if payload else None)
    return _answer(session, "Service order started", order_id)


@router.put("/{order_id}/complete")
def complete_service_order(
    order_id: int,
    payload: Optional[CompleteRequest] = None,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    payload = payload or CompleteRequest()
    workflow.complete(session, order_id, payload.end_time, payload.products)
    return _answer(session, "Service order completed", order_id)


@router.put("/{order_id}/cancel")
def cancel_service_order(
    order_id: int,
    payload: Optional[CancelRequest] = None,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.cancel(session, order_id, payload.cancel_reason if payload else None)
    return _answer(session, "Service order cancelled", order_id)


@router.post("/{order_id}/confirm")
def confirm_service_order(
    order_id: int,
    payload: Optional[ConfirmRequest] = None,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.confirm(session, order_id, payload.products_used if payload else None)
    return _answer(session, "Service order completed and stock updated", order_id)


@router.put("/{order_id}/correct-times")
def correct_service_order_times(
    order_id: int,
    payload: CorrectTimesRequest,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    """Administrative override: fixes times and derives the state from them."""
    workflow.correct_times(session, order_id, payload.start_time, payload.end_time)
    return _answer(session, "Service order times corrected", order_id)


# --- Materials, signature, documents ---

@router.post("/{order_id}/products")
def add_used_products(
    order_id: int,
    payload: UsedProductsRequest,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.add_used_products(session, order_id, payload.products)
    return {"message": "Products registered successfully", "service_order_id": order_id,
            "products": order_views.order_products(session, order_id)}


@router.put("/{order_id}/sign")
def sign_service_order(
    order_id: int,
    payload: SignRequest,
    session: Session = Depends(get_session),
    workflow: ServiceOrderWorkflow = Depends(get_workflow),
):
    workflow.sign(session, order_id, payload.files)
    return {"message": "Signature saved successfully", "service_order_id": order_id}


@router.get("/{order_id}/print", response_class=HTMLResponse)
def print_service_order(order_id: int, request: Request, session: Session = Depends(get_session)):
    context = reports.print_context(session, order_id)
    return templates.TemplateResponse(request, "print_service_order.html", context)


@router.post("/{order_id}/client-message")
def generate_client_message(
    order_id: int,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
):
    return reports.client_message(session, order_id, settings)
