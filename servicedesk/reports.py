import logging
import re
import urllib.parse
from datetime import datetime
from typing import Optional

import google.generativeai as genai
from sqlmodel import Session

from servicedesk.config import Settings
from servicedesk.errors import ServiceUnavailableError, ValidationFailed
from servicedesk.order_views import order_detail

logger = logging.getLogger(__name__)

_model = None


def get_model(settings: Settings):
    """Gemini model, configured once. None when no API key is set."""
    global _model
    if not settings.google_api_key:
        return None
    if _model is None:
        genai.configure(api_key=settings.google_api_key)
        _model = genai.GenerativeModel(settings.gemini_model)
    return _model


def build_prompt(detail: dict) -> str:
    items = "".join(
        f"- {line['product_name']} (x{line['quantity_used']:g} {line['unit'] or ''})\n"
        for line in detail["products"]
    )
    return f"""
    Act as an honest and professional service supervisor.
    Write a short WhatsApp message for the client {detail['client_name']} about the
    service "{detail['service_name']}" carried out on {detail['scheduled_date']}.

    ACTUAL LIST OF MATERIALS USED (USE ONLY THESE):
    {items}
    Activities: {detail.get('activities') or '-'}
    Recommendations: {detail.get('recommendations') or '-'}
    Total: $ {detail['price']:.2f}

    STRICT instructions:
    1. Mention ONLY the materials listed above. Do not invent any other work.
    2. Keep it brief if the list is short.
    3. Be cordial. No markdown.
    """


def whatsapp_link(phone: Optional[str], message: str, country_code: str) -> Optional[str]:
    digits = re.sub(r"\D", "", phone or "")
    if not digits:
        return None
    return f"https://wa.me/{country_code}{digits}?text={urllib.parse.quote(message)}"


def client_message(session: Session, order_id: int, settings: Settings) -> dict:
    """
    Drafts the message to the client for an order, listing the materials
    actually used. Raises ServiceUnavailableError when Gemini is not configured.
    """
    detail = order_detail(session, order_id)
    if not detail["products"]:
        raise ValidationFailed("Add the used products to the service order before generating the message")

    model = get_model(settings)
    if model is None:
        raise ServiceUnavailableError("Client messages need GOOGLE_API_KEY to be configured")

    try:
        response = model.generate_content(build_prompt(detail))
        text = response.text
    except Exception as exc:
        logger.exception("Gemini call failed for service order %s", order_id)
        raise ServiceUnavailableError("The client message could not be generated") from exc
    logger.info("Client message generated for service order %s", order_id)
    return {
        "service_order_id": order_id,
        "text": text,
        "whatsapp_link": whatsapp_link(detail["client_phone"], text, settings.whatsapp_country_code),
    }


def print_context(session: Session, order_id: int) -> dict:
    """Template context for the printable service-order sheet."""
    detail = order_detail(session, order_id)
    lines = []
    for line in detail["products"]:
        lines.append({**line, "subtotal": line["quantity_used"] * line["sale_price"]})
    total = sum(line["subtotal"] for line in lines)
    return {"order": detail, "items": lines, "materials_total": total, "now": datetime.now()}
