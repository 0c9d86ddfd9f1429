import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from servicedesk import inventory
from servicedesk.config import get_settings
from servicedesk.database import create_db_and_tables, get_session
from servicedesk.errors import ServiceDeskError
from servicedesk.logging_config import configure_logging
from servicedesk.routers.catalog import categories_router, products_router, services_router
from servicedesk.routers.partners import clients_router, contacts_router, suppliers_router
from servicedesk.routers.service_orders import router as service_orders_router
from servicedesk.routers.staff import auth_router, personnel_router, roles_router

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Service Desk API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    configure_logging(settings.log_level, settings.log_file)
    if not settings.google_api_key:
        logger.warning("GOOGLE_API_KEY not set: client messages are disabled")
    logger.info("Stock policy: %s", settings.stock_policy.value)
    create_db_and_tables()


# --- Error answers: always {"message": ...} ---

@app.exception_handler(ServiceDeskError)
async def service_desk_error_handler(request: Request, exc: ServiceDeskError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return JSONResponse(status_code=400, content={"message": "; ".join(problems) or "Invalid request"})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# --- Routes ---

for router in (
    roles_router,
    personnel_router,
    auth_router,
    categories_router,
    services_router,
    products_router,
    clients_router,
    suppliers_router,
    contacts_router,
    service_orders_router,
):
    app.include_router(router, prefix="/api")


@app.get("/api/dashboard")
def read_dashboard(session: Session = Depends(get_session)):
    return inventory.dashboard_figures(session)


@app.get("/health")
def health():
    return {"status": "ok"}
