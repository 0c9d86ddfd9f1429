from fastapi import APIRouter, Depends
from sqlmodel import Session

from servicedesk import repository
from servicedesk.database import get_session
from servicedesk.models import PersonnelRead
from servicedesk.routers.crud import register_crud_routes
from servicedesk.schemas import (
    LoginRequest,
    PersonnelCreate,
    PersonnelUpdate,
    RoleCreate,
    RoleUpdate,
)
from servicedesk.security import authenticate

roles_router = register_crud_routes(
    APIRouter(prefix="/roles", tags=["roles"]),
    repository.roles,
    resource="role",
    create_schema=RoleCreate,
    update_schema=RoleUpdate,
)

personnel_router = register_crud_routes(
    APIRouter(prefix="/personnel", tags=["personnel"]),
    repository.personnel,
    resource="personnel",
    create_schema=PersonnelCreate,
    update_schema=PersonnelUpdate,
    read_schema=PersonnelRead,
)

auth_router = APIRouter(prefix="/auth", tags=["auth"])


@auth_router.post("/login")
def login(payload: LoginRequest, session: Session = Depends(get_session)):
    person = authenticate(session, payload.email, payload.password)
    return {"message": "Login successful", "user": PersonnelRead.model_validate(person)}
