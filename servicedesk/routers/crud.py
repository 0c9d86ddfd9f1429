from typing import Callable, List, Optional, Type

from fastapi import APIRouter, Depends, Response
from sqlmodel import Session, SQLModel

from servicedesk.database import get_session
from servicedesk.repository import Repository


def register_crud_routes(
    router: APIRouter,
    repository: Repository,
    *,
    resource: str,
    create_schema: Type[SQLModel],
    update_schema: Type[SQLModel],
    read_schema: Optional[Type[SQLModel]] = None,
    lister: Optional[Callable[[Session, Optional[str]], List]] = None,
) -> APIRouter:
    """
    Adds list/get/create/update/delete routes for one repository to `router`.
    Extra routes with fixed paths must be registered before calling this,
    otherwise "/{item_id}" captures them.
    """

    def _out(item):
        return read_schema.model_validate(item) if read_schema else item

    @router.get("")
    def list_items(search: str = "", session: Session = Depends(get_session)):
        if lister is not None:
            return lister(session, search or None)
        return [_out(item) for item in repository.list(session, search or None)]

    @router.get("/{item_id}")
    def get_item(item_id: int, session: Session = Depends(get_session)):
        return _out(repository.get(session, item_id))

    @router.post("", status_code=201)
    def create_item(payload: create_schema, session: Session = Depends(get_session)):
        return _out(repository.create(session, payload))

    @router.put("/{item_id}")
    def update_item(item_id: int, payload: update_schema, session: Session = Depends(get_session)):
        item = repository.update(session, item_id, payload)
        return {"message": f"{repository.label} updated successfully", resource: _out(item)}

    @router.delete("/{item_id}", status_code=204)
    def delete_item(item_id: int, session: Session = Depends(get_session)):
        repository.delete(session, item_id)
        return Response(status_code=204)

    return router
