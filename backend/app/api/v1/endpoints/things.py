from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api.v1.errors import to_http_exception
from app.api.v1.schemas.thing import ThingCreate, ThingRead, ThingUpdate
from app.core.errors import ThingsError
from app.core.schemas.auth import AuthUser
from app.core.services.thing_service import ThingService
from app.dependencies import get_current_user, get_thing_service

router = APIRouter()


@router.post("/", response_model=ThingRead, status_code=status.HTTP_201_CREATED)
async def create_thing(
    payload: ThingCreate,
    current_user: AuthUser = Depends(get_current_user),
    service: ThingService = Depends(get_thing_service),
):
    try:
        thing = await service.add_thing(current_user.id, payload.content, payload.attachments)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return ThingRead.model_validate(thing.model_dump())


@router.get("/", response_model=list[ThingRead])
async def list_things(
    query: str | None = None,
    skip: int = 0,
    limit: int = 50,
    current_user: AuthUser = Depends(get_current_user),
    service: ThingService = Depends(get_thing_service),
):
    try:
        things = await service.list_things(current_user.id, query=query, skip=max(skip, 0), limit=max(limit, 1))
    except ThingsError as err:
        raise to_http_exception(err) from err
    return [ThingRead.model_validate(t.model_dump()) for t in things]


@router.get("/{thing_id}", response_model=ThingRead)
async def get_thing(
    thing_id: str,
    current_user: AuthUser = Depends(get_current_user),
    service: ThingService = Depends(get_thing_service),
):
    try:
        thing = await service.get_thing(current_user.id, thing_id, current_user.id)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return ThingRead.model_validate(thing.model_dump())


@router.put("/{thing_id}", response_model=ThingRead)
async def update_thing(
    thing_id: str,
    payload: ThingUpdate,
    current_user: AuthUser = Depends(get_current_user),
    service: ThingService = Depends(get_thing_service),
):
    try:
        thing = await service.update_thing(
            current_user.id, thing_id, payload.content, payload.attachments, payload.acl
        )
    except ThingsError as err:
        raise to_http_exception(err) from err
    return ThingRead.model_validate(thing.model_dump())


@router.delete("/{thing_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_thing(
    thing_id: str,
    current_user: AuthUser = Depends(get_current_user),
    service: ThingService = Depends(get_thing_service),
):
    try:
        await service.delete_thing(current_user.id, thing_id)
    except ThingsError as err:
        raise to_http_exception(err) from err
    return None
