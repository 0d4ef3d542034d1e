from uuid import UUID

from fastapi import APIRouter, Depends, Response

from ..db import RowStore, get_db
from ..errors import handler_boundary
from ..schemas.pydantic_schemas import PropertyListResponse, PropertyRead, PropertyWrite
from ..services.security import Identity
from .deps import require_identity
from .pipeline import OwnedResource

router = APIRouter()

properties = OwnedResource("properties", "Property")


@router.get("", response_model=PropertyListResponse)
@handler_boundary("Properties API")
async def list_properties(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    rows, _ = properties.list(db, identity, order="created_at", desc=True)
    return {"properties": rows}


@router.post("", response_model=PropertyRead, status_code=201)
@handler_boundary("Properties API")
async def create_property(
    body: PropertyWrite,
    identity: Identity = Depends(require_identity),
    db: RowStore = Depends(get_db),
):
    return properties.create(db, identity, body.model_dump())


@router.get("/{property_id}", response_model=PropertyRead)
@handler_boundary("Property API")
async def get_property(property_id: UUID, identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    return properties.get(db, identity, property_id)


@router.put("/{property_id}", response_model=PropertyRead)
@handler_boundary("Properties API")
async def update_property(
    property_id: UUID,
    body: PropertyWrite,
    identity: Identity = Depends(require_identity),
    db: RowStore = Depends(get_db),
):
    # Omitted optional fields keep their stored value; status falls back to its default
    values = {**body.model_dump(exclude_unset=True), "status": body.status}
    return properties.update(db, identity, values, rid=property_id)


@router.delete("/{property_id}", status_code=204)
@handler_boundary("Properties API")
async def delete_property(property_id: UUID, identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    properties.delete(db, identity, property_id)
    return Response(status_code=204)
