from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from ..db import RowStore, get_db
from ..errors import handler_boundary
from ..schemas.pydantic_schemas import TagCreate, TagRead
from ..services.security import Identity
from .deps import require_identity
from .pipeline import OwnedResource

router = APIRouter()

tags = OwnedResource(
    "tags",
    "Tag",
    updated_field=None,
    conflict_message="A tag with this name already exists",
)


@router.get("", response_model=List[TagRead])
@handler_boundary("Tags API")
async def list_tags(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    rows, _ = tags.list(db, identity, order="name")
    return rows


@router.post("", response_model=TagRead, status_code=201)
@handler_boundary("Tags API")
async def create_tag(body: TagCreate, identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    return tags.create(db, identity, {"name": body.name, "color": body.color or None})


@router.delete("/{tag_id}", status_code=204)
@handler_boundary("Tags API")
async def delete_tag(tag_id: UUID, identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    tags.delete(db, identity, tag_id)
    return Response(status_code=204)
