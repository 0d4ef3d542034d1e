from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Response

from ..db import Embed, RowStore, get_db
from ..errors import handler_boundary
from ..schemas.pydantic_schemas import TagAssignment, TagRead
from ..services.security import Identity
from .calls import calls
from .deps import require_identity
from .pipeline import OwnedResource
from .tags import tags

router = APIRouter()

call_tags = OwnedResource(
    "call_tags",
    "Tag assignment",
    created_field="assigned_at",
    updated_field=None,
    conflict_message="Tag is already assigned to this call",
)


@router.get("/{call_id}/tags", response_model=List[TagRead])
@handler_boundary("Call Tags API")
async def list_call_tags(call_id: UUID, identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    calls.require(db, identity, call_id)
    rows, _ = call_tags.list(
        db,
        identity,
        filters=[("eq", "call_id", str(call_id))],
        columns=("tag_id",),
        embeds=(Embed("tag", "tags", "tag_id", ("id", "name", "color")),),
    )
    return [row["tag"] for row in rows if row.get("tag")]


@router.post("/{call_id}/tags", response_model=TagRead, status_code=201)
@handler_boundary("Call Tags API")
async def assign_tag(
    call_id: UUID,
    body: TagAssignment,
    identity: Identity = Depends(require_identity),
    db: RowStore = Depends(get_db),
):
    # Both sides of the join must belong to the caller
    calls.require(db, identity, call_id)
    tags.require(db, identity, body.tag_id)
    call_tags.create(db, identity, {"call_id": str(call_id), "tag_id": str(body.tag_id)})
    return tags.get(db, identity, body.tag_id)


@router.delete("/{call_id}/tags/{tag_id}", status_code=204)
@handler_boundary("Call Tags API")
async def remove_tag(
    call_id: UUID,
    tag_id: UUID,
    identity: Identity = Depends(require_identity),
    db: RowStore = Depends(get_db),
):
    call_tags.delete(db, identity, call_id=call_id, tag_id=tag_id)
    return Response(status_code=204)
