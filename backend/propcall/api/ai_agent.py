from typing import Optional

from fastapi import APIRouter, Depends

from ..db import RowStore, get_db
from ..errors import NotFoundError, handler_boundary
from ..schemas.pydantic_schemas import AgentConfigRead, AgentConfigWrite, VoiceListResponse
from ..services.elevenlabs_client import ElevenLabsClient
from ..services.security import Identity
from .deps import get_elevenlabs_client, require_identity
from .pipeline import OwnedResource

router = APIRouter()

# One config per user, keyed on user_id
agents = OwnedResource("ai_agents", "Agent configuration")


@router.get("/agent", response_model=Optional[AgentConfigRead])
@handler_boundary("AI Agent API")
async def get_agent(identity: Identity = Depends(require_identity), db: RowStore = Depends(get_db)):
    try:
        return agents.get(db, identity)
    except NotFoundError:
        return None


@router.put("/agent", response_model=AgentConfigRead)
@handler_boundary("AI Agent API")
async def save_agent(
    body: AgentConfigWrite,
    identity: Identity = Depends(require_identity),
    db: RowStore = Depends(get_db),
):
    return agents.upsert(db, identity, body.model_dump())


@router.get("/voices", response_model=VoiceListResponse)
@handler_boundary("AI Voices API")
async def list_voices(
    identity: Identity = Depends(require_identity),
    client: ElevenLabsClient = Depends(get_elevenlabs_client),
):
    return {"voices": await client.list_voices()}
