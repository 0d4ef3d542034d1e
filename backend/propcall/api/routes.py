from fastapi import APIRouter
from .auth import router as auth_router
from .properties import router as properties_router
from .calls import router as calls_router
from .call_tags import router as call_tags_router
from .tags import router as tags_router
from .ai_agent import router as ai_agent_router
from .calcom import router as calcom_router
from .users import router as users_router

api_router = APIRouter()
api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(properties_router, prefix="/properties", tags=["properties"])
api_router.include_router(calls_router, prefix="/calls", tags=["calls"])
api_router.include_router(call_tags_router, prefix="/calls", tags=["tags"])
api_router.include_router(tags_router, prefix="/tags", tags=["tags"])
api_router.include_router(ai_agent_router, prefix="/ai", tags=["ai"])
api_router.include_router(calcom_router, prefix="/calcom", tags=["calcom"])
api_router.include_router(users_router, prefix="/users", tags=["users"])
