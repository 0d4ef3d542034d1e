from typing import Optional
import logging

from fastapi import APIRouter, Depends, Response

from ..config import Settings, get_settings
from ..db import RowStore, get_db, utcnow
from ..errors import AuthenticationError, handler_boundary
from ..schemas.pydantic_schemas import LoginRequest, LoginResponse, SessionUser
from ..services.security import Identity, create_session_token, verify_password
from .deps import SESSION_COOKIE, resolve_session

# Set up logger
logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
@handler_boundary("Sign-in")
async def login(
    body: LoginRequest,
    response: Response,
    db: RowStore = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    rows, _ = db.select("users", filters=[("eq", "email", body.email)], limit=1)
    user = rows[0] if rows else None
    if not user or not verify_password(body.password, user.get("password") or ""):
        logger.info("Rejected sign-in attempt")
        raise AuthenticationError("Invalid email or password")

    db.update("users", [("eq", "id", user["id"])], {"last_login": utcnow()})
    identity = Identity(id=user["id"], email=user["email"], name=user.get("name"))
    token = create_session_token(identity, settings.auth_secret, settings.auth_token_ttl_minutes)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=settings.auth_token_ttl_minutes * 60,
        httponly=True,
        samesite="lax",
    )
    return {"accessToken": token, "tokenType": "bearer", "user": identity.to_dict()}


@router.post("/logout", status_code=204)
async def logout():
    response = Response(status_code=204)
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/session", response_model=Optional[SessionUser])
async def current_session(identity: Optional[Identity] = Depends(resolve_session)):
    return identity.to_dict() if identity else None
